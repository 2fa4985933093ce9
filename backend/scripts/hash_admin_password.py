#!/usr/bin/env python3
"""Print a bcrypt hash for ADMIN_PASSWORD_HASH."""

import getpass
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.auth_service import AuthService


if __name__ == "__main__":
    if len(sys.argv) > 2:
        print("Usage: python3 hash_admin_password.py [password]")
        print("Without an argument the password is read from the terminal.")
        sys.exit(1)

    password = sys.argv[1] if len(sys.argv) == 2 else getpass.getpass("Admin password: ")
    if not password:
        print("Password must not be empty.")
        sys.exit(1)

    print(f"ADMIN_PASSWORD_HASH={AuthService.hash_password(password)}")
