"""Authentication dependencies - admin bearer tokens and the cron secret."""

import hmac
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import get_settings
from services.auth_service import AuthService

security = HTTPBearer(auto_error=False)
settings = get_settings()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_admin(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """Reject requests without a valid admin token."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    if not AuthService.verify_admin_token(credentials.credentials):
        raise _unauthorized("Invalid or expired admin token")
    return "admin"


async def verify_cron_secret(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> None:
    """Check the shared cron secret when one is configured.

    With CRON_SECRET unset the batch sync is open, matching local setups.
    """
    if not settings.cron_secret:
        return
    provided = credentials.credentials if credentials else ""
    if not hmac.compare_digest(provided.encode("utf-8"), settings.cron_secret.encode("utf-8")):
        raise _unauthorized("Unauthorized")
