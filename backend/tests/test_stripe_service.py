"""Stripe service: webhook signatures, OAuth token exchange, checkout form encoding."""

import json
import time
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from services import stripe_service
from services.stripe_service import StripeAPIError, WebhookSignatureError

SECRET = "whsec_unit"


def event_payload(event_type="checkout.session.completed"):
    return json.dumps({
        "id": "evt_1",
        "type": event_type,
        "data": {"object": {"id": "cs_1"}},
    }).encode("utf-8")


class TestWebhookSignature:
    def test_valid_signature_returns_event(self):
        payload = event_payload()
        header = stripe_service.sign_webhook_payload(payload, SECRET)

        event = stripe_service.construct_webhook_event(payload, header, SECRET)

        assert event["type"] == "checkout.session.completed"
        assert event["data"]["object"]["id"] == "cs_1"

    def test_any_matching_v1_signature_is_accepted(self):
        payload = event_payload()
        header = stripe_service.sign_webhook_payload(payload, SECRET)
        header = header.replace("v1=", "v1=deadbeef,v1=")

        assert stripe_service.construct_webhook_event(payload, header, SECRET)["id"] == "evt_1"

    def test_wrong_secret_rejected(self):
        payload = event_payload()
        header = stripe_service.sign_webhook_payload(payload, "whsec_other")

        with pytest.raises(WebhookSignatureError):
            stripe_service.construct_webhook_event(payload, header, SECRET)

    def test_tampered_payload_rejected(self):
        header = stripe_service.sign_webhook_payload(event_payload(), SECRET)

        with pytest.raises(WebhookSignatureError):
            stripe_service.construct_webhook_event(event_payload("invoice.paid"), header, SECRET)

    def test_stale_timestamp_rejected(self):
        payload = event_payload()
        header = stripe_service.sign_webhook_payload(payload, SECRET, timestamp=int(time.time()) - 3600)

        with pytest.raises(WebhookSignatureError):
            stripe_service.construct_webhook_event(payload, header, SECRET, tolerance=300)

    @pytest.mark.parametrize("header", [None, "", "garbage", "t=123"])
    def test_missing_or_malformed_header_rejected(self, header):
        with pytest.raises(WebhookSignatureError):
            stripe_service.construct_webhook_event(event_payload(), header, SECRET)

    def test_unconfigured_secret_rejects_everything(self):
        payload = event_payload()
        header = stripe_service.sign_webhook_payload(payload, SECRET)

        with pytest.raises(WebhookSignatureError):
            stripe_service.construct_webhook_event(payload, header, "")


class TestConnectOAuth:
    def test_build_connect_url(self):
        url = stripe_service.build_connect_url("signed-state")

        parsed = urlparse(url)
        params = parse_qs(parsed.query)
        assert parsed.netloc == "connect.stripe.com"
        assert parsed.path == "/oauth/authorize"
        assert params["client_id"] == ["ca_test"]
        assert params["state"] == ["signed-state"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == ["read_write"]
        assert params["redirect_uri"] == ["http://localhost:3000/api/providers/stripe/callback"]

    async def test_exchange_code_for_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "access_token": "sk_access",
                "refresh_token": "rt_1",
                "scope": "read_write",
                "stripe_user_id": "acct_123",
            })

        tokens = await stripe_service.exchange_code_for_token(
            "ac_code", transport=httpx.MockTransport(handler)
        )

        assert tokens["stripe_user_id"] == "acct_123"
        form = parse_qs(seen[0].content.decode())
        assert seen[0].url.path == "/oauth/token"
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["ac_code"]
        assert form["client_secret"] == ["sk_test_platform"]

    async def test_exchange_error_raises(self):
        def handler(request):
            return httpx.Response(400, json={
                "error": "invalid_grant",
                "error_description": "Authorization code expired",
            })

        with pytest.raises(StripeAPIError) as exc_info:
            await stripe_service.exchange_code_for_token(
                "ac_old", transport=httpx.MockTransport(handler)
            )
        assert exc_info.value.code == "invalid_grant"
        assert exc_info.value.status_code == 400
        assert "expired" in str(exc_info.value)

    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(StripeAPIError):
            await stripe_service.exchange_code_for_token(
                "ac_code", transport=httpx.MockTransport(handler)
            )


class TestCheckoutSession:
    async def test_form_encodes_price_and_metadata(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "cs_1", "url": "https://checkout.stripe.com/c/cs_1"})

        session = await stripe_service.create_checkout_session(
            price_id="price_featured",
            success_url="http://localhost:3000/ok",
            cancel_url="http://localhost:3000/cancel",
            metadata={"startup_id": "s-1", "type": "featured_listing"},
            subscription_metadata={"startup_id": "s-1"},
            transport=httpx.MockTransport(handler),
        )

        assert session["id"] == "cs_1"
        request = seen[0]
        form = parse_qs(request.content.decode())
        assert request.url.path == "/v1/checkout/sessions"
        assert request.headers["Authorization"] == "Bearer sk_test_platform"
        assert form["mode"] == ["subscription"]
        assert form["line_items[0][price]"] == ["price_featured"]
        assert form["metadata[type]"] == ["featured_listing"]
        assert form["subscription_data[metadata][startup_id]"] == ["s-1"]
