"""
Tests for the Razorpay client using an in-process HTTP transport.
"""

import hashlib
import hmac
import json

import httpx
import pytest

from rentals.services.gateway import RazorpayGateway
from rentals.utils.exceptions import ExternalServiceError


def _gateway(handler) -> RazorpayGateway:
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        api_url="https://api.razorpay.test/v1",
        timeout=2,
        transport=httpx.MockTransport(handler)
    )


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_posts_order_with_basic_auth(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "id": "order_123", "amount": 150000, "currency": "INR", "status": "created"
            })

        order = await _gateway(handler).create_order(
            150000, "INR", receipt="booking_abc", notes={"booking_id": "abc"}
        )

        assert order["id"] == "order_123"
        assert seen["url"] == "https://api.razorpay.test/v1/orders"
        assert seen["auth"].startswith("Basic ")
        assert seen["body"] == {
            "amount": 150000, "currency": "INR", "receipt": "booking_abc", "notes": {"booking_id": "abc"}
        }

    @pytest.mark.asyncio
    async def test_receipt_is_truncated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert len(json.loads(request.content)["receipt"]) == 40
            return httpx.Response(200, json={"id": "order_1", "amount": 100, "currency": "INR"})

        await _gateway(handler).create_order(100, "INR", receipt="x" * 80)

    @pytest.mark.asyncio
    async def test_error_reply(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"description": "The amount must be atleast INR 1.00"}})

        with pytest.raises(ExternalServiceError, match="atleast INR 1.00") as exc_info:
            await _gateway(handler).create_order(50, "INR", receipt="r")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExternalServiceError, match="timed out"):
            await _gateway(handler).create_order(100, "INR", receipt="r")

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExternalServiceError, match="unreachable"):
            await _gateway(handler).create_order(100, "INR", receipt="r")

    @pytest.mark.asyncio
    async def test_reply_without_id(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"amount": 100})

        with pytest.raises(ExternalServiceError):
            await _gateway(handler).create_order(100, "INR", receipt="r")


class TestSignature:

    def test_matches_hmac_sha256_of_order_and_payment(self):
        gateway = RazorpayGateway(key_id="k", key_secret="secret")
        expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()

        assert gateway.expected_signature("order_1", "pay_1") == expected
        assert gateway.verify_signature("order_1", "pay_1", expected)

    def test_rejects_tampering_and_empty_fields(self):
        gateway = RazorpayGateway(key_id="k", key_secret="secret")
        signature = gateway.expected_signature("order_1", "pay_1")

        assert not gateway.verify_signature("order_2", "pay_1", signature)
        assert not gateway.verify_signature("order_1", "pay_2", signature)
        assert not gateway.verify_signature("order_1", "pay_1", "")
        assert not gateway.verify_signature("", "pay_1", signature)

    def test_checkout_options(self):
        gateway = RazorpayGateway(key_id="rzp_test_key", key_secret="secret")
        options = gateway.checkout_options(
            {"id": "order_1", "amount": 150000, "currency": "INR"},
            description="Payment for booking #1",
            prefill={"email": "guest@test.com"}
        )

        assert options["key"] == "rzp_test_key"
        assert options["order_id"] == "order_1"
        assert options["amount"] == 150000
        assert options["prefill"] == {"email": "guest@test.com"}
        assert options["notes"] == {}
