"""
Razorpay payment gateway client.

Orders are created server-side over the Razorpay REST API; the checkout
widget then collects the payment in the browser and hands back a payment
id, the order id and an HMAC signature that is verified here.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from rentals.config import get_settings
from rentals.utils.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Razorpay"


class RazorpayGateway:
    """Thin async client for the Razorpay orders API and signature checks."""

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = get_settings()
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.api_url = (api_url or settings.razorpay_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.gateway_timeout_seconds
        self.transport = transport

    async def create_order(
        self,
        amount_subunits: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Create a gateway order for the amount.

        Returns:
            Order payload as returned by the gateway (``id``, ``amount``, ``currency``, ...)

        Raises:
            ExternalServiceError: On timeout, transport failure or a non-2xx reply
        """
        payload = {
            "amount": amount_subunits,
            "currency": currency,
            "receipt": receipt[:40],
            "notes": notes or {},
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.api_url,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.post("/orders", json=payload)
        except httpx.TimeoutException:
            logger.warning(f"Gateway order creation timed out after {self.timeout}s (receipt {receipt})")
            raise ExternalServiceError(SERVICE_NAME, "gateway timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Gateway unreachable while creating order (receipt {receipt}): {e}")
            raise ExternalServiceError(SERVICE_NAME, "gateway unreachable")

        if response.status_code >= 400:
            description = _error_description(response)
            logger.warning(f"Gateway rejected order (HTTP {response.status_code}): {description}")
            raise ExternalServiceError(SERVICE_NAME, description)

        try:
            order = response.json()
        except ValueError:
            raise ExternalServiceError(SERVICE_NAME, "malformed order response")
        if not order.get("id"):
            raise ExternalServiceError(SERVICE_NAME, "order response without id")

        logger.info(f"Gateway order {order['id']} created for {amount_subunits} {currency}")
        return order

    def expected_signature(self, order_id: str, payment_id: str) -> str:
        message = f"{order_id}|{payment_id}".encode()
        return hmac.new(self.key_secret.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check the checkout callback signature in constant time."""
        if not order_id or not payment_id or not signature:
            return False
        return hmac.compare_digest(self.expected_signature(order_id, payment_id), signature)

    def checkout_options(
        self,
        order: Dict[str, Any],
        description: str,
        notes: Optional[Dict[str, str]] = None,
        prefill: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Parameters for the client-side checkout widget."""
        settings = get_settings()
        return {
            "key": self.key_id,
            "order_id": order["id"],
            "amount": order["amount"],
            "currency": order["currency"],
            "name": settings.app_name,
            "description": description,
            "notes": notes or {},
            "prefill": prefill or {},
        }


def _error_description(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["description"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"
