"""Client for the external payment provider.

Only one call is needed: create a payment intent for an amount in the
smallest currency unit and hand its client secret back to the browser,
which completes the payment directly with the provider. Nothing about
the payment is stored locally.
"""

import logging
from typing import Optional

import httpx

from .config import settings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The payment provider could not be reached or refused the request."""


class PaymentGateway:
    """Thin wrapper around the provider's `/v1/payment_intents` endpoint."""

    def __init__(self, secret_key: str, api_base: str, timeout: float = 30.0):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def create_intent(self, amount: int, currency: str) -> str:
        """Create a card payment intent and return its client secret.

        Network errors, non-2xx answers and answers without a
        `client_secret` are raised as `UpstreamError`.
        """
        if not self.secret_key:
            raise UpstreamError("payment provider secret key is not configured")
        url = f"{self.api_base}/v1/payment_intents"
        data = {
            "amount": str(amount),
            "currency": currency,
            "payment_method_types[]": "card",
        }
        try:
            # The provider authenticates with the secret key as the basic-auth user.
            response = httpx.post(url, data=data, auth=(self.secret_key, ""), timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("payment intent rejected: status=%s", exc.response.status_code)
            raise UpstreamError(f"provider answered {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("payment provider unreachable: %s", exc)
            raise UpstreamError("provider unreachable") from exc
        secret: Optional[str] = response.json().get("client_secret")
        if not secret:
            raise UpstreamError("provider response has no client_secret")
        return secret


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning a gateway built from settings."""
    return PaymentGateway(
        secret_key=settings.PAYMENT_SECRET_KEY,
        api_base=settings.PAYMENT_API_BASE,
        timeout=settings.PAYMENT_TIMEOUT_SECONDS,
    )
