"""
This module provides the communication client for the external payment processor:
- Payment Session Service (Stripe Checkout Sessions, via the stripe SDK)
The class encapsulates the SDK call and its error handling.
"""

import stripe

from .exceptions import ExternalServiceError
from .logging_config import get_logger

log = get_logger(__name__)


class PaymentClient:
    """
    Client for the Payment Session Service.
    Creates hosted checkout sessions and translates SDK errors into `ExternalServiceError`.
    """
    def __init__(self, secret_key: str, api_base: str = None):
        """
        Args:
            secret_key (str): Secret API key, sent with every request.
            api_base (str): Optional override of the processor's API base URL
                (e.g. a local stripe-mock instance).
        """
        self.secret_key = secret_key
        if api_base:
            stripe.api_base = api_base

    def create_checkout_session(self, params: dict, idempotency_key: str) -> dict:
        """
        Creates a new hosted checkout session.

        Args:
            params (dict): Session parameters (line items, shipping, redirects, ...).
            idempotency_key (str): Key that makes retries of this call return the same session.

        Returns:
            dict: The session descriptor (a `stripe.checkout.Session`, which is a dict). Always has `id`.

        Raises:
            ExternalServiceError: On network failure or timeout, rate limiting, an API error
                returned by the processor, or a response without a session id.
        """
        reference = params.get("client_reference_id")

        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                idempotency_key=idempotency_key,
                **params,
            )
        except stripe.APIConnectionError as e:
            # Status unknown; a retry must reuse the same idempotency key.
            log.error(f"[Checkout: {reference}] Payment session service unreachable (key {idempotency_key}): {e}")
            raise ExternalServiceError("payment session service unreachable") from e
        except stripe.RateLimitError as e:
            log.warning(f"[Checkout: {reference}] Payment session rate limited: {e.user_message}")
            raise ExternalServiceError("payment session service rate limited") from e
        except stripe.StripeError as e:
            log.error(f"[Checkout: {reference}] Payment session rejected "
                      f"(HTTP {e.http_status}, code {e.code}): {e.user_message}")
            raise ExternalServiceError(f"payment session service returned {e.http_status}") from e

        if not session or not session.get("id"):
            log.error(f"[Checkout: {reference}] Payment session response has no id: {session}")
            raise ExternalServiceError("payment session response without id")

        return session
