"""
config.py — Environment Configuration for the Checkout Service

All values are supplied through environment variables (normally injected by
the container runtime) and gathered in a single `CheckoutSettings` object that
is handed to the workflow and its clients.
"""

import os
from typing import List

from pydantic import BaseModel, Field

# Service addresses and credentials (normally from env vars)
ECOMMERCE_STORE_URL = os.environ.get("ECOMMERCE_STORE_URL", "http://localhost:3000")
STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
STRIPE_API_BASE = os.environ.get("STRIPE_API_BASE", "")
STRIPE_SHIPPING_RATE = os.environ.get("STRIPE_SHIPPING_RATE", "shr_1Qi4doKrUjEv12FJxGaV6hvy")
CHECKOUT_CURRENCY = os.environ.get("CHECKOUT_CURRENCY", "inr")
CHECKOUT_ALLOWED_COUNTRIES = os.environ.get("CHECKOUT_ALLOWED_COUNTRIES", "US,CA,IN")
MONGODB_URL = os.environ.get("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB_NAME = os.environ.get("MONGODB_DB_NAME", "Borcelle_Store")
CHECKOUT_LOG_FILE = os.environ.get("CHECKOUT_LOG_FILE", "")
CHECKOUT_HOST = os.environ.get("CHECKOUT_HOST", "0.0.0.0")
CHECKOUT_PORT = int(os.environ.get("CHECKOUT_PORT", "8000"))

SUCCESS_PATH = "/payment_success"
CANCEL_PATH = "/cart"


def split_countries(value: str) -> List[str]:
    """Turns a comma separated list such as 'US, ca,IN' into ['US', 'CA', 'IN']."""
    return [code.strip().upper() for code in value.split(",") if code.strip()]


class CheckoutSettings(BaseModel):
    """
    Settings consumed by the checkout workflow.

    Attributes:
        store_url (str): Storefront base URL used for the success/cancel redirects.
        currency (str): ISO 4217 currency code of every line item (lower case, Stripe style).
        allowed_countries (List[str]): Shipping address allow-list.
        shipping_rate (str): Pre-configured flat shipping rate id.
        payment_method_types (List[str]): Payment methods offered on the hosted page.
        stripe_secret_key (str): Secret API key of the payment processor.
        stripe_api_base (str): Optional override of the processor API base URL; empty keeps the SDK default.
        mongodb_url (str): Connection string of the document store.
        mongodb_db_name (str): Database holding the customer and order collections.
    """
    store_url: str = ECOMMERCE_STORE_URL
    currency: str = CHECKOUT_CURRENCY
    allowed_countries: List[str] = Field(default_factory=lambda: split_countries(CHECKOUT_ALLOWED_COUNTRIES))
    shipping_rate: str = STRIPE_SHIPPING_RATE
    payment_method_types: List[str] = Field(default_factory=lambda: ["card"])
    stripe_secret_key: str = STRIPE_SECRET_KEY
    stripe_api_base: str = STRIPE_API_BASE
    mongodb_url: str = MONGODB_URL
    mongodb_db_name: str = MONGODB_DB_NAME

    @property
    def success_url(self) -> str:
        return f"{self.store_url.rstrip('/')}{SUCCESS_PATH}"

    @property
    def cancel_url(self) -> str:
        return f"{self.store_url.rstrip('/')}{CANCEL_PATH}"


def load_settings() -> CheckoutSettings:
    """Builds the settings from the current environment."""
    return CheckoutSettings(
        store_url=os.environ.get("ECOMMERCE_STORE_URL", ECOMMERCE_STORE_URL),
        currency=os.environ.get("CHECKOUT_CURRENCY", CHECKOUT_CURRENCY),
        allowed_countries=split_countries(os.environ.get("CHECKOUT_ALLOWED_COUNTRIES", CHECKOUT_ALLOWED_COUNTRIES)),
        shipping_rate=os.environ.get("STRIPE_SHIPPING_RATE", STRIPE_SHIPPING_RATE),
        stripe_secret_key=os.environ.get("STRIPE_SECRET_KEY", STRIPE_SECRET_KEY),
        stripe_api_base=os.environ.get("STRIPE_API_BASE", STRIPE_API_BASE),
        mongodb_url=os.environ.get("MONGODB_URL", MONGODB_URL),
        mongodb_db_name=os.environ.get("MONGODB_DB_NAME", MONGODB_DB_NAME),
    )
