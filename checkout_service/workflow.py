"""
workflow.py — Core Orchestration Logic for Checkout Processing

This module contains the checkout workflow. It coordinates the document store and
the payment session service in a fixed sequence.

Workflow Overview:
1. Validate the checkout payload (no side effects on failure)
2. Look up the customer by external identity id and create it if absent
3. Create a hosted payment session (Stripe Checkout)
4. Persist the order, linked to the payment session
5. Return the payment session descriptor to the caller

There is no compensation: a customer created in step 2 stays when a later step
fails, and an order write failure after step 3 leaves an orphaned payment session.
"""

import uuid
from datetime import datetime, timezone

from pydantic import ValidationError

from .clients import PaymentClient
from .config import CheckoutSettings
from .exceptions import MissingInputError, PersistenceError
from .logging_config import get_logger
from .models import CheckoutRequest, Customer, Order
from .repositories import CustomerRepository, OrderRepository

log = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_checkout_request(payload) -> CheckoutRequest:
    """
    Validates a raw checkout payload.

    Args:
        payload: Decoded JSON body of the request.

    Returns:
        CheckoutRequest: The validated request.

    Raises:
        MissingInputError: If `cartItems` or `customer` is absent, null or empty, or
            if the payload does not describe a valid cart.
    """
    if not isinstance(payload, dict) or not payload.get("cartItems") or not payload.get("customer"):
        raise MissingInputError("cartItems and customer are required")
    try:
        return CheckoutRequest.model_validate(payload)
    except ValidationError as e:
        raise MissingInputError(f"invalid checkout payload: {e.error_count()} error(s)") from e


def build_line_item(cart_item, currency: str) -> dict:
    """
    Maps a cart line to a payment session line item.
    `size` and `color` only appear in the metadata when the cart line carries them.
    """
    metadata = {"productId": cart_item.item.id}
    if cart_item.size:
        metadata["size"] = cart_item.size
    if cart_item.color:
        metadata["color"] = cart_item.color

    return {
        "price_data": {
            "currency": currency,
            "product_data": {
                "name": cart_item.item.title,
                "metadata": metadata,
            },
            "unit_amount": cart_item.item.unit_amount,
        },
        "quantity": cart_item.quantity,
    }


def build_session_params(request: CheckoutRequest, settings: CheckoutSettings) -> dict:
    """Builds the full parameter set of the payment session creation call."""
    return {
        "payment_method_types": list(settings.payment_method_types),
        "mode": "payment",
        "shipping_address_collection": {
            "allowed_countries": list(settings.allowed_countries),
        },
        "shipping_options": [
            {"shipping_rate": settings.shipping_rate},
        ],
        "line_items": [build_line_item(cart_item, settings.currency) for cart_item in request.cartItems],
        "client_reference_id": request.customer.clerkId,
        "metadata": {
            "customerName": request.customer.name,
        },
        "success_url": settings.success_url,
        "cancel_url": settings.cancel_url,
    }


class CheckoutWorkflow:
    """
    Executes the checkout workflow for a single request.

    Collaborators are injected so that one instance, holding the shared store
    connection and payment client, serves every request of the process.
    """

    def __init__(self, customers: CustomerRepository, orders: OrderRepository,
                 payments: PaymentClient, settings: CheckoutSettings, clock=utc_now):
        self.customers = customers
        self.orders = orders
        self.payments = payments
        self.settings = settings
        self.clock = clock

    def handle(self, payload) -> dict:
        """
        Runs the complete checkout for one payload.

        Args:
            payload: Decoded JSON body, expected keys:
                - cartItems (list[dict]): items with 'item' {_id, title, price}, 'quantity',
                  optional 'size' and 'color'
                - customer (dict): 'clerkId', 'email', 'name'

        Returns:
            dict: The payment session descriptor, unchanged.

        Raises:
            MissingInputError: Invalid payload. Nothing was written or called.
            PersistenceError: Store failure on the customer or the order step.
            ExternalServiceError: The payment session could not be created. No order was written.
        """
        return self.run(parse_checkout_request(payload))

    def run(self, request: CheckoutRequest) -> dict:
        """Runs customer upsert, payment session and order write for an already validated request."""
        log_prefix = f"[Checkout: {request.customer.clerkId}]"
        log.info(f"{log_prefix} Checkout started with {len(request.cartItems)} cart item(s).")

        # --- 1. Customer upsert ---
        self.ensure_customer(request, log_prefix)

        # --- 2. Payment session ---
        idempotency_key = str(uuid.uuid4())
        log.info(f"{log_prefix} Creating payment session (key {idempotency_key})...")
        session = self.payments.create_checkout_session(
            build_session_params(request, self.settings),
            idempotency_key=idempotency_key,
        )
        log.info(f"{log_prefix} Payment session {session['id']} created.")

        # --- 3. Order persistence ---
        order = Order.from_checkout(request, session["id"], self.settings.currency, self.clock())
        try:
            self.orders.add(order)
        except PersistenceError:
            log.critical(f"{log_prefix} Order write failed after payment session {session['id']} was created. "
                         f"Orphaned session needs manual reconciliation!")
            raise
        log.info(f"{log_prefix} Order saved (total {order.totalAmount} {order.currency}, "
                 f"session {order.stripeSessionId}).")

        return session

    def ensure_customer(self, request: CheckoutRequest, log_prefix: str):
        """Creates the customer on first checkout; an existing record is left untouched."""
        existing = self.customers.get_by_clerk_id(request.customer.clerkId)
        if existing is not None:
            log.info(f"{log_prefix} Customer already exists.")
            return existing

        customer = Customer.from_info(request.customer, self.clock())
        self.customers.add(customer)
        log.info(f"{log_prefix} Customer saved.")
        return customer
