"""
exceptions.py — Error Taxonomy of the Checkout Workflow

The HTTP layer catches these at the route boundary and maps them to the
fixed response shapes; only `MissingInputError` is distinguishable by the caller.
"""


class CheckoutError(Exception):
    """Base class for all checkout errors."""


class MissingInputError(CheckoutError):
    """The request lacks cart items or the customer descriptor."""


class ExternalServiceError(CheckoutError):
    """The payment session service could not create a session."""


class PersistenceError(CheckoutError):
    """The document store is unreachable or rejected a read or write."""
