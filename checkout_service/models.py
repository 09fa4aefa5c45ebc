"""
models.py — Data Models for Checkout Processing

This module defines the data structures used for checkout requests and for the
records written to the document store. It uses Pydantic models to ensure type
safety and automatic validation of incoming data.

Money is handled in integer minor units (e.g. paise, cents) inside the service.
Prices arrive from the storefront in major units with at most two decimal places.

Models:
    - CartProduct: The product snapshot embedded in a cart item.
    - CartItem: A single product line of the cart.
    - CustomerInfo: The purchaser descriptor sent with the cart.
    - CheckoutRequest: The complete checkout payload.
    - Customer: Stored customer record, one per external identity id.
    - OrderProduct / Order: Stored order record linked to a payment session.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MINOR_UNITS_PER_MAJOR = 100
CENT = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """Converts a major-unit amount (e.g. Decimal('19.99')) to minor units (1999)."""
    return int((amount * MINOR_UNITS_PER_MAJOR).to_integral_value(rounding=ROUND_HALF_UP))


def to_major_units(amount_minor: int) -> Decimal:
    """Converts minor units back to an exact two-place major-unit amount."""
    return (Decimal(amount_minor) / MINOR_UNITS_PER_MAJOR).quantize(CENT)


class CartProduct(BaseModel):
    """
    Product snapshot sent by the storefront inside a cart item.

    Attributes:
        id (str): Product reference id (`_id` on the wire).
        title (str): Display name shown on the hosted payment page.
        price (Decimal): Unit price in major currency units, at most two decimal places.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    title: str
    price: Decimal = Field(..., ge=0, decimal_places=2)

    @field_validator("price", mode="before")
    @classmethod
    def price_from_json_number(cls, value):
        # JSON numbers arrive as float; go through repr so 19.99 stays 19.99
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @property
    def unit_amount(self) -> int:
        return to_minor_units(self.price)


class CartItem(BaseModel):
    """
    Represents a single product line in the cart.

    Attributes:
        item (CartProduct): The product being bought.
        quantity (int): Number of units. Must be greater than zero.
        size (Optional[str]): Selected size, if the product has sizes.
        color (Optional[str]): Selected color, if the product has colors.
    """
    item: CartProduct
    quantity: int = Field(..., gt=0)
    size: Optional[str] = None
    color: Optional[str] = None

    @property
    def line_total(self) -> int:
        """Line total in minor units."""
        return self.item.unit_amount * self.quantity


class CustomerInfo(BaseModel):
    """
    Purchaser descriptor sent with the cart.

    Attributes:
        clerkId (str): External identity id issued by the identity provider.
        email (str): Contact email.
        name (str): Display name.
    """
    clerkId: str
    email: str
    name: str


class CheckoutRequest(BaseModel):
    """
    Represents a checkout request posted by the storefront.

    Attributes:
        cartItems (List[CartItem]): Non-empty, ordered list of cart lines.
        customer (CustomerInfo): The purchaser.
    """
    cartItems: List[CartItem] = Field(..., min_length=1)
    customer: CustomerInfo

    @property
    def total_amount(self) -> int:
        """Sum of price × quantity over all cart lines, in minor units."""
        return sum(cart_item.line_total for cart_item in self.cartItems)


class Customer(BaseModel):
    """Stored customer record. At most one exists per `clerkId`."""
    clerkId: str
    email: str
    name: str
    createdAt: datetime

    @classmethod
    def from_info(cls, info: CustomerInfo, created_at: datetime) -> "Customer":
        return cls(clerkId=info.clerkId, email=info.email, name=info.name, createdAt=created_at)


class OrderProduct(BaseModel):
    product: str
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None


class Order(BaseModel):
    """
    Stored order record.

    `customerName` is a snapshot taken at checkout time, not a reference to the
    Customer record. `totalAmount` is computed from the cart, never taken from
    the payment session.
    """
    customerClerkId: str
    customerName: str
    products: List[OrderProduct]
    totalAmount: Decimal
    currency: str
    stripeSessionId: str
    createdAt: datetime

    @classmethod
    def from_checkout(cls, request: CheckoutRequest, session_id: str, currency: str,
                      created_at: datetime) -> "Order":
        return cls(
            customerClerkId=request.customer.clerkId,
            customerName=request.customer.name,
            products=[
                OrderProduct(
                    product=cart_item.item.id,
                    quantity=cart_item.quantity,
                    size=cart_item.size,
                    color=cart_item.color,
                )
                for cart_item in request.cartItems
            ],
            totalAmount=to_major_units(request.total_amount),
            currency=currency,
            stripeSessionId=session_id,
            createdAt=created_at,
        )
