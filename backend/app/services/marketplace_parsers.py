"""Delivery platform webhook formats.

Each platform posts its own JSON shape; the parsers here map them onto one
:class:`IncomingOrder` the ingestion service can work with.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from app.core.exceptions import ValidationError
from app.models.delivery import MarketplacePlatform


@dataclass
class IncomingItem:
    item_id: str
    quantity: int
    price: Decimal
    size: Optional[str] = None


@dataclass
class IncomingOrder:
    platform: MarketplacePlatform
    platform_order_id: str
    branch_id: str
    customer_name: Optional[str]
    customer_phone: Optional[str]
    delivery_address: Any
    items: List[IncomingItem]
    subtotal: Decimal
    delivery_charges: Decimal = Decimal("0")
    # Zero means "not supplied"; the ingestion service then computes it
    tax_primary: Decimal = Decimal("0")
    tax_secondary: Decimal = Decimal("0")
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


# Field holding our branch id in each platform's payload
BRANCH_FIELDS: Dict[MarketplacePlatform, str] = {
    MarketplacePlatform.SWIGGY: "restaurant_id",
    MarketplacePlatform.ZOMATO: "restaurant_id",
    MarketplacePlatform.DUNZO: "merchant_id",
}

# Digest encoding each platform uses for x-webhook-signature
SIGNATURE_ENCODINGS: Dict[MarketplacePlatform, str] = {
    MarketplacePlatform.SWIGGY: "hex",
    MarketplacePlatform.ZOMATO: "base64",
    MarketplacePlatform.DUNZO: "hex",
}


def _decimal(value, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount in webhook payload: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Webhook amounts must be finite and non-negative, got {value!r}")
    return amount


def _quantity(value) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid quantity in webhook payload: {value!r}")
    if quantity < 1:
        raise ValidationError("Webhook item quantity must be at least 1")
    return quantity


def branch_id_of(platform: MarketplacePlatform, body: Dict[str, Any]) -> str:
    branch_id = body.get(BRANCH_FIELDS[platform])
    if not branch_id:
        raise ValidationError(f"{platform.value} payload is missing {BRANCH_FIELDS[platform]}")
    return str(branch_id)


def _parse_swiggy(body: Dict[str, Any]) -> IncomingOrder:
    customer = body.get("customer") or {}
    address = body.get("delivery_address") or {}
    return IncomingOrder(
        platform=MarketplacePlatform.SWIGGY,
        platform_order_id=str(body["order_id"]),
        branch_id=str(body["restaurant_id"]),
        customer_name=customer.get("name"),
        customer_phone=customer.get("phone"),
        delivery_address=address.get("complete_address"),
        items=[
            IncomingItem(
                item_id=str(item["item_id"]),
                quantity=_quantity(item.get("quantity")),
                price=_decimal(item.get("price")),
                size=item.get("variant") or None,
            )
            for item in body["items"]
        ],
        subtotal=_decimal(body.get("order_total")),
        delivery_charges=_decimal(body.get("delivery_charges")),
        tax_primary=_decimal(body.get("cgst")),
        tax_secondary=_decimal(body.get("sgst")),
        raw=body,
    )


def _parse_zomato(body: Dict[str, Any]) -> IncomingOrder:
    customer = body.get("customer_details") or {}
    taxes = body.get("taxes") or {}
    return IncomingOrder(
        platform=MarketplacePlatform.ZOMATO,
        platform_order_id=str(body["order_id"]),
        branch_id=str(body["restaurant_id"]),
        customer_name=customer.get("name"),
        customer_phone=customer.get("phone"),
        delivery_address=body.get("delivery_address"),
        items=[
            IncomingItem(
                item_id=str(item["id"]),
                quantity=_quantity(item.get("quantity")),
                price=_decimal(item.get("price")),
                size=item.get("variant_name") or None,
            )
            for item in body["items"]
        ],
        subtotal=_decimal(body.get("subtotal")),
        delivery_charges=_decimal(body.get("delivery_charge")),
        tax_primary=_decimal(taxes.get("cgst")),
        tax_secondary=_decimal(taxes.get("sgst")),
        raw=body,
    )


def _parse_dunzo(body: Dict[str, Any]) -> IncomingOrder:
    customer = body.get("customer") or {}
    pickup = body.get("pickup_details") or {}
    # Dunzo sends one combined tax figure
    half_tax = _decimal(body.get("tax_amount")) / 2
    return IncomingOrder(
        platform=MarketplacePlatform.DUNZO,
        platform_order_id=str(body["order_id"]),
        branch_id=str(body["merchant_id"]),
        customer_name=customer.get("name"),
        customer_phone=customer.get("phone"),
        delivery_address=pickup.get("address"),
        items=[
            IncomingItem(
                item_id=str(item["item_id"]),
                quantity=_quantity(item.get("qty")),
                price=_decimal(item.get("price")),
            )
            for item in body["items"]
        ],
        subtotal=_decimal(body.get("order_value")),
        tax_primary=half_tax,
        tax_secondary=half_tax,
        raw=body,
    )


PARSERS: Dict[MarketplacePlatform, Callable[[Dict[str, Any]], IncomingOrder]] = {
    MarketplacePlatform.SWIGGY: _parse_swiggy,
    MarketplacePlatform.ZOMATO: _parse_zomato,
    MarketplacePlatform.DUNZO: _parse_dunzo,
}


def resolve_platform(name: Optional[str]) -> MarketplacePlatform:
    try:
        return MarketplacePlatform((name or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown delivery platform: {name!r}")


def parse_webhook(platform: MarketplacePlatform, body: Dict[str, Any]) -> IncomingOrder:
    """Map a platform payload onto an IncomingOrder, or raise ValidationError."""
    try:
        order = PARSERS[platform](body)
    except (KeyError, TypeError, AttributeError) as e:
        raise ValidationError(f"Malformed {platform.value} webhook payload: missing or invalid {e}")
    if not order.items:
        raise ValidationError(f"{platform.value} order {order.platform_order_id} has no items")
    return order
