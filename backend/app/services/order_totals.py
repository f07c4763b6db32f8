"""Order totals: subtotal, discount, the two tax lines and grand total."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Protocol

from app.core.config import settings
from app.core.exceptions import ValidationError

CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize to cents, half-up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class PricedLine(Protocol):
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax_primary: Decimal
    tax_secondary: Decimal
    delivery_charges: Decimal
    grand_total: Decimal


def recompute(
    lines: Iterable[PricedLine],
    discount=Decimal("0"),
    *,
    rate_primary: Optional[Decimal] = None,
    rate_secondary: Optional[Decimal] = None,
    delivery_charges=Decimal("0"),
    discount_overflow: Optional[str] = None,
) -> Totals:
    """Recompute order totals from scratch.

    ``grand_total = subtotal - discount + tax_primary + tax_secondary``
    (plus delivery charges for marketplace orders), each tax being its rate
    times the post-discount subtotal. Pure and idempotent.

    A discount larger than the subtotal is clamped down to it when
    ``discount_overflow`` is ``"clamp"`` and rejected when it is ``"reject"``.
    """
    rate_primary = settings.tax_rate_primary if rate_primary is None else Decimal(str(rate_primary))
    rate_secondary = settings.tax_rate_secondary if rate_secondary is None else Decimal(str(rate_secondary))
    overflow = discount_overflow or settings.discount_overflow

    subtotal = money(sum((Decimal(str(line.unit_price)) * line.quantity for line in lines), Decimal("0")))
    discount = money(discount or 0)
    if discount < 0:
        raise ValidationError("Discount cannot be negative")
    if discount > subtotal:
        if overflow == "reject":
            raise ValidationError(f"Discount {discount} exceeds subtotal {subtotal}")
        discount = subtotal

    taxable = subtotal - discount
    tax_primary = money(taxable * rate_primary)
    tax_secondary = money(taxable * rate_secondary)
    delivery = money(delivery_charges or 0)

    return Totals(
        subtotal=subtotal,
        discount=discount,
        tax_primary=tax_primary,
        tax_secondary=tax_secondary,
        delivery_charges=delivery,
        grand_total=taxable + tax_primary + tax_secondary + delivery,
    )


def apply_totals(order, totals: Totals) -> None:
    """Copy computed totals onto an order row."""
    order.subtotal = totals.subtotal
    order.discount = totals.discount
    order.tax_primary = totals.tax_primary
    order.tax_secondary = totals.tax_secondary
    order.delivery_charges = totals.delivery_charges
    order.grand_total = totals.grand_total
