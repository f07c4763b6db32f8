"""Cart diff: which cart lines have not reached the kitchen yet.

A line is identified by ``(catalog item id, size variant)``. Diffing a cart
against the snapshot taken when the order was last opened for editing
yields only new lines and quantity increases. Removals and decreases never
produce anything, because a ticket already handed to the kitchen is not
retracted by editing the cart.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, NamedTuple, Optional


class LineKey(NamedTuple):
    item_id: str
    size: Optional[str]


@dataclass(frozen=True)
class CartLine:
    """A cart or snapshot entry. ``name`` is carried for ticket content only."""

    item_id: str
    quantity: int
    size: Optional[str] = None
    name: str = ""

    @property
    def key(self) -> LineKey:
        return LineKey(self.item_id, self.size or None)


def merge_lines(lines: Iterable[CartLine]) -> List[CartLine]:
    """Collapse repeated keys into one line, keeping first-seen order."""
    merged: Dict[LineKey, CartLine] = {}
    for line in lines:
        existing = merged.get(line.key)
        if existing is None:
            merged[line.key] = line
        else:
            merged[line.key] = replace(existing, quantity=existing.quantity + line.quantity)
    return list(merged.values())


def quantities(lines: Iterable[CartLine]) -> Dict[LineKey, int]:
    totals: Dict[LineKey, int] = {}
    for line in lines:
        totals[line.key] = totals.get(line.key, 0) + line.quantity
    return totals


def diff(prior: Iterable[CartLine], current: Iterable[CartLine]) -> List[CartLine]:
    """Lines of ``current`` not yet covered by ``prior``.

    Every emitted line has a strictly positive quantity and a key present in
    ``current``.
    """
    sent = quantities(prior)
    delta = []
    for line in merge_lines(current):
        extra = line.quantity - sent.get(line.key, 0)
        if extra > 0:
            delta.append(replace(line, quantity=extra))
    return delta
