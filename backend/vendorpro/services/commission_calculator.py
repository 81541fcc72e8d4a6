# Overview: Pure commission arithmetic; no database or Flask access.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ..errors import InvalidCommissionRuleError
from ..models.commissions import (
    RULE_PERCENTAGE_OF_SALES,
    RULE_FIXED_AMOUNT,
    RULE_PERCENTAGE_ON_DIFFERENCE,
)
"""
Commission formulas (all money in cents, result rounded half-up to the cent):

- PERCENTAGE_OF_SALES:      total * value / 100
- FIXED_AMOUNT:             value * total_quantity   (value is per unit, in currency units)
- PERCENTAGE_ON_DIFFERENCE: (total - SUM(catalog_price * quantity)) * value / 100,
                            floored at zero when the sale undercut the catalog

The result is never negative.
"""

CENTS_PER_UNIT = Decimal(100)
_ONE_CENT = Decimal(1)


@dataclass(frozen=True)
class PricedItem:
    """One sale line as the calculator sees it."""
    quantity: int
    sold_at_cents: int
    catalog_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.sold_at_cents


def _to_cents(amount: Decimal) -> int:
    return int(amount.quantize(_ONE_CENT, rounding=ROUND_HALF_UP))


def calculate_commission_cents(items: Iterable[PricedItem], rule_type: str, value) -> int:
    lines = list(items)
    value = Decimal(str(value))

    total_cents = sum(item.line_total_cents for item in lines)

    if rule_type == RULE_PERCENTAGE_OF_SALES:
        amount = Decimal(total_cents) * value / CENTS_PER_UNIT

    elif rule_type == RULE_FIXED_AMOUNT:
        total_quantity = sum(item.quantity for item in lines)
        amount = value * CENTS_PER_UNIT * total_quantity

    elif rule_type == RULE_PERCENTAGE_ON_DIFFERENCE:
        catalog_cents = sum(item.catalog_price_cents * item.quantity for item in lines)
        difference = total_cents - catalog_cents
        if difference <= 0:
            return 0
        amount = Decimal(difference) * value / CENTS_PER_UNIT

    else:
        raise InvalidCommissionRuleError(
            f"Invalid commission type: {rule_type}",
            details={"type": rule_type},
        )

    return max(0, _to_cents(amount))


def priced_items_for_sale(sale) -> list[PricedItem]:
    """Snapshot a Sale's items with each product's current catalog price."""
    return [
        PricedItem(
            quantity=item.quantity,
            sold_at_cents=item.sold_at_cents,
            catalog_price_cents=item.product.selling_price_cents,
        )
        for item in sale.items
    ]


def commission_for_sale(sale, rule) -> int:
    """Commission for `sale` under `rule`; zero when there is no rule."""
    if rule is None:
        return 0
    return calculate_commission_cents(priced_items_for_sale(sale), rule.type, rule.value)
