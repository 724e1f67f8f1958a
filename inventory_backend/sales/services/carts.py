# sales/services/carts.py

"""
CART + SETTLEMENT OUTCOME TYPES

Carts:
- GeneralCart: walk-in or online customer, unit-based lines.
- DealerCart:  business customer, package-based lines + delivery/payment dates.

Outcomes (exactly one per settlement):
- Settled               sale + items persisted, every line fully allocated
- SettledWithWarnings   sale + items persisted, stock-side errors collected
- SettlementFailed      nothing persisted (validation or insert failure)

as_payload() renders the wire shape the POS screens consume:
{success, sale, saleItems, batchUpdates?, stockUpdateErrors?} or {success:false, error}.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Union

from products.services.batch_allocator import AllocationRecord, StockUpdateError


@dataclass(frozen=True, kw_only=True)
class CartLine:
    """
    One cart line. quantity is in units; on dealer carts it is derived from
    package_qty x units_per_package at settlement.
    """

    product_id: str
    unit_price: Decimal
    quantity: int = 0
    package_qty: int | None = None
    package_type: str | None = None


@dataclass(frozen=True, kw_only=True)
class _CartBase:
    lines: list[CartLine]
    payment_method: str = "cash"
    payment_status: str = "paid"
    discount_percent: Decimal | None = None
    discount_amount: Decimal | None = None
    tax_percent: Decimal | None = None
    tax_amount: Decimal | None = None
    note: str = ""


@dataclass(frozen=True, kw_only=True)
class GeneralCart(_CartBase):
    channel: str = "walk_in"

    customer_type = "general"


@dataclass(frozen=True, kw_only=True)
class DealerCart(_CartBase):
    dealer_id: str
    delivery_date: date | None = None
    payment_due_date: date | None = None

    customer_type = "dealer"


Cart = Union[GeneralCart, DealerCart]


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    line_subtotals: tuple[Decimal, ...] = ()


# ============================================================
# OUTCOMES
# ============================================================


@dataclass
class Settled:
    sale: object
    sale_items: list
    batch_updates: list[AllocationRecord] = field(default_factory=list)

    success = True

    def as_payload(self, *, serialize_sale, serialize_items) -> dict:
        payload = {
            "success": True,
            "sale": serialize_sale(self.sale),
            "saleItems": serialize_items(self.sale_items),
        }
        if self.batch_updates:
            payload["batchUpdates"] = [r.as_dict() for r in self.batch_updates]
        return payload


@dataclass
class SettledWithWarnings(Settled):
    warnings: list[StockUpdateError] = field(kw_only=True)

    def as_payload(self, *, serialize_sale, serialize_items) -> dict:
        payload = super().as_payload(
            serialize_sale=serialize_sale, serialize_items=serialize_items
        )
        payload["stockUpdateErrors"] = [w.as_dict() for w in self.warnings]
        return payload


@dataclass
class SettlementFailed:
    error: str

    success = False

    def as_payload(self, **_kwargs) -> dict:
        return {"success": False, "error": self.error}


SettlementOutcome = Union[Settled, SettledWithWarnings, SettlementFailed]
