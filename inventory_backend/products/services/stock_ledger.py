# products/services/stock_ledger.py

"""
STOCK LEDGER SERVICE (AGGREGATE COUNTER)

Purpose:
- Read-modify-write of the per-product unit and package counters.
- Used by settlement (decrement), intake (increment) and issue/disposal.

Rules:
- No floor check on decrement: the counter can go negative.
  Batch-level quantities are the ones guarded against going below zero.
- lock=True takes a row lock (SELECT ... FOR UPDATE) for the read-modify-write.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F

from products.models import StockLedger

logger = logging.getLogger(__name__)


class StockLedgerError(Exception):
    pass


class LedgerNotFoundError(StockLedgerError):
    pass


def _ledger_qs(*, lock: bool):
    qs = StockLedger.objects.all()
    if lock:
        qs = qs.select_for_update()
    return qs


def get_ledger(product_id) -> StockLedger:
    ledger = StockLedger.objects.select_related("product").filter(product_id=product_id).first()
    if ledger is None:
        raise LedgerNotFoundError(f"Stock ledger row not found for product {product_id}")
    return ledger


def decrement(product_id, units: int, packages: int | None = None, *, lock: bool = True) -> StockLedger:
    """
    Subtract units (and packages, for dealer lines) from the aggregate counter.
    Returns the updated ledger row.
    """
    with transaction.atomic():
        ledger = _ledger_qs(lock=lock).filter(product_id=product_id).first()
        if ledger is None:
            raise LedgerNotFoundError(f"Stock ledger row not found for product {product_id}")

        ledger.current_quantity = int(ledger.current_quantity or 0) - int(units)
        update_fields = ["current_quantity", "updated_at"]

        if packages:
            ledger.package_qty = int(ledger.package_qty or 0) - int(packages)
            update_fields.append("package_qty")

        ledger.save(update_fields=update_fields)

    if ledger.current_quantity < 0:
        logger.warning(
            "Stock ledger went negative",
            extra={"product_id": str(product_id), "current_quantity": ledger.current_quantity},
        )

    return ledger


def increment(product_id, units: int, packages: int | None = None, *, lock: bool = True) -> StockLedger:
    """
    Add units (and packages) to the aggregate counter, creating the row if absent.
    """
    with transaction.atomic():
        ledger = _ledger_qs(lock=lock).filter(product_id=product_id).first()
        if ledger is None:
            ledger = StockLedger.objects.create(product_id=product_id)

        ledger.current_quantity = int(ledger.current_quantity or 0) + int(units)
        update_fields = ["current_quantity", "updated_at"]

        if packages:
            ledger.package_qty = int(ledger.package_qty or 0) + int(packages)
            update_fields.append("package_qty")

        ledger.save(update_fields=update_fields)

    return ledger


@transaction.atomic
def set_thresholds(product_id, *, threshold_quantity=None, max_stock_level=None) -> StockLedger:
    ledger = _ledger_qs(lock=True).filter(product_id=product_id).first()
    if ledger is None:
        ledger = StockLedger.objects.create(product_id=product_id)

    update_fields = ["updated_at"]

    if threshold_quantity is not None:
        if int(threshold_quantity) < 0:
            raise StockLedgerError("threshold_quantity cannot be negative")
        ledger.threshold_quantity = int(threshold_quantity)
        update_fields.append("threshold_quantity")

    if max_stock_level is not None:
        if int(max_stock_level) < 0:
            raise StockLedgerError("max_stock_level cannot be negative")
        ledger.max_stock_level = int(max_stock_level)
        update_fields.append("max_stock_level")

    ledger.save(update_fields=update_fields)
    return ledger


def low_stock():
    """Ledger rows at or below their threshold, lowest stock first."""
    return (
        StockLedger.objects.select_related("product")
        .filter(current_quantity__lte=F("threshold_quantity"))
        .order_by("current_quantity", "product__name")
    )
