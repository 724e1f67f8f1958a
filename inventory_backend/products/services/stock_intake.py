# products/services/stock_intake.py

"""
STOCK INTAKE + BATCH EDITS (APPLICATION SERVICE)

Purpose:
- Intake stock as a dated delivery batch (FIFO source for allocation).
- Keep the StockLedger aggregate in step with the batch.
- Produce a matching StockMovement(RECEIPT) audit record.

Rules:
- quantity is in units. When only packages are given:
  quantity = packages_received x product.units_per_package
- A new batch starts ACTIVE with quantity_remaining = quantity.
- Editing the received quantity rescales quantity_remaining by the consumed
  ratio and shifts the ledger by the difference.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from products.models import StockBatch, StockMovement

from . import stock_ledger

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


class StockIntakeError(Exception):
    pass


def _money(v) -> Decimal | None:
    if v is None or v == "":
        return None
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _non_negative_int(value, field: str) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise StockIntakeError(f"{field} must be a whole integer")
    try:
        n = int(value)
    except (TypeError, ValueError) as exc:
        raise StockIntakeError(f"{field} must be a whole integer") from exc
    if n < 0:
        raise StockIntakeError(f"{field} cannot be negative")
    return n


@transaction.atomic
def intake_batch(
    *,
    product,
    expiry_date,
    quantity=None,
    packages_received=None,
    batch_number: str | None = None,
    manufacture_date=None,
    received_date=None,
    cost_price=None,
    user=None,
) -> StockBatch:
    if not product:
        raise StockIntakeError("Product is required")

    if not expiry_date:
        raise StockIntakeError("expiry_date is required")

    qty = _non_negative_int(quantity, "quantity")
    packages = _non_negative_int(packages_received, "packages_received")

    if qty == 0 and packages > 0:
        qty = product.units_for_packages(packages)

    if qty <= 0:
        raise StockIntakeError("quantity must be greater than zero")

    bn = (batch_number or "").strip()
    if not bn:
        bn = f"BATCH-{uuid.uuid4().hex[:10].upper()}"

    try:
        with transaction.atomic():
            batch = StockBatch.objects.create(
                product=product,
                batch_number=bn,
                manufacture_date=manufacture_date,
                received_date=received_date,
                expiry_date=expiry_date,
                quantity=qty,
                quantity_remaining=qty,
                packages_received=packages,
                cost_price=_money(cost_price),
                status=StockBatch.Status.ACTIVE,
            )
    except IntegrityError as exc:
        raise StockIntakeError(
            f"batch_number '{bn}' already exists for this product"
        ) from exc
    except ValidationError as exc:
        raise StockIntakeError("; ".join(exc.messages)) from exc

    stock_ledger.increment(product.id, qty, packages or None)

    StockMovement.objects.create(
        product=product,
        batch=batch,
        movement_type=StockMovement.MovementType.RECEIPT,
        quantity=qty,
        performed_by=user,
    )

    logger.info(
        "Stock batch received",
        extra={"product_id": str(product.id), "batch_id": batch.id, "quantity": qty},
    )
    return batch


_EDITABLE_FIELDS = (
    "batch_number",
    "manufacture_date",
    "received_date",
    "expiry_date",
    "cost_price",
)


@transaction.atomic
def update_batch(*, batch: StockBatch, quantity=None, packages_received=None, **changes) -> StockBatch:
    """
    Edit batch metadata and/or the received quantity.

    When quantity changes:
        new_remaining = round(old_remaining / old_quantity x new_quantity)
        ledger.current_quantity += new_quantity - old_quantity
    """
    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise StockIntakeError(f"Unsupported batch fields: {', '.join(sorted(unknown))}")

    locked = StockBatch.objects.select_for_update().select_related("product").get(pk=batch.pk)

    old_quantity = int(locked.quantity or 0)
    old_remaining = int(locked.quantity_remaining or 0)
    old_packages = int(locked.packages_received or 0)

    new_quantity = old_quantity if quantity in (None, "") else _non_negative_int(quantity, "quantity")
    new_packages = (
        old_packages
        if packages_received in (None, "")
        else _non_negative_int(packages_received, "packages_received")
    )

    for field, value in changes.items():
        if field == "cost_price":
            value = _money(value)
        if field == "batch_number":
            value = (value or "").strip()
            if not value:
                raise StockIntakeError("batch_number cannot be blank")
        setattr(locked, field, value)

    quantity_difference = new_quantity - old_quantity
    package_difference = new_packages - old_packages

    if quantity_difference:
        if old_quantity > 0:
            ratio = Decimal(old_remaining) / Decimal(old_quantity)
            new_remaining = int((ratio * new_quantity).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        else:
            new_remaining = new_quantity

        locked.quantity = new_quantity
        locked.quantity_remaining = new_remaining

        if locked.status in (StockBatch.Status.ACTIVE, StockBatch.Status.DEPLETED):
            locked.status = (
                StockBatch.Status.DEPLETED if new_remaining == 0 else StockBatch.Status.ACTIVE
            )

    locked.packages_received = new_packages

    try:
        with transaction.atomic():
            locked.save()
    except IntegrityError as exc:
        raise StockIntakeError("batch_number already exists for this product") from exc
    except ValidationError as exc:
        raise StockIntakeError("; ".join(exc.messages)) from exc

    if quantity_difference or package_difference:
        stock_ledger.increment(locked.product_id, quantity_difference, package_difference or None)

    return locked
