# products/services/expiry.py

"""
EXPIRY HANDLING

- expired_batches(): batches past expiry that still hold units
- mark_expired(): takes ACTIVE batches past expiry out of FIFO allocation
- dispose_batch(): records the disposal, empties the batch, shrinks the ledger
- disposal_statistics(): cost/quantity totals with a per-method breakdown
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from products.models import ExpiredDisposal, StockBatch, StockMovement

from . import stock_ledger

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


class DisposalError(Exception):
    pass


def expired_batches(as_of=None):
    as_of = as_of or timezone.localdate()
    return (
        StockBatch.objects.select_related("product")
        .filter(expiry_date__lt=as_of, quantity_remaining__gt=0)
        .exclude(status__in=[StockBatch.Status.DISPOSE, StockBatch.Status.RETURNED])
        .order_by("expiry_date", "id")
    )


def mark_expired(as_of=None) -> int:
    as_of = as_of or timezone.localdate()
    updated = StockBatch.objects.filter(
        status=StockBatch.Status.ACTIVE,
        expiry_date__lt=as_of,
    ).update(status=StockBatch.Status.EXPIRED, updated_at=timezone.now())

    if updated:
        logger.info("Batches marked expired", extra={"count": updated, "as_of": str(as_of)})
    return updated


@transaction.atomic
def dispose_batch(
    *,
    batch: StockBatch,
    disposal_method: str,
    cost_loss=None,
    reason: str = "",
    disposal_date=None,
    user=None,
) -> ExpiredDisposal:
    """
    Dispose of what is left in a batch.

    The whole remaining quantity leaves the batch.
    cost_loss defaults to cost_price x quantity when the batch has a cost.
    """
    if disposal_method not in ExpiredDisposal.Method.values:
        raise DisposalError(f"Unknown disposal_method '{disposal_method}'")

    locked = StockBatch.objects.select_for_update().select_related("product").get(pk=batch.pk)

    if locked.status in (StockBatch.Status.DISPOSE, StockBatch.Status.RETURNED):
        raise DisposalError("Batch has already been disposed")

    qty = int(locked.quantity_remaining or 0)
    if qty <= 0:
        raise DisposalError("Nothing to dispose: batch has no remaining units")

    if cost_loss in (None, ""):
        loss = Decimal("0.00")
        if locked.cost_price is not None:
            loss = Decimal(locked.cost_price) * qty
    else:
        loss = Decimal(str(cost_loss))
    loss = loss.quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    disposal = ExpiredDisposal.objects.create(
        product=locked.product,
        batch=locked,
        batch_number=locked.batch_number,
        quantity_disposed=qty,
        disposal_date=disposal_date or timezone.localdate(),
        disposal_method=disposal_method,
        cost_loss=loss,
        reason=reason or "",
    )

    locked.quantity_remaining = 0
    if disposal_method == ExpiredDisposal.Method.RETURN_SUPPLIER:
        locked.status = StockBatch.Status.RETURNED
    else:
        locked.status = StockBatch.Status.DISPOSE
    locked.save(update_fields=["quantity_remaining", "status", "updated_at"])

    stock_ledger.increment(locked.product_id, -qty)

    StockMovement.objects.create(
        product=locked.product,
        batch=locked,
        movement_type=StockMovement.MovementType.DISPOSAL,
        quantity=qty,
        cost_loss=loss,
        notes=reason or "",
        performed_by=user,
    )

    logger.info(
        "Batch disposed",
        extra={"batch_id": locked.id, "quantity": qty, "method": disposal_method},
    )
    return disposal


def disposal_statistics() -> dict:
    totals = ExpiredDisposal.objects.aggregate(
        total_cost_loss=Sum("cost_loss"),
        total_quantity_disposed=Sum("quantity_disposed"),
        total_disposals=Count("id"),
    )

    breakdown = {}
    rows = (
        ExpiredDisposal.objects.values("disposal_method")
        .annotate(count=Count("id"), total_cost=Sum("cost_loss"), total_quantity=Sum("quantity_disposed"))
        .order_by("disposal_method")
    )
    for row in rows:
        breakdown[row["disposal_method"]] = {
            "count": row["count"],
            "total_cost": row["total_cost"] or Decimal("0.00"),
            "total_quantity": row["total_quantity"] or 0,
        }

    return {
        "total_cost_loss": totals["total_cost_loss"] or Decimal("0.00"),
        "total_quantity_disposed": totals["total_quantity_disposed"] or 0,
        "total_disposals": totals["total_disposals"] or 0,
        "method_breakdown": breakdown,
    }
