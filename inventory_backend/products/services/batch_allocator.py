# products/services/batch_allocator.py

"""
FIFO BATCH ALLOCATOR

Purpose:
- Deduct a unit quantity from a product's active batches, earliest expiry first.
- Report what was taken from each batch (AllocationRecord) and what could not
  be covered (shortfall), without raising for a shortfall.

Rules:
- Candidates: status=active AND quantity_remaining > 0, ordered by
  (expiry_date, id). Ties on expiry fall back to insertion order.
- deduct = min(needed, remaining). A batch never goes below zero.
- A batch drained to 0 becomes DEPLETED.
- Each batch update runs in its own savepoint. A failed update is recorded as an
  error for that batch and the loop moves on to the next one.
- Integer-only quantities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from products.models import StockBatch, StockMovement

logger = logging.getLogger(__name__)


class BatchAllocationError(Exception):
    pass


@dataclass(frozen=True)
class AllocationRecord:
    product_id: str
    batch_id: int
    expiry_date: date
    previous_quantity: int
    new_quantity: int
    deducted: int
    package_type: str | None = None
    packages_deducted: int | None = None

    def as_dict(self) -> dict:
        data = {
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "deducted": self.deducted,
        }
        if self.package_type:
            data["package_type"] = self.package_type
            data["packages_deducted"] = self.packages_deducted
        return data


@dataclass(frozen=True)
class StockUpdateError:
    product_id: str
    error: str
    batch_id: int | None = None
    shortfall: int = 0

    def as_dict(self) -> dict:
        data = {"product_id": self.product_id, "error": self.error}
        if self.batch_id is not None:
            data["batch_id"] = self.batch_id
        if self.shortfall:
            data["shortfall"] = self.shortfall
        return data


@dataclass
class AllocationResult:
    records: list[AllocationRecord] = field(default_factory=list)
    shortfall: int = 0
    errors: list[StockUpdateError] = field(default_factory=list)

    @property
    def allocated(self) -> int:
        return sum(r.deducted for r in self.records)

    @property
    def fully_allocated(self) -> bool:
        return self.shortfall == 0 and not self.errors


def _to_int_qty(value) -> int:
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise BatchAllocationError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.lstrip("-").isdigit():
            return int(s)

    raise BatchAllocationError("quantity must be a whole integer unit")


def candidate_batches(product_id):
    return StockBatch.objects.filter(
        product_id=product_id,
        status=StockBatch.Status.ACTIVE,
        quantity_remaining__gt=0,
    ).order_by("expiry_date", "id")


def available_units(product_id, *, lock: bool = False) -> int:
    """
    Units left in the product's active batches.
    lock=True holds the batch rows until the surrounding transaction ends.
    """
    qs = candidate_batches(product_id)
    if lock:
        qs = qs.select_for_update()
    return sum(int(b.quantity_remaining or 0) for b in qs)


def error_text(exc) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc)


def shortfall_message(*, shortfall: int, had_batches: bool) -> str:
    if not had_batches:
        return "No active batches available"
    return f"Insufficient batch quantity. Short by {shortfall} units."


def _deduct_from_batch(batch_id: int, needed: int, *, lock: bool, sale=None, user=None):
    """
    Apply one deduction (and its SALE movement) inside a savepoint.
    Returns (previous, new, deducted, batch) or None if the batch is no longer
    allocatable (drained or deactivated since the candidate list was read).
    """
    with transaction.atomic():
        qs = StockBatch.objects.select_related("product")
        if lock:
            qs = qs.select_for_update()
        batch = qs.get(pk=batch_id)

        previous = int(batch.quantity_remaining or 0)
        if batch.status != StockBatch.Status.ACTIVE or previous <= 0:
            return None

        deducted = min(needed, previous)
        batch.quantity_remaining = previous - deducted
        if batch.quantity_remaining == 0:
            batch.status = StockBatch.Status.DEPLETED
        batch.save(update_fields=["quantity_remaining", "status", "updated_at"])

        if sale is not None:
            StockMovement.objects.create(
                product_id=batch.product_id,
                batch=batch,
                movement_type=StockMovement.MovementType.SALE,
                quantity=deducted,
                performed_by=user,
                sale=sale,
            )

        return previous, batch.quantity_remaining, deducted, batch


def allocate(
    product_id,
    units_needed,
    *,
    sale=None,
    user=None,
    lock: bool = True,
    package_type: str | None = None,
    units_per_package: int = 1,
) -> AllocationResult:
    """
    Deduct units_needed from the product's batches in FIFO (expiry) order.

    A shortfall is returned, never raised. Zero or negative requests are a no-op.
    When a sale is given, one SALE stock movement is written per record.
    """
    needed = _to_int_qty(units_needed)
    result = AllocationResult()
    if needed <= 0:
        return result

    pid = str(product_id)
    candidates = list(candidate_batches(product_id).values_list("id", flat=True))

    for batch_id in candidates:
        if needed <= 0:
            break

        try:
            applied = _deduct_from_batch(batch_id, needed, lock=lock, sale=sale, user=user)
        except (DatabaseError, ValidationError) as exc:
            logger.warning(
                "Batch update failed during allocation",
                extra={"product_id": pid, "batch_id": batch_id},
            )
            result.errors.append(
                StockUpdateError(
                    product_id=pid, batch_id=batch_id, error=f"Error updating batch: {error_text(exc)}"
                )
            )
            continue

        if applied is None:
            continue

        previous, new, deducted, batch = applied
        packages_deducted = None
        if package_type:
            packages_deducted = deducted // max(int(units_per_package or 1), 1)

        record = AllocationRecord(
            product_id=pid,
            batch_id=batch.id,
            expiry_date=batch.expiry_date,
            previous_quantity=previous,
            new_quantity=new,
            deducted=deducted,
            package_type=package_type or None,
            packages_deducted=packages_deducted,
        )
        result.records.append(record)
        needed -= deducted

    if needed > 0:
        result.shortfall = needed
        result.errors.append(
            StockUpdateError(
                product_id=pid,
                error=shortfall_message(shortfall=needed, had_batches=bool(candidates)),
                shortfall=needed,
            )
        )
        logger.warning(
            "FIFO allocation shortfall",
            extra={"product_id": pid, "shortfall": needed},
        )

    return result
