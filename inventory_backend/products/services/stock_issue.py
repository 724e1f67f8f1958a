# products/services/stock_issue.py

"""
STOCK ISSUE (RETURN / DAMAGE / ADJUSTMENT)

Takes units out of the aggregate ledger with an audit movement.

Rules:
- Rejected when the ledger holds fewer units than requested.
- cost_loss = unit cost x quantity, where unit cost is the batch cost_price
  when a batch is given and has one, otherwise the product's unit_price.
- Batch quantities are not touched here; issue works on the ledger only.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction

from products.models import StockBatch, StockLedger, StockMovement

TWOPLACES = Decimal("0.01")

ISSUE_TYPES = {
    StockMovement.MovementType.RETURN,
    StockMovement.MovementType.DAMAGE,
    StockMovement.MovementType.ADJUSTMENT,
}


class StockIssueError(Exception):
    pass


class InsufficientLedgerStockError(StockIssueError):
    pass


@dataclass(frozen=True)
class IssueResult:
    ledger: StockLedger
    movement: StockMovement


@transaction.atomic
def issue_stock(
    *,
    product,
    movement_type: str,
    quantity,
    batch: StockBatch | None = None,
    notes: str = "",
    user=None,
) -> IssueResult:
    if movement_type not in ISSUE_TYPES:
        raise StockIssueError(
            f"movement_type must be one of: {', '.join(sorted(ISSUE_TYPES))}"
        )

    if isinstance(quantity, bool):
        raise StockIssueError("quantity must be an integer")
    try:
        qty = int(quantity)
    except (TypeError, ValueError) as exc:
        raise StockIssueError("quantity must be an integer") from exc
    if qty <= 0:
        raise StockIssueError("quantity must be greater than zero")

    if batch is not None and batch.product_id != product.id:
        raise StockIssueError("Batch does not belong to product")

    ledger = StockLedger.objects.select_for_update().filter(product=product).first()
    if ledger is None or int(ledger.current_quantity or 0) < qty:
        raise InsufficientLedgerStockError("Insufficient stock")

    unit_cost = None
    if batch is not None and batch.cost_price is not None:
        unit_cost = Decimal(batch.cost_price)
    elif product.unit_price is not None:
        unit_cost = Decimal(product.unit_price)

    cost_loss = Decimal("0.00")
    if unit_cost is not None:
        cost_loss = (unit_cost * qty).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    ledger.current_quantity = int(ledger.current_quantity) - qty
    ledger.save(update_fields=["current_quantity", "updated_at"])

    movement = StockMovement.objects.create(
        product=product,
        batch=batch,
        movement_type=movement_type,
        quantity=qty,
        cost_loss=cost_loss,
        notes=notes or "",
        performed_by=user,
    )

    return IssueResult(ledger=ledger, movement=movement)
