# sales/services/settlement.py

"""
SALE SETTLEMENT (APPLICATION SERVICE)

Purpose:
- Turn a cart (GeneralCart | DealerCart) into a persisted Sale + SaleItems.
- Push the sold units through the stock ledger and the FIFO batch allocator.

Phases:
1) Validate (no writes): non-empty cart, known products/dealer, positive quantities.
2) Totals: every stage rounded to 2dp (line subtotal, subtotal, discount, tax, total).
3) Header insert, then ONE bulk insert of the items.
   If the items insert fails, the header is deleted (compensation) and the
   settlement fails. No header without items is left behind.
4) Stock phase, per line in cart order:
   ledger decrement -> FIFO allocation.
   Errors here are collected as warnings and never undo the sale.

Policy (settings.SETTLEMENT):
- ALLOW_OVERSELL=False runs phases 3 and 4 in one transaction. Active batches
  are locked and checked before the header insert, and any shortfall found
  during allocation rolls the whole sale back. With True a shortfall is only
  reported.
- LOCK_ROWS=True reads ledger/batch rows with SELECT ... FOR UPDATE.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from products.models import Product
from products.services import batch_allocator, stock_ledger
from products.services.batch_allocator import StockUpdateError, error_text
from products.services.stock_ledger import LedgerNotFoundError
from sales.models import Dealer, Sale, SaleItem

from .carts import (
    Cart,
    DealerCart,
    GeneralCart,
    Settled,
    SettledWithWarnings,
    SettlementFailed,
    SettlementOutcome,
    Totals,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")


# ============================================================
# DOMAIN ERRORS
# ============================================================


class SettlementError(Exception):
    pass


class EmptyCartError(SettlementError):
    pass


class SettlementValidationError(SettlementError):
    pass


class SalePersistenceError(SettlementError):
    pass


class InsufficientStockError(SettlementError):
    pass


@dataclass(frozen=True)
class SettlementPolicy:
    allow_oversell: bool = True
    lock_rows: bool = True

    @classmethod
    def from_settings(cls) -> "SettlementPolicy":
        conf = getattr(settings, "SETTLEMENT", {}) or {}
        return cls(
            allow_oversell=bool(conf.get("ALLOW_OVERSELL", True)),
            lock_rows=bool(conf.get("LOCK_ROWS", True)),
        )


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise SettlementValidationError(f"Invalid amount: {v!r}") from exc


def _to_int_qty(value) -> int:
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise SettlementValidationError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise SettlementValidationError("quantity must be a whole integer unit")


# ============================================================
# VALIDATION
# ============================================================


def _load_products(cart: Cart) -> dict[str, Product]:
    ids = set()
    for line in cart.lines:
        try:
            ids.add(str(uuid.UUID(str(line.product_id))))
        except ValueError as exc:
            raise SettlementValidationError(f"Invalid product_id: {line.product_id}") from exc

    found = {str(p.id): p for p in Product.objects.filter(id__in=ids)}
    missing = sorted(ids - set(found))
    if missing:
        raise SettlementValidationError(f"Product not found: {', '.join(missing)}")
    return found


def _resolve_units(cart: Cart, products: dict[str, Product]) -> list[int]:
    """
    Units per line, in cart order.
    Dealer lines convert package_qty x units_per_package.
    """
    units = []
    for line in cart.lines:
        product = products[str(uuid.UUID(str(line.product_id)))]

        if isinstance(cart, DealerCart):
            packages = _to_int_qty(line.package_qty)
            if packages < 1:
                raise SettlementValidationError("package_qty must be >= 1 for dealer lines")
            units.append(product.units_for_packages(packages))
            continue

        qty = _to_int_qty(line.quantity)
        if qty < 1:
            raise SettlementValidationError("quantity must be >= 1")
        units.append(qty)

    return units


def validate_cart(cart: Cart) -> tuple[dict[str, Product], list[int]]:
    if not cart.lines:
        raise EmptyCartError("Cart items are required and must not be empty")

    if isinstance(cart, DealerCart):
        if not cart.dealer_id:
            raise SettlementValidationError("dealer_id is required for dealer sales")
        if not Dealer.objects.filter(pk=cart.dealer_id).exists():
            raise SettlementValidationError(f"Dealer not found: {cart.dealer_id}")
    elif not isinstance(cart, GeneralCart):
        raise SettlementValidationError(f"Unsupported cart type: {type(cart).__name__}")

    for line in cart.lines:
        if _money(line.unit_price) < Decimal("0.00"):
            raise SettlementValidationError("unit_price cannot be negative")

    products = _load_products(cart)
    return products, _resolve_units(cart, products)


# ============================================================
# TOTALS
# ============================================================


def compute_totals(cart: Cart, units: list[int]) -> Totals:
    """
    Every stage is rounded to 2dp before the next one uses it.
    Percentages win over flat amounts when both are supplied.
    """
    line_subtotals = tuple(
        _money(_money(line.unit_price) * Decimal(qty))
        for line, qty in zip(cart.lines, units)
    )
    subtotal = _money(sum(line_subtotals, Decimal("0.00")))

    if cart.discount_percent is not None:
        discount = _money(subtotal * _money(cart.discount_percent) / HUNDRED)
    else:
        discount = _money(cart.discount_amount)

    if cart.tax_percent is not None:
        tax = _money(subtotal * _money(cart.tax_percent) / HUNDRED)
    else:
        tax = _money(cart.tax_amount)

    if discount < Decimal("0.00") or tax < Decimal("0.00"):
        raise SettlementValidationError("discount and tax cannot be negative")

    total = _money(subtotal - discount + tax)
    return Totals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=total,
        line_subtotals=line_subtotals,
    )


def _requested_units(cart: Cart, units: list[int]) -> dict[str, int]:
    requested = defaultdict(int)
    for line, qty in zip(cart.lines, units):
        requested[str(uuid.UUID(str(line.product_id)))] += qty
    return requested


def _insufficient(product: Product, requested: int, available: int) -> InsufficientStockError:
    return InsufficientStockError(
        f"Insufficient stock for {product.name}. "
        f"Requested: {requested}, Available: {available}"
    )


def _check_coverage(cart: Cart, products: dict[str, Product], units: list[int], *, lock: bool):
    # batches are locked in product-id order
    requested = _requested_units(cart, units)
    for pid in sorted(requested):
        available = batch_allocator.available_units(pid, lock=lock)
        if available < requested[pid]:
            raise _insufficient(products[pid], requested[pid], available)


def _reject_shortfall(cart: Cart, products, units, warnings: list[StockUpdateError]):
    short = defaultdict(int)
    for warning in warnings:
        short[warning.product_id] += warning.shortfall

    requested = _requested_units(cart, units)
    for pid in sorted(short):
        if short[pid] > 0:
            raise _insufficient(products[pid], requested[pid], requested[pid] - short[pid])


# ============================================================
# PERSISTENCE
# ============================================================


def _initial_process_status(cart: Cart) -> str:
    if isinstance(cart, GeneralCart) and cart.channel == Sale.Channel.WALK_IN:
        return Sale.ProcessStatus.COMPLETED
    return Sale.ProcessStatus.PENDING


def _insert_header(cart: Cart, totals: Totals, user) -> Sale:
    fields = {
        "user": user if getattr(user, "is_authenticated", False) else None,
        "customer_type": cart.customer_type,
        "subtotal_amount": totals.subtotal,
        "discount_amount": totals.discount,
        "tax_amount": totals.tax,
        "total_amount": totals.total,
        "payment_method": cart.payment_method,
        "payment_status": cart.payment_status,
        "process_status": _initial_process_status(cart),
        "note": cart.note or "",
    }
    if isinstance(cart, DealerCart):
        fields.update(
            dealer_id=cart.dealer_id,
            delivery_date=cart.delivery_date,
            payment_due_date=cart.payment_due_date,
        )
    else:
        fields["channel"] = cart.channel

    try:
        return Sale.objects.create(**fields)
    except DatabaseError as exc:
        logger.exception("Failed to insert sale header")
        raise SalePersistenceError(f"Error inserting sale: {exc}") from exc


def _insert_items(sale: Sale, cart: Cart, units: list[int], totals: Totals) -> list[SaleItem]:
    is_dealer = isinstance(cart, DealerCart)
    rows = [
        SaleItem(
            sale=sale,
            product_id=line.product_id,
            quantity=qty,
            unit_price=_money(line.unit_price),
            subtotal=line_subtotal,
            total=line_subtotal,
            package_qty=_to_int_qty(line.package_qty) if is_dealer else None,
            package_type=(line.package_type or "") if is_dealer else "",
        )
        for line, qty, line_subtotal in zip(cart.lines, units, totals.line_subtotals)
    ]

    try:
        with transaction.atomic():
            return SaleItem.objects.bulk_create(rows)
    except DatabaseError as exc:
        logger.exception(
            "Failed to insert sale items, removing sale header",
            extra={"sale_id": str(sale.pk)},
        )
        Sale.objects.filter(pk=sale.pk).delete()
        raise SalePersistenceError(f"Error inserting sale item: {exc}") from exc


# ============================================================
# STOCK PHASE
# ============================================================


def _apply_stock(sale: Sale, cart: Cart, products, units, *, policy: SettlementPolicy, user=None):
    is_dealer = isinstance(cart, DealerCart)
    batch_updates = []
    warnings: list[StockUpdateError] = []

    for line, qty in zip(cart.lines, units):
        pid = str(uuid.UUID(str(line.product_id)))
        product = products[pid]
        packages = _to_int_qty(line.package_qty) if is_dealer else None

        try:
            stock_ledger.decrement(pid, qty, packages, lock=policy.lock_rows)
        except LedgerNotFoundError as exc:
            warnings.append(StockUpdateError(product_id=pid, error=str(exc)))
            continue
        except (DatabaseError, ValidationError) as exc:
            warnings.append(
                StockUpdateError(product_id=pid, error=f"Error updating stock: {error_text(exc)}")
            )
            continue

        try:
            allocation = batch_allocator.allocate(
                pid,
                qty,
                sale=sale,
                user=user if getattr(user, "is_authenticated", False) else None,
                lock=policy.lock_rows,
                package_type=(line.package_type or None) if is_dealer else None,
                units_per_package=product.units_per_package,
            )
        except (DatabaseError, ValidationError) as exc:
            warnings.append(
                StockUpdateError(product_id=pid, error=f"Batch fetch error: {error_text(exc)}")
            )
            continue

        batch_updates.extend(allocation.records)
        warnings.extend(allocation.errors)

    return batch_updates, warnings


# ============================================================
# ENTRY POINT
# ============================================================


def _settle_covered(cart: Cart, products, units, totals: Totals, *, policy: SettlementPolicy, user=None):
    """
    Settlement with oversell disabled: one transaction from the coverage check
    to the last batch update. A shortfall raises and rolls the sale back.
    """
    with transaction.atomic():
        _check_coverage(cart, products, units, lock=policy.lock_rows)

        sale = _insert_header(cart, totals, user)
        items = _insert_items(sale, cart, units, totals)
        batch_updates, warnings = _apply_stock(sale, cart, products, units, policy=policy, user=user)

        _reject_shortfall(cart, products, units, warnings)

    return sale, items, batch_updates, warnings


def settle_sale(cart: Cart, *, user=None, policy: SettlementPolicy | None = None) -> SettlementOutcome:
    """
    Settle a cart. Never raises for domain failures: returns one of
    Settled / SettledWithWarnings / SettlementFailed.
    """
    policy = policy or SettlementPolicy.from_settings()

    try:
        products, units = validate_cart(cart)
        totals = compute_totals(cart, units)

        if policy.allow_oversell:
            sale = _insert_header(cart, totals, user)
            items = _insert_items(sale, cart, units, totals)
            batch_updates, warnings = _apply_stock(
                sale, cart, products, units, policy=policy, user=user
            )
        else:
            sale, items, batch_updates, warnings = _settle_covered(
                cart, products, units, totals, policy=policy, user=user
            )
    except SalePersistenceError as exc:
        return SettlementFailed(error=str(exc))
    except SettlementError as exc:
        logger.info("Settlement rejected: %s", exc)
        return SettlementFailed(error=str(exc))

    if warnings:
        logger.warning(
            "Sale settled with stock update errors",
            extra={"sale_id": str(sale.pk), "error_count": len(warnings)},
        )
        return SettledWithWarnings(
            sale=sale, sale_items=items, batch_updates=batch_updates, warnings=warnings
        )

    logger.info(
        "Sale settled",
        extra={"sale_id": str(sale.pk), "batches_updated": len(batch_updates)},
    )
    return Settled(sale=sale, sale_items=items, batch_updates=batch_updates)
