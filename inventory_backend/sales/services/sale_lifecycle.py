"""
SALE PROCESS-STATUS RULES

Defines the ONLY allowed order-tracker transitions for a Sale:

    pending -> processing -> completed
    pending | processing -> cancelled

completed and cancelled are terminal. Financial fields are never touched here.
"""

import logging

from django.db import transaction

from sales.models import Sale

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================


class SaleLifecycleError(Exception):
    pass


class InvalidSaleTransitionError(SaleLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

PS = Sale.ProcessStatus

TERMINAL_STATES = {
    PS.COMPLETED,
    PS.CANCELLED,
}

ALLOWED_TRANSITIONS = {
    PS.PENDING: {PS.PROCESSING, PS.CANCELLED},
    PS.PROCESSING: {PS.COMPLETED, PS.CANCELLED},
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, sale: Sale, target_status: str):
    if target_status not in PS.values:
        raise SaleLifecycleError(f"Unknown process_status '{target_status}'")

    if not can_transition(from_status=sale.process_status, to_status=target_status):
        raise InvalidSaleTransitionError(
            f"Sale {sale.id} cannot transition from "
            f"'{sale.process_status}' to '{target_status}'"
        )


@transaction.atomic
def update_process_status(*, sale: Sale, process_status: str) -> Sale:
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    validate_transition(sale=sale, target_status=process_status)

    previous = sale.process_status
    sale.process_status = process_status
    sale.save(update_fields=["process_status", "updated_at"])

    logger.info(
        "Sale process status changed",
        extra={"sale_id": str(sale.pk), "from": previous, "to": process_status},
    )
    return sale
