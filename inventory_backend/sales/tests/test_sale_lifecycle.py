from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from sales.models import Sale
from sales.services.sale_lifecycle import (
    InvalidSaleTransitionError,
    SaleLifecycleError,
    can_transition,
    update_process_status,
)


class SaleProcessStatusTests(TestCase):
    """
    Order tracker rules.

    GUARANTEES:
    - pending -> processing -> completed
    - cancelled only from non-terminal states
    - Financial fields stay immutable
    """

    def setUp(self):
        self.sale = Sale.objects.create(
            subtotal_amount=Decimal("100.00"),
            total_amount=Decimal("100.00"),
            process_status=Sale.ProcessStatus.PENDING,
        )

    def test_invoice_number_generated(self):
        self.assertTrue(self.sale.invoice_no.startswith("INV"))

    def test_forward_path(self):
        sale = update_process_status(sale=self.sale, process_status="processing")
        self.assertEqual(sale.process_status, Sale.ProcessStatus.PROCESSING)

        sale = update_process_status(sale=sale, process_status="completed")
        self.assertEqual(sale.process_status, Sale.ProcessStatus.COMPLETED)

    def test_cancel_from_pending(self):
        sale = update_process_status(sale=self.sale, process_status="cancelled")
        self.assertEqual(sale.process_status, Sale.ProcessStatus.CANCELLED)

    def test_completed_is_terminal(self):
        self.assertFalse(can_transition(from_status="completed", to_status="cancelled"))

        Sale.objects.filter(pk=self.sale.pk).update(process_status="completed")
        with self.assertRaises(InvalidSaleTransitionError):
            update_process_status(sale=self.sale, process_status="cancelled")

    def test_cannot_skip_processing(self):
        with self.assertRaises(InvalidSaleTransitionError):
            update_process_status(sale=self.sale, process_status="completed")

    def test_unknown_status(self):
        with self.assertRaises(SaleLifecycleError):
            update_process_status(sale=self.sale, process_status="shipped")

    def test_totals_are_immutable(self):
        self.sale.total_amount = Decimal("999.00")

        with self.assertRaises(ValidationError):
            self.sale.save()

        self.assertEqual(Sale.objects.get(pk=self.sale.pk).total_amount, Decimal("100.00"))
