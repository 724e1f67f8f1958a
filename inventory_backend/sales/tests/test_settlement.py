# sales/tests/test_settlement.py

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase

from products.models import Product, StockBatch, StockLedger, StockMovement
from products.services import stock_ledger
from sales.models import Dealer, Sale, SaleItem
from sales.services import settlement
from sales.services.carts import (
    CartLine,
    DealerCart,
    GeneralCart,
    Settled,
    SettledWithWarnings,
    SettlementFailed,
)
from sales.services.settlement import SettlementPolicy, compute_totals, settle_sale

User = get_user_model()


class SettlementTestBase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="cashier", password="pass")

        self.product = Product.objects.create(
            sku="PCM-500",
            name="Paracetamol 500mg",
            unit_price=Decimal("2.50"),
            units_per_package=12,
            package_type=Product.PackageType.CASE,
        )
        self.other = Product.objects.create(
            sku="VITA-C",
            name="Vitamin C",
            unit_price=Decimal("3.33"),
        )

    def stock(self, product, *batches):
        """batches: (batch_number, expiry, remaining)"""
        created = []
        for number, expiry, remaining in batches:
            created.append(
                StockBatch.objects.create(
                    product=product,
                    batch_number=number,
                    expiry_date=expiry,
                    quantity=remaining,
                    quantity_remaining=remaining,
                )
            )
        StockLedger.objects.update_or_create(
            product=product,
            defaults={"current_quantity": sum(b[2] for b in batches)},
        )
        return created

    def line(self, product, quantity, unit_price=None, **extra):
        return CartLine(
            product_id=str(product.id),
            quantity=quantity,
            unit_price=unit_price if unit_price is not None else product.unit_price,
            **extra,
        )


class GeneralSettlementTests(SettlementTestBase):
    def test_settled_sale_allocates_fifo(self):
        b1, b2 = self.stock(
            self.product,
            ("B1", date(2024, 1, 10), 5),
            ("B2", date(2024, 2, 1), 20),
        )

        outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 8)]), user=self.user)

        self.assertIsInstance(outcome, Settled)
        self.assertNotIsInstance(outcome, SettledWithWarnings)
        self.assertTrue(outcome.success)

        b1.refresh_from_db()
        b2.refresh_from_db()
        self.assertEqual(b1.quantity_remaining, 0)
        self.assertEqual(b1.status, StockBatch.Status.DEPLETED)
        self.assertEqual(b2.quantity_remaining, 17)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 17)

        self.assertEqual([r.deducted for r in outcome.batch_updates], [5, 3])
        self.assertEqual(
            StockMovement.objects.filter(
                sale=outcome.sale, movement_type=StockMovement.MovementType.SALE
            ).count(),
            2,
        )

    def test_sale_subtotal_matches_line_sum(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 100))
        self.stock(self.other, ("V1", date(2030, 1, 1), 100))

        cart = GeneralCart(
            lines=[
                self.line(self.product, 3, Decimal("2.505")),
                self.line(self.other, 7),
            ],
        )
        outcome = settle_sale(cart, user=self.user)

        sale = outcome.sale
        items = SaleItem.objects.filter(sale=sale)
        line_sum = sum((i.subtotal for i in items), Decimal("0.00"))
        self.assertEqual(items.count(), 2)
        self.assertLessEqual(abs(sale.subtotal_amount - line_sum), Decimal("0.01"))
        self.assertEqual(sale.total_amount, sale.subtotal_amount)

    def test_totals_are_rounded_at_each_stage(self):
        cart = GeneralCart(
            lines=[self.line(self.product, 3, Decimal("33.33"))],
            discount_percent=Decimal("10"),
            tax_percent=Decimal("7.5"),
        )

        totals = compute_totals(cart, [3])

        self.assertEqual(totals.subtotal, Decimal("99.99"))
        self.assertEqual(totals.discount, Decimal("10.00"))
        self.assertEqual(totals.tax, Decimal("7.50"))
        self.assertEqual(totals.total, Decimal("97.49"))

    def test_flat_discount_and_tax_amounts(self):
        cart = GeneralCart(
            lines=[self.line(self.product, 4, Decimal("25.00"))],
            discount_amount=Decimal("5.00"),
            tax_amount=Decimal("2.25"),
        )

        totals = compute_totals(cart, [4])

        self.assertEqual(totals.total, Decimal("97.25"))

    def test_empty_cart_rejected_before_any_write(self):
        outcome = settle_sale(GeneralCart(lines=[]), user=self.user)

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.error, "Cart items are required and must not be empty")
        self.assertEqual(Sale.objects.count(), 0)

    def test_unknown_product_rejected(self):
        cart = GeneralCart(
            lines=[
                CartLine(
                    product_id="00000000-0000-0000-0000-000000000000",
                    quantity=1,
                    unit_price=Decimal("1.00"),
                )
            ]
        )

        outcome = settle_sale(cart, user=self.user)

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertIn("Product not found", outcome.error)
        self.assertEqual(Sale.objects.count(), 0)

    def test_header_insert_failure(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 10))

        with patch.object(Sale.objects, "create", side_effect=DatabaseError("boom")):
            outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 1)]), user=self.user)

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertEqual(outcome.error, "Error inserting sale: boom")
        self.assertEqual(SaleItem.objects.count(), 0)

    def test_items_insert_failure_removes_header(self):
        b1 = self.stock(self.product, ("B1", date(2030, 1, 1), 10))[0]

        with patch.object(SaleItem.objects, "bulk_create", side_effect=DatabaseError("boom")):
            outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 2)]), user=self.user)

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertEqual(outcome.error, "Error inserting sale item: boom")
        self.assertEqual(Sale.objects.count(), 0)
        self.assertEqual(SaleItem.objects.count(), 0)

        b1.refresh_from_db()
        self.assertEqual(b1.quantity_remaining, 10)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 10)

    def test_shortfall_still_succeeds_with_warnings(self):
        b3 = self.stock(self.product, ("B3", date(2030, 1, 1), 4))[0]

        outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 10)]), user=self.user)

        self.assertIsInstance(outcome, SettledWithWarnings)
        self.assertTrue(outcome.success)
        self.assertEqual(len(outcome.batch_updates), 1)
        self.assertEqual(outcome.batch_updates[0].batch_id, b3.id)
        self.assertEqual(outcome.batch_updates[0].deducted, 4)
        self.assertEqual(outcome.warnings[0].shortfall, 6)

        # the ledger trusts the cart and goes negative
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, -6)
        self.assertEqual(Sale.objects.count(), 1)

    def test_missing_ledger_row_skips_allocation_for_that_line(self):
        b1 = StockBatch.objects.create(
            product=self.product,
            batch_number="NOLEDGER",
            expiry_date=date(2030, 1, 1),
            quantity=10,
            quantity_remaining=10,
        )
        v1 = self.stock(self.other, ("V1", date(2030, 1, 1), 10))[0]

        outcome = settle_sale(
            GeneralCart(lines=[self.line(self.product, 2), self.line(self.other, 3)]),
            user=self.user,
        )

        self.assertIsInstance(outcome, SettledWithWarnings)
        self.assertEqual(len(outcome.warnings), 1)
        self.assertEqual(outcome.warnings[0].product_id, str(self.product.id))

        b1.refresh_from_db()
        v1.refresh_from_db()
        self.assertEqual(b1.quantity_remaining, 10)
        self.assertEqual(v1.quantity_remaining, 7)

    def test_ledger_failure_is_not_compensated(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 10))

        with patch.object(stock_ledger, "decrement", side_effect=DatabaseError("locked")):
            outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 2)]), user=self.user)

        self.assertIsInstance(outcome, SettledWithWarnings)
        self.assertIn("locked", outcome.warnings[0].error)
        self.assertEqual(Sale.objects.count(), 1)

    def test_ledger_validation_error_becomes_warning(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 10))

        with patch.object(stock_ledger, "decrement", side_effect=ValidationError("stale ledger row")):
            outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 2)]), user=self.user)

        self.assertIsInstance(outcome, SettledWithWarnings)
        self.assertEqual(outcome.warnings[0].error, "Error updating stock: stale ledger row")
        self.assertEqual(Sale.objects.count(), 1)

    def test_movement_validation_error_leaves_batch_untouched(self):
        b1 = self.stock(self.product, ("B1", date(2030, 1, 1), 10))[0]

        with patch.object(StockMovement, "full_clean", side_effect=ValidationError("unknown performer")):
            outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 4)]), user=self.user)

        self.assertIsInstance(outcome, SettledWithWarnings)
        self.assertEqual(outcome.warnings[0].batch_id, b1.id)
        self.assertEqual(outcome.warnings[0].error, "Error updating batch: unknown performer")
        self.assertEqual(outcome.warnings[1].shortfall, 4)

        b1.refresh_from_db()
        self.assertEqual(b1.quantity_remaining, 10)
        self.assertEqual(Sale.objects.count(), 1)

    def test_oversell_disabled_rejects_up_front(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 4))

        outcome = settle_sale(
            GeneralCart(lines=[self.line(self.product, 10)]),
            user=self.user,
            policy=SettlementPolicy(allow_oversell=False),
        )

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertEqual(
            outcome.error,
            "Insufficient stock for Paracetamol 500mg. Requested: 10, Available: 4",
        )
        self.assertEqual(Sale.objects.count(), 0)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 4)

    def test_oversell_disabled_settles_covered_cart(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 5))

        outcome = settle_sale(
            GeneralCart(lines=[self.line(self.product, 5)]),
            user=self.user,
            policy=SettlementPolicy(allow_oversell=False),
        )

        self.assertIsInstance(outcome, Settled)
        self.assertEqual(outcome.batch_updates[0].new_quantity, 0)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 0)

    def test_oversell_disabled_rolls_back_when_batches_drain_mid_settlement(self):
        """
        Another settlement empties B1 after the coverage check passed.
        The shortfall found during allocation must fail the whole sale.
        """
        b1 = self.stock(self.product, ("B1", date(2030, 1, 1), 5))[0]
        insert_header = settlement._insert_header

        def drain_then_insert(*args, **kwargs):
            StockBatch.objects.filter(pk=b1.pk).update(
                quantity_remaining=0, status=StockBatch.Status.DEPLETED
            )
            return insert_header(*args, **kwargs)

        with patch.object(settlement, "_insert_header", side_effect=drain_then_insert):
            outcome = settle_sale(
                GeneralCart(lines=[self.line(self.product, 5)]),
                user=self.user,
                policy=SettlementPolicy(allow_oversell=False),
            )

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertFalse(outcome.success)
        self.assertEqual(
            outcome.error,
            "Insufficient stock for Paracetamol 500mg. Requested: 5, Available: 0",
        )
        self.assertEqual(Sale.objects.count(), 0)
        self.assertEqual(SaleItem.objects.count(), 0)
        self.assertFalse(StockMovement.objects.filter(movement_type=StockMovement.MovementType.SALE).exists())
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 5)

    def test_unlocked_policy_still_allocates(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 4))

        outcome = settle_sale(
            GeneralCart(lines=[self.line(self.product, 3)]),
            user=self.user,
            policy=SettlementPolicy(lock_rows=False),
        )

        self.assertIsInstance(outcome, Settled)
        self.assertEqual(outcome.batch_updates[0].new_quantity, 1)

    def test_process_status_by_channel(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 10))

        walk_in = settle_sale(GeneralCart(lines=[self.line(self.product, 1)]), user=self.user)
        online = settle_sale(
            GeneralCart(lines=[self.line(self.product, 1)], channel=Sale.Channel.ONLINE),
            user=self.user,
        )

        self.assertEqual(walk_in.sale.process_status, Sale.ProcessStatus.COMPLETED)
        self.assertEqual(online.sale.process_status, Sale.ProcessStatus.PENDING)
        self.assertEqual(walk_in.sale.user, self.user)

    def test_payload_shape(self):
        self.stock(self.product, ("B1", date(2030, 1, 1), 1))

        outcome = settle_sale(GeneralCart(lines=[self.line(self.product, 3)]), user=self.user)
        payload = outcome.as_payload(
            serialize_sale=lambda sale: str(sale.pk),
            serialize_items=lambda items: len(items),
        )

        self.assertEqual(
            set(payload),
            {"success", "sale", "saleItems", "batchUpdates", "stockUpdateErrors"},
        )
        self.assertTrue(payload["success"])
        self.assertEqual(payload["saleItems"], 1)
        self.assertEqual(payload["stockUpdateErrors"][0]["shortfall"], 2)


class DealerSettlementTests(SettlementTestBase):
    def setUp(self):
        super().setUp()
        self.dealer = Dealer.objects.create(name="City Pharmacy Ltd")

    def test_packages_convert_to_units(self):
        self.stock(
            self.product,
            ("B1", date(2030, 1, 1), 30),
            ("B2", date(2030, 6, 1), 30),
        )
        StockLedger.objects.filter(product=self.product).update(package_qty=5)

        cart = DealerCart(
            dealer_id=str(self.dealer.id),
            lines=[
                CartLine(
                    product_id=str(self.product.id),
                    unit_price=Decimal("2.50"),
                    package_qty=3,
                    package_type="case",
                )
            ],
            delivery_date=date.today() + timedelta(days=3),
            payment_status=Sale.PaymentStatus.PENDING,
        )

        outcome = settle_sale(cart, user=self.user)

        self.assertIsInstance(outcome, Settled)
        ledger = StockLedger.objects.get(product=self.product)
        self.assertEqual(ledger.current_quantity, 60 - 36)
        self.assertEqual(ledger.package_qty, 2)
        self.assertEqual(sum(r.deducted for r in outcome.batch_updates), 36)
        self.assertEqual(outcome.batch_updates[0].packages_deducted, 2)

        sale = outcome.sale
        self.assertEqual(sale.customer_type, Sale.CustomerType.DEALER)
        self.assertEqual(sale.dealer, self.dealer)
        self.assertEqual(sale.process_status, Sale.ProcessStatus.PENDING)
        self.assertEqual(sale.subtotal_amount, Decimal("90.00"))

        item = SaleItem.objects.get(sale=sale)
        self.assertEqual(item.quantity, 36)
        self.assertEqual(item.package_qty, 3)
        self.assertEqual(item.package_type, "case")

    def test_unknown_dealer_rejected(self):
        cart = DealerCart(
            dealer_id="00000000-0000-0000-0000-000000000000",
            lines=[CartLine(product_id=str(self.product.id), unit_price=Decimal("1"), package_qty=1)],
        )

        outcome = settle_sale(cart, user=self.user)

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertIn("Dealer not found", outcome.error)

    def test_dealer_line_needs_packages(self):
        cart = DealerCart(
            dealer_id=str(self.dealer.id),
            lines=[CartLine(product_id=str(self.product.id), unit_price=Decimal("1"), quantity=5)],
        )

        outcome = settle_sale(cart, user=self.user)

        self.assertIsInstance(outcome, SettlementFailed)
        self.assertEqual(outcome.error, "package_qty must be >= 1 for dealer lines")
