# products/tests/test_api.py

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from products.models import Product, StockBatch, StockLedger, StockMovement
from products.services.stock_intake import intake_batch

User = get_user_model()


class ProductsApiTests(APITestCase):
    """
    Stock endpoints under /api/products/.

    GUARANTEES:
    - Authentication required
    - Batch intake and edits move the ledger
    - Stock conflicts answer 409
    """

    def setUp(self):
        self.user = User.objects.create_user(username="stock_admin", password="pass")
        self.client.force_authenticate(user=self.user)

        self.product = Product.objects.create(
            sku="AMOX-500",
            name="Amoxicillin 500mg",
            unit_price=Decimal("12.00"),
            units_per_package=10,
        )
        self.expiry = timezone.localdate() + timedelta(days=200)

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)

        res = self.client.get("/api/products/batches/")

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_health_is_public(self):
        self.client.force_authenticate(user=None)

        res = self.client.get("/api/health/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["db"], "ok")

    def test_create_product(self):
        res = self.client.post(
            "/api/products/products/",
            {"sku": "vita-c", "name": "Vitamin C", "unit_price": "4.50", "units_per_package": 24},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["sku"], "VITA-C")
        self.assertIsNone(res.data["ledger_quantity"])

    def test_product_search(self):
        Product.objects.create(sku="VITA-C", name="Vitamin C", unit_price=Decimal("4.50"))

        res = self.client.get("/api/products/products/", {"q": "amox"})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([p["sku"] for p in res.data["results"]], ["AMOX-500"])

    def test_batch_intake(self):
        res = self.client.post(
            "/api/products/batches/",
            {
                "product_id": str(self.product.id),
                "batch_number": "LOT-1",
                "packages_received": 4,
                "expiry_date": self.expiry.isoformat(),
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["quantity"], 40)
        self.assertEqual(res.data["quantity_remaining"], 40)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 40)

    def test_batch_intake_requires_quantity(self):
        res = self.client.post(
            "/api/products/batches/",
            {"product_id": str(self.product.id), "expiry_date": self.expiry.isoformat()},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_batch_patch_shifts_ledger(self):
        batch = intake_batch(product=self.product, batch_number="LOT-1", quantity=20, expiry_date=self.expiry)

        res = self.client.patch(f"/api/products/batches/{batch.id}/", {"quantity": 25}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["quantity_remaining"], 25)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 25)

    def test_batch_put_not_allowed(self):
        batch = intake_batch(product=self.product, quantity=20, expiry_date=self.expiry)

        res = self.client.put(
            f"/api/products/batches/{batch.id}/",
            {"product_id": str(self.product.id), "quantity": 5, "expiry_date": self.expiry.isoformat()},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_expired_listing_and_disposal(self):
        old = intake_batch(product=self.product, batch_number="OLD", quantity=6, expiry_date=date(2025, 1, 1))

        listing = self.client.get("/api/products/batches/expired/", {"as_of": "2025-06-01"})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual([b["id"] for b in listing.data["results"]], [old.id])

        res = self.client.post(
            f"/api/products/batches/{old.id}/dispose/",
            {"disposal_method": "trash", "reason": "Expired"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["quantity_disposed"], 6)

        again = self.client.post(
            f"/api/products/batches/{old.id}/dispose/",
            {"disposal_method": "trash"},
            format="json",
        )
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

        stats = self.client.get("/api/products/disposals/statistics/")
        self.assertEqual(stats.data["total_disposals"], 1)

    def test_low_stock_and_thresholds(self):
        StockLedger.objects.create(product=self.product, current_quantity=3)

        res = self.client.patch(
            f"/api/products/stock-ledger/{self.product.id}/thresholds/",
            {"min_stock_level": 5, "max_stock_level": 100},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["threshold_quantity"], 5)
        self.assertTrue(res.data["is_low_stock"])

        low = self.client.get("/api/products/stock-ledger/low/")
        self.assertEqual(low.data["count"], 1)

    def test_stock_issue_conflict(self):
        intake_batch(product=self.product, quantity=5, expiry_date=self.expiry)

        res = self.client.post(
            "/api/products/stock-issues/",
            {"product_id": str(self.product.id), "movement_type": "damage", "quantity": 6},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

    def test_stock_issue_and_movement_listing(self):
        intake_batch(product=self.product, quantity=5, expiry_date=self.expiry)

        res = self.client.post(
            "/api/products/stock-issues/",
            {"product_id": str(self.product.id), "movement_type": "return", "quantity": 2},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["cost_loss"], "24.00")

        movements = self.client.get(
            "/api/products/stock-movements/",
            {"product_id": str(self.product.id), "movement_type": "return"},
        )
        self.assertEqual(movements.data["count"], 1)
        self.assertEqual(StockMovement.objects.filter(product=self.product).count(), 2)

    def test_min_stock_calculate(self):
        res = self.client.post(
            "/api/products/min-stock/calculate/",
            {"product_id": str(self.product.id), "config": {"minThreshold": 12}},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["min_stock_level"], 12)
        self.assertEqual(res.data["method"], "default")

    def test_min_stock_calculate_bad_config(self):
        res = self.client.post(
            "/api/products/min-stock/calculate/",
            {"product_id": str(self.product.id), "config": {"bogus": 1}},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(res.data["success"])

    def test_min_stock_calculate_database_error(self):
        with patch("products.views.min_stock.recommend", side_effect=DatabaseError("connection lost")):
            res = self.client.post(
                "/api/products/min-stock/calculate/",
                {"product_id": str(self.product.id)},
                format="json",
            )

        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(res.data["success"])
        self.assertIn("connection lost", res.data["error"])

    def test_min_stock_update_all_and_apply(self):
        res = self.client.post("/api/products/min-stock/update-all/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["updated_count"], 1)
        self.assertEqual(StockLedger.objects.get(product=self.product).threshold_quantity, 10)

        res = self.client.post(
            "/api/products/min-stock/apply/",
            {"product_id": str(self.product.id), "min_stock_level": 30},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["threshold_quantity"], 30)

    def test_batches_listed_in_fifo_order(self):
        late = intake_batch(product=self.product, quantity=1, expiry_date=self.expiry + timedelta(days=10))
        early = intake_batch(product=self.product, quantity=1, expiry_date=self.expiry)

        res = self.client.get("/api/products/batches/", {"product_id": str(self.product.id)})

        self.assertEqual([b["id"] for b in res.data["results"]], [early.id, late.id])
        self.assertEqual(StockBatch.objects.count(), 2)
