# sales/tests/test_api.py

from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from products.models import Product, StockBatch, StockLedger
from sales.models import Dealer, Sale, SaleItem

User = get_user_model()

SETTLE_URL = "/api/sales/settle/"


class SalesApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="cashier", password="pass")
        self.client.force_authenticate(user=self.user)

        self.product = Product.objects.create(
            sku="PCM-500",
            name="Paracetamol 500mg",
            unit_price=Decimal("2.00"),
            units_per_package=12,
        )
        self.batch = StockBatch.objects.create(
            product=self.product,
            batch_number="B1",
            expiry_date=date(2030, 1, 1),
            quantity=50,
            quantity_remaining=50,
        )
        StockLedger.objects.create(product=self.product, current_quantity=50)

    def _item(self, quantity, **extra):
        return {
            "product_id": str(self.product.id),
            "quantity": quantity,
            "unit_price": "2.00",
            "subtotal": str(Decimal("2.00") * quantity),
            **extra,
        }

    def test_settle_general_sale(self):
        res = self.client.post(
            SETTLE_URL,
            {
                "cartItems": [self._item(5)],
                "customer_type": "general",
                "payment_method": "card",
                "tax_percent": "10",
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["sale"]["subtotal_amount"], "10.00")
        self.assertEqual(res.data["sale"]["tax_amount"], "1.00")
        self.assertEqual(res.data["sale"]["total_amount"], "11.00")
        self.assertEqual(len(res.data["saleItems"]), 1)
        self.assertEqual(res.data["batchUpdates"][0]["deducted"], 5)
        self.assertNotIn("stockUpdateErrors", res.data)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_remaining, 45)

    def test_settle_shortfall_answers_201_with_errors(self):
        res = self.client.post(SETTLE_URL, {"cart_items": [self._item(60)]}, format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["stockUpdateErrors"][0]["shortfall"], 10)

    def test_settle_empty_cart(self):
        res = self.client.post(SETTLE_URL, {"cart_items": []}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            res.data,
            {"success": False, "error": "Cart items are required and must not be empty"},
        )
        self.assertEqual(Sale.objects.count(), 0)

    def test_settle_dealer_requires_dealer_id(self):
        res = self.client.post(
            SETTLE_URL,
            {"customer_type": "dealer", "cart_items": [self._item(0, package_qty=1)]},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(res.data["success"])
        self.assertIn("dealer_id", res.data["error"])

    def test_settle_dealer_sale(self):
        dealer = Dealer.objects.create(name="City Pharmacy Ltd")

        res = self.client.post(
            SETTLE_URL,
            {
                "customer_type": "dealer",
                "dealer_id": str(dealer.id),
                "cart_items": [self._item(0, package_qty=2, package_type="box")],
                "payment_status": "pending",
                "payment_due_date": "2030-02-01",
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["sale"]["dealer_name"], "City Pharmacy Ltd")
        self.assertEqual(res.data["saleItems"][0]["quantity"], 24)
        self.assertEqual(StockLedger.objects.get(product=self.product).current_quantity, 26)

    def test_sales_history_and_process_status(self):
        self.client.post(
            SETTLE_URL,
            {"cart_items": [self._item(1)], "channel": "online"},
            format="json",
        )
        sale = Sale.objects.get()

        listing = self.client.get("/api/sales/sales/", {"process_status": "pending"})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(listing.data["count"], 1)

        url = f"/api/sales/sales/{sale.id}/process-status/"
        res = self.client.patch(url, {"process_status": "processing"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["process_status"], "processing")

        res = self.client.patch(url, {"process_status": "pending"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

    def test_sale_items_by_product(self):
        self.client.post(SETTLE_URL, {"cart_items": [self._item(2)]}, format="json")

        res = self.client.get("/api/sales/sale-items/", {"product_id": str(self.product.id)})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["quantity"], 2)
        self.assertEqual(SaleItem.objects.count(), 1)
