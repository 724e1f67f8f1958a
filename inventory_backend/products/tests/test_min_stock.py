# products/tests/test_min_stock.py

from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.test import SimpleTestCase, TestCase, override_settings

from products.models import Product, StockLedger
from products.services import min_stock
from products.services.min_stock import (
    MinStockConfig,
    MinStockError,
    classify_trend,
    compute_metrics,
    hybrid_estimate,
    recommend,
    recommend_all,
)
from sales.models import Sale, SaleItem

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=dt_timezone.utc)


def _days(start: date, values):
    return {start + timedelta(days=i): v for i, v in enumerate(values)}


class MinStockMathTests(SimpleTestCase):
    """Pure calculations, no database."""

    def setUp(self):
        self.config = MinStockConfig()

    def test_sample_standard_deviation(self):
        metrics = compute_metrics(_days(date(2026, 3, 1), [2, 4]))

        self.assertEqual(metrics.total_sales, 6)
        self.assertEqual(metrics.days_analyzed, 2)
        self.assertEqual(metrics.average_daily_sales, 3.0)
        self.assertEqual(metrics.peak_daily_sales, 4)
        self.assertAlmostEqual(metrics.std_deviation, 1.4142, places=4)

    def test_trend_increasing(self):
        days = _days(date(2026, 3, 1), [5, 5, 5, 5, 10, 10, 10, 10])
        self.assertEqual(classify_trend(days, 15), "increasing")

    def test_trend_decreasing(self):
        days = _days(date(2026, 3, 1), [10, 10, 10, 10, 5, 5, 5, 5])
        self.assertEqual(classify_trend(days, 15), "decreasing")

    def test_trend_within_threshold_is_stable(self):
        days = _days(date(2026, 3, 1), [10, 10, 10, 10, 11, 11, 11, 11])
        self.assertEqual(classify_trend(days, 15), "stable")

    def test_short_history_is_stable(self):
        days = _days(date(2026, 3, 1), [1, 1, 1, 50, 50, 50])
        self.assertEqual(classify_trend(days, 15), "stable")

    def test_hybrid_floored_at_min_threshold(self):
        self.assertEqual(hybrid_estimate(2, 3, None, 10), 10)

    def test_hybrid_with_nothing_available(self):
        self.assertEqual(hybrid_estimate(0, 0, None, 7), 7)

    def test_hybrid_weights_seasonal_highest(self):
        # (0.3 x 100 + 0.3 x 100 + 0.4 x 200) / 1.0
        self.assertEqual(hybrid_estimate(100, 100, 200, 10), 140)

    @override_settings(MIN_STOCK={"LOOKBACK_DAYS": 30, "MIN_THRESHOLD": 5})
    def test_config_from_settings_and_camel_case_overrides(self):
        config = MinStockConfig.from_settings({"leadTimeDays": 14, "seasonalAdjustment": False})

        self.assertEqual(config.lookback_days, 30)
        self.assertEqual(config.min_threshold, 5)
        self.assertEqual(config.lead_time_days, 14)
        self.assertFalse(config.seasonal_adjustment)

    def test_unknown_config_key_rejected(self):
        with self.assertRaises(MinStockError):
            MinStockConfig.from_settings({"reorderPoint": 3})

    def test_invalid_config_rejected(self):
        with self.assertRaises(MinStockError):
            MinStockConfig.from_settings({"lead_time_days": 0})


class MinStockRecommendTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(
            sku="PCM-500",
            name="Paracetamol 500mg",
            unit_price=Decimal("2.00"),
        )
        self.config = MinStockConfig()

    def _sell(self, product, when, quantity):
        sale = Sale.objects.create(
            subtotal_amount=Decimal("0.00"),
            total_amount=Decimal("0.00"),
            created_at=when,
        )
        SaleItem.objects.create(
            sale=sale,
            product=product,
            quantity=quantity,
            unit_price=product.unit_price,
            subtotal=None,
            total=None,
        )

    def test_empty_history_returns_min_threshold(self):
        rec = recommend(self.product.id, self.config, now=NOW)

        self.assertEqual(rec.min_stock_level, 10)
        self.assertEqual(rec.method, "default")
        self.assertEqual(rec.metrics.total_sales, 0)
        self.assertEqual(rec.metrics.days_analyzed, 90)
        self.assertEqual(rec.calculations.hybrid, 10)
        self.assertEqual(
            rec.as_dict()["message"], "No sales history found, using minimum threshold"
        )

    def test_steady_demand(self):
        for i in range(10):
            self._sell(self.product, NOW - timedelta(days=i), 10)

        rec = recommend(self.product.id, self.config, now=NOW)
        calc = rec.calculations

        self.assertEqual(rec.metrics.total_sales, 100)
        self.assertEqual(rec.metrics.days_analyzed, 10)
        self.assertEqual(rec.metrics.std_deviation, 0.0)
        self.assertEqual(calc.velocity, 105)
        self.assertEqual(calc.statistical, 70)
        # all sales fall inside the recent window
        self.assertIsNone(calc.seasonal)
        self.assertGreaterEqual(calc.hybrid, calc.statistical)
        self.assertLessEqual(calc.hybrid, calc.velocity)
        self.assertEqual(rec.min_stock_level, calc.hybrid)

    def test_sales_outside_lookback_are_ignored(self):
        self._sell(self.product, NOW - timedelta(days=120), 500)

        rec = recommend(self.product.id, self.config, now=NOW)

        self.assertEqual(rec.method, "default")

    def test_seasonal_scales_up_recent_demand(self):
        self._sell(self.product, NOW - timedelta(days=60), 10)
        for i in range(10):
            self._sell(self.product, NOW - timedelta(days=i), 10)

        rec = recommend(self.product.id, self.config, now=NOW)

        self.assertIsNotNone(rec.calculations.seasonal)
        self.assertGreater(rec.calculations.seasonal, rec.calculations.statistical)

    def test_seasonal_disabled(self):
        self._sell(self.product, NOW - timedelta(days=60), 10)
        self._sell(self.product, NOW - timedelta(days=1), 10)

        config = MinStockConfig(seasonal_adjustment=False)
        rec = recommend(self.product.id, config, now=NOW)

        self.assertIsNone(rec.calculations.seasonal)

    def test_never_below_min_threshold(self):
        self._sell(self.product, NOW - timedelta(days=3), 1)

        config = MinStockConfig(min_threshold=25)
        rec = recommend(self.product.id, config, now=NOW)

        self.assertGreaterEqual(rec.min_stock_level, 25)

    def test_unknown_product(self):
        with self.assertRaises(MinStockError):
            recommend("00000000-0000-0000-0000-000000000000", self.config, now=NOW)


class MinStockBatchTests(TestCase):
    def setUp(self):
        self.a = Product.objects.create(sku="A-1", name="Alpha", unit_price=Decimal("1.00"))
        self.b = Product.objects.create(sku="B-1", name="Beta", unit_price=Decimal("1.00"))
        Product.objects.create(sku="Z-1", name="Retired", unit_price=Decimal("1.00"), is_active=False)
        StockLedger.objects.create(product=self.a, current_quantity=40, threshold_quantity=4)

    def test_auto_apply_updates_thresholds(self):
        result = recommend_all(MinStockConfig(), auto_apply=True, now=NOW)

        self.assertEqual(result.total_count, 2)
        self.assertEqual(result.updated_count, 2)
        self.assertEqual(StockLedger.objects.get(product=self.a).threshold_quantity, 10)
        self.assertEqual(StockLedger.objects.get(product=self.b).threshold_quantity, 10)

        alpha = next(r for r in result.results if r.product_id == str(self.a.id))
        self.assertEqual(alpha.old_min_stock, 4)
        self.assertEqual(alpha.new_min_stock, 10)
        self.assertEqual(alpha.change, 6)
        self.assertEqual(alpha.change_percent, 150.0)

    def test_without_auto_apply_nothing_is_written(self):
        recommend_all(MinStockConfig(), auto_apply=False, now=NOW)

        self.assertEqual(StockLedger.objects.get(product=self.a).threshold_quantity, 4)
        self.assertFalse(StockLedger.objects.filter(product=self.b).exists())

    def test_one_failure_does_not_stop_the_run(self):
        real = min_stock.recommend

        def flaky(product_id, config=None, **kwargs):
            if product_id == self.a.id:
                raise MinStockError("boom")
            return real(product_id, config, **kwargs)

        with patch.object(min_stock, "recommend", side_effect=flaky):
            result = recommend_all(MinStockConfig(), auto_apply=True, now=NOW)

        payload = result.as_dict()
        self.assertEqual(payload["total_count"], 2)
        self.assertEqual(payload["updated_count"], 1)

        failed = next(r for r in payload["results"] if r["product_id"] == str(self.a.id))
        self.assertFalse(failed["success"])
        self.assertEqual(failed["error"], "boom")
        self.assertEqual(StockLedger.objects.get(product=self.a).threshold_quantity, 4)
