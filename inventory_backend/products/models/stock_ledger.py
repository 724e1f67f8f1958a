"""
STOCK LEDGER (AGGREGATE COUNTER)

One row per product:
- current_quantity: unit-level aggregate
- package_qty: package-level aggregate (dealer sales only)
- threshold_quantity / max_stock_level: alerting thresholds

NOTE:
- current_quantity is a signed integer. Settlement trusts its caller and writes
  whatever the arithmetic produces, so the counter can go negative.
- It should track the sum of quantity_remaining across the product's active
  batches, but the two are written by separate steps and can drift.
"""

from django.db import models

from .product import Product


class StockLedger(models.Model):
    product = models.OneToOneField(
        Product,
        on_delete=models.CASCADE,
        related_name="stock_ledger",
    )

    current_quantity = models.IntegerField(default=0)
    package_qty = models.IntegerField(default=0)

    threshold_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Minimum stock level (low-stock alert threshold)",
    )
    max_stock_level = models.PositiveIntegerField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stock_alert"
        ordering = ["product__name"]

    @property
    def is_low_stock(self) -> bool:
        return int(self.current_quantity or 0) <= int(self.threshold_quantity or 0)

    def __str__(self):
        return f"{self.product.name}: {self.current_quantity} units / {self.package_qty} packages"
