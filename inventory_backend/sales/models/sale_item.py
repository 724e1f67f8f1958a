# sales/models/sale_item.py

"""
SALE ITEM (IMMUTABLE SNAPSHOT)

One row per cart line, written in a single bulk insert tied to its sale.

Notes:
- bulk_create bypasses save(), so the settlement service computes subtotal/total
  before inserting. save() keeps them consistent for single-row writes.
- Dealer lines additionally carry package_qty/package_type.
"""

from __future__ import annotations

import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.models import Product

from .sale import Sale

TWOPLACES = Decimal("0.01")


class SaleItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sale_items",
    )

    quantity = models.PositiveIntegerField(help_text="Units sold")

    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    package_qty = models.PositiveIntegerField(null=True, blank=True)
    package_type = models.CharField(max_length=16, blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sale", "created_at"], name="sales_item_sale_ts_idx"),
            models.Index(fields=["product", "created_at"], name="sales_item_product_ts_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("SaleItem records are immutable")

        if self.subtotal is None:
            self.subtotal = (
                Decimal(self.unit_price) * Decimal(int(self.quantity or 0))
            ).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
        if self.total is None:
            self.total = self.subtotal

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product} x {self.quantity}"
