# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum


class Product(models.Model):
    """
    Represents a sellable product.

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Unit-level stock lives in StockBatch (per delivery, FIFO by expiry)
    - The aggregate counter lives in StockLedger (one row per product)

    PACKAGING:
    - Dealer (B2B) sales are made in packages.
    - units_per_package converts a package count into units for deduction.
    """

    class PackageType(models.TextChoices):
        NONE = "", "None"
        CASE = "case", "Case"
        BOX = "box", "Box"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    units_per_package = models.PositiveIntegerField(default=1)
    package_type = models.CharField(
        max_length=16,
        choices=PackageType.choices,
        default=PackageType.NONE,
        blank=True,
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["sku"], name="products_pr_sku_idx"),
            models.Index(fields=["name"], name="products_pr_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.unit_price is None or Decimal(self.unit_price) < 0:
            raise ValidationError("Unit price cannot be negative")

        if not self.units_per_package or int(self.units_per_package) < 1:
            raise ValidationError("units_per_package must be at least 1")

    def units_for_packages(self, package_qty: int) -> int:
        return int(package_qty) * int(self.units_per_package or 1)

    @property
    def batch_stock(self) -> int:
        """
        Sum of quantity_remaining across ACTIVE batches.
        Should approximately match StockLedger.current_quantity.
        """
        from .stock_batch import StockBatch

        return (
            self.stock_batches.filter(status=StockBatch.Status.ACTIVE)
            .aggregate(total=Sum("quantity_remaining"))
            .get("total")
            or 0
        )
