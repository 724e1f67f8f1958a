# products/models/disposal.py

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

from .product import Product
from .stock_batch import StockBatch


class ExpiredDisposal(models.Model):
    """
    One disposal event for an expired (or returned) batch.
    batch_number is copied so the record survives if the batch row is removed.
    """

    class Method(models.TextChoices):
        TRASH = "trash", "Trash"
        RETURN_SUPPLIER = "return_supplier", "Return to Supplier"
        DONATION = "donation", "Donation"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="disposals"
    )
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="disposals",
    )
    batch_number = models.CharField(max_length=128)

    quantity_disposed = models.PositiveIntegerField()
    disposal_date = models.DateField(default=timezone.localdate)
    disposal_method = models.CharField(max_length=32, choices=Method.choices)
    cost_loss = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.batch_number} | {self.quantity_disposed} | {self.disposal_method}"
