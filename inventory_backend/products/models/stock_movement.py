# products/models/stock_movement.py

"""
STOCK MOVEMENT (AUDIT TRAIL)

Append-only record of every quantity change:
- RECEIPT     batch intake
- SALE        one row per FIFO allocation record
- RETURN / DAMAGE / ADJUSTMENT   issued stock
- DISPOSAL    expired batch disposal

GUARANTEES:
- Created ONCE, never edited or deleted through the model API
- Direction derives from movement_type
- SALE movements must reference a sale
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product
from .stock_batch import StockBatch


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        RECEIPT = "receipt", "Stock Receipt"
        SALE = "sale", "Sale"
        RETURN = "return", "Return"
        DAMAGE = "damage", "Damage"
        ADJUSTMENT = "adjustment", "Adjustment"
        DISPOSAL = "disposal", "Expired Disposal"

    INBOUND_TYPES = {MovementType.RECEIPT}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_movements"
    )
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    movement_type = models.CharField(max_length=16, choices=MovementType.choices)
    quantity = models.PositiveIntegerField()

    cost_loss = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Value lost (cost_price x quantity) for damage/return/disposal.",
    )
    notes = models.TextField(blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["movement_type"], name="products_sm_type_idx"),
            models.Index(fields=["product", "created_at"], name="products_sm_product_ts_idx"),
        ]

    @property
    def is_inbound(self) -> bool:
        return self.movement_type in self.INBOUND_TYPES

    def clean(self):
        if int(self.quantity or 0) <= 0:
            raise ValidationError("quantity must be greater than zero")

        if self.batch_id and self.product_id:
            batch_product_id = (
                StockBatch.objects.filter(id=self.batch_id)
                .values_list("product_id", flat=True)
                .first()
            )
            if batch_product_id and batch_product_id != self.product_id:
                raise ValidationError("Batch does not belong to product")

        if self.movement_type == self.MovementType.SALE and not self.sale_id:
            raise ValidationError("SALE movements must reference a sale")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean(validate_unique=False)
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockMovement records are immutable and cannot be deleted")

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.movement_type} | {self.quantity}"
