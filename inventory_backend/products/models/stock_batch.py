"""
STOCK BATCH (DELIVERY-BASED INVENTORY)

Represents ONE dated lot of a product.

RULES:
- quantity is the received amount
- quantity_remaining is mutated by services only (allocation, edits, disposal)
- 0 <= quantity_remaining <= quantity (model clean + DB constraints)
- status becomes DEPLETED exactly when allocation drains quantity_remaining to 0
- FIFO order is expiry_date ascending, ties broken by primary key (insertion order)
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from .product import Product


class StockBatch(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        DEPLETED = "depleted", "Depleted"
        EXPIRED = "expired", "Expired"
        DISPOSE = "dispose", "Disposed"
        RETURNED = "returned", "Returned"

    # Integer PK on purpose: FIFO ties on expiry_date fall back to insertion order.
    id = models.BigAutoField(primary_key=True)

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="stock_batches",
    )

    batch_number = models.CharField(
        max_length=128,
        help_text="Supplier / delivery batch reference",
    )

    manufacture_date = models.DateField(null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField()

    quantity = models.PositiveIntegerField(help_text="Units received")
    quantity_remaining = models.PositiveIntegerField(
        default=0,
        help_text="Units left (service-managed only)",
    )

    packages_received = models.PositiveIntegerField(default=0)

    cost_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Unit purchase cost (used for loss reporting on issue/disposal).",
    )

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["expiry_date", "id"]
        indexes = [
            models.Index(fields=["product", "status", "expiry_date"], name="products_st_product_fifo_idx"),
            models.Index(fields=["expiry_date"], name="products_st_expiry_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "batch_number"],
                name="unique_batch_number_per_product",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__gte=0),
                name="chk_batch_qty_remaining_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__lte=F("quantity")),
                name="chk_batch_remaining_lte_quantity",
            ),
        ]

    def clean(self):
        if self.quantity is None or int(self.quantity) < 0:
            raise ValidationError({"quantity": "quantity cannot be negative"})

        if int(self.quantity_remaining or 0) < 0:
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot be negative"}
            )

        if int(self.quantity_remaining or 0) > int(self.quantity or 0):
            raise ValidationError(
                {"quantity_remaining": "quantity_remaining cannot exceed quantity"}
            )

        if not self.expiry_date:
            raise ValidationError({"expiry_date": "expiry_date is required"})

        if self.manufacture_date and self.manufacture_date > self.expiry_date:
            raise ValidationError(
                {"manufacture_date": "manufacture_date cannot be after expiry_date"}
            )

    def save(self, *args, **kwargs):
        self.full_clean(validate_unique=False, validate_constraints=False)
        super().save(*args, **kwargs)

    @property
    def is_allocatable(self) -> bool:
        return self.status == self.Status.ACTIVE and int(self.quantity_remaining or 0) > 0

    def __str__(self):
        return f"{self.product.name} | {self.batch_number} | exp {self.expiry_date}"
