# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Sale header.

    GUARANTEES:
    - Created with one insert carrying the final, 2dp-rounded totals
    - Financial fields are immutable after creation
    - process_status is the only field the order tracker may change

    VARIANTS:
    - customer_type=general: walk-in or online customer (B2C)
    - customer_type=dealer: dealer reference + delivery/payment dates (B2B)
    """

    class CustomerType(models.TextChoices):
        GENERAL = "general", "General"
        DEALER = "dealer", "Dealer"

    class Channel(models.TextChoices):
        WALK_IN = "walk_in", "Walk-in"
        ONLINE = "online", "Online"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        CARD = "card", "Card"
        BANK_TRANSFER = "bank-transfer", "Bank Transfer"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        PARTIAL = "partial", "Partial"
        REFUNDED = "refunded", "Refunded"

    class ProcessStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSING = "processing", "Processing"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated invoice / receipt number",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        help_text="Staff who processed the sale",
    )

    dealer = models.ForeignKey(
        "sales.Dealer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )

    customer_type = models.CharField(
        max_length=16,
        choices=CustomerType.choices,
        default=CustomerType.GENERAL,
    )
    channel = models.CharField(
        max_length=16,
        choices=Channel.choices,
        blank=True,
        default="",
    )

    subtotal_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    payment_method = models.CharField(
        max_length=32,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PAID,
    )
    process_status = models.CharField(
        max_length=16,
        choices=ProcessStatus.choices,
        default=ProcessStatus.PENDING,
    )

    note = models.TextField(blank=True, default="")
    delivery_date = models.DateField(null=True, blank=True)
    payment_due_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer_type", "created_at"], name="sales_sale_ctype_ts_idx"),
            models.Index(fields=["process_status"], name="sales_sale_status_idx"),
        ]

    _IMMUTABLE_FIELDS = (
        "user_id",
        "dealer_id",
        "customer_type",
        "subtotal_amount",
        "tax_amount",
        "discount_amount",
        "total_amount",
        "payment_method",
        "created_at",
    )

    def _validate_immutable(self, previous: "Sale"):
        for field in self._IMMUTABLE_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValidationError(f"Sale field '{field}' is immutable")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            previous = Sale.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        if not self.invoice_no:
            prefix = timezone.now().strftime("INV%Y%m%d")
            self.invoice_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"

        super().save(*args, **kwargs)

    @property
    def is_dealer_sale(self) -> bool:
        return self.customer_type == self.CustomerType.DEALER

    def __str__(self):
        return f"{self.invoice_no} | {self.total_amount}"
