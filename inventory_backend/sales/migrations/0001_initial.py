"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: INITIAL SALES SCHEMA

Creates:
- Dealer (B2B customers)
- Sale (header with final totals + process status)
- SaleItem (immutable line snapshots)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Dealer",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255, db_index=True)),
                ("phone", models.CharField(max_length=32, blank=True, default="")),
                ("email", models.EmailField(max_length=254, blank=True, default="")),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                (
                    "invoice_no",
                    models.CharField(
                        max_length=64,
                        unique=True,
                        blank=True,
                        help_text="System-generated invoice / receipt number",
                    ),
                ),
                (
                    "customer_type",
                    models.CharField(
                        max_length=16,
                        default="general",
                        choices=[("general", "General"), ("dealer", "Dealer")],
                    ),
                ),
                (
                    "channel",
                    models.CharField(
                        max_length=16,
                        blank=True,
                        default="",
                        choices=[("walk_in", "Walk-in"), ("online", "Online")],
                    ),
                ),
                ("subtotal_amount", models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))),
                ("tax_amount", models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))),
                ("discount_amount", models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))),
                ("total_amount", models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))),
                (
                    "payment_method",
                    models.CharField(
                        max_length=32,
                        default="cash",
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("bank-transfer", "Bank Transfer"),
                        ],
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        max_length=16,
                        default="paid",
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("partial", "Partial"),
                            ("refunded", "Refunded"),
                        ],
                    ),
                ),
                (
                    "process_status",
                    models.CharField(
                        max_length=16,
                        default="pending",
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                    ),
                ),
                ("note", models.TextField(blank=True, default="")),
                ("delivery_date", models.DateField(null=True, blank=True)),
                ("payment_due_date", models.DateField(null=True, blank=True)),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, db_index=True),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        blank=True,
                        related_name="sales",
                        help_text="Staff who processed the sale",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "dealer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        null=True,
                        blank=True,
                        related_name="sales",
                        to="sales.dealer",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["customer_type", "created_at"],
                        name="sales_sale_ctype_ts_idx",
                    ),
                    models.Index(fields=["process_status"], name="sales_sale_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("quantity", models.PositiveIntegerField(help_text="Units sold")),
                ("unit_price", models.DecimalField(max_digits=10, decimal_places=2)),
                ("subtotal", models.DecimalField(max_digits=12, decimal_places=2)),
                ("total", models.DecimalField(max_digits=12, decimal_places=2)),
                ("package_qty", models.PositiveIntegerField(null=True, blank=True)),
                ("package_type", models.CharField(max_length=16, blank=True, default="")),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, db_index=True),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="sales.sale",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        related_name="sale_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["sale", "created_at"], name="sales_item_sale_ts_idx"),
                    models.Index(fields=["product", "created_at"], name="sales_item_product_ts_idx"),
                ],
            },
        ),
    ]
