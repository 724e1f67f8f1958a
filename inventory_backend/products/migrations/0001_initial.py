"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: INITIAL INVENTORY SCHEMA

Creates:
- Product
- StockBatch (FIFO lots, remaining-quantity constraints)
- StockLedger (table "stock_alert", one row per product)
- StockMovement (sale reference added in 0002, after the sales app exists)
- ExpiredDisposal
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
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
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
                ("sku", models.CharField(max_length=128, unique=True, db_index=True)),
                ("name", models.CharField(max_length=255, db_index=True)),
                ("unit_price", models.DecimalField(max_digits=10, decimal_places=2)),
                ("units_per_package", models.PositiveIntegerField(default=1)),
                (
                    "package_type",
                    models.CharField(
                        max_length=16,
                        blank=True,
                        default="",
                        choices=[("", "None"), ("case", "Case"), ("box", "Box")],
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["sku"], name="products_pr_sku_idx"),
                    models.Index(fields=["name"], name="products_pr_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockBatch",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "batch_number",
                    models.CharField(
                        max_length=128,
                        help_text="Supplier / delivery batch reference",
                    ),
                ),
                ("manufacture_date", models.DateField(null=True, blank=True)),
                ("received_date", models.DateField(null=True, blank=True)),
                ("expiry_date", models.DateField()),
                ("quantity", models.PositiveIntegerField(help_text="Units received")),
                (
                    "quantity_remaining",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Units left (service-managed only)",
                    ),
                ),
                ("packages_received", models.PositiveIntegerField(default=0)),
                (
                    "cost_price",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        null=True,
                        blank=True,
                        help_text="Unit purchase cost (used for loss reporting on issue/disposal).",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        max_length=16,
                        default="active",
                        db_index=True,
                        choices=[
                            ("active", "Active"),
                            ("depleted", "Depleted"),
                            ("expired", "Expired"),
                            ("dispose", "Disposed"),
                            ("returned", "Returned"),
                        ],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_batches",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["expiry_date", "id"],
                "indexes": [
                    models.Index(
                        fields=["product", "status", "expiry_date"],
                        name="products_st_product_fifo_idx",
                    ),
                    models.Index(fields=["expiry_date"], name="products_st_expiry_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["product", "batch_number"],
                        name="unique_batch_number_per_product",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_remaining__gte=0),
                        name="chk_batch_qty_remaining_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_remaining__lte=models.F("quantity")),
                        name="chk_batch_remaining_lte_quantity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockLedger",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("current_quantity", models.IntegerField(default=0)),
                ("package_qty", models.IntegerField(default=0)),
                (
                    "threshold_quantity",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Minimum stock level (low-stock alert threshold)",
                    ),
                ),
                ("max_stock_level", models.PositiveIntegerField(null=True, blank=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_ledger",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "db_table": "stock_alert",
                "ordering": ["product__name"],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
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
                    "movement_type",
                    models.CharField(
                        max_length=16,
                        choices=[
                            ("receipt", "Stock Receipt"),
                            ("sale", "Sale"),
                            ("return", "Return"),
                            ("damage", "Damage"),
                            ("adjustment", "Adjustment"),
                            ("disposal", "Expired Disposal"),
                        ],
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                (
                    "cost_loss",
                    models.DecimalField(
                        max_digits=12,
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Value lost (cost_price x quantity) for damage/return/disposal.",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_movements",
                        to="products.product",
                    ),
                ),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        blank=True,
                        related_name="stock_movements",
                        to="products.stockbatch",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        blank=True,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["movement_type"], name="products_sm_type_idx"),
                    models.Index(
                        fields=["product", "created_at"],
                        name="products_sm_product_ts_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExpiredDisposal",
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
                ("batch_number", models.CharField(max_length=128)),
                ("quantity_disposed", models.PositiveIntegerField()),
                (
                    "disposal_date",
                    models.DateField(default=django.utils.timezone.localdate),
                ),
                (
                    "disposal_method",
                    models.CharField(
                        max_length=32,
                        choices=[
                            ("trash", "Trash"),
                            ("return_supplier", "Return to Supplier"),
                            ("donation", "Donation"),
                            ("other", "Other"),
                        ],
                    ),
                ),
                (
                    "cost_loss",
                    models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00")),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="disposals",
                        to="products.product",
                    ),
                ),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        blank=True,
                        related_name="disposals",
                        to="products.stockbatch",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
