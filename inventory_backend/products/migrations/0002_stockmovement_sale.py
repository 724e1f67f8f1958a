"""
======================================================
PATH: products/migrations/0002_stockmovement_sale.py
======================================================
MIGRATION: LINK SALE MOVEMENTS TO THEIR SALE

Purpose:
- StockMovement(SALE) rows reference the sale that consumed the batch.
- Split from 0001 because sales.0001 depends on products.0001.
"""

from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    dependencies = [
        ("products", "0001_initial"),
        ("sales", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="stockmovement",
            name="sale",
            field=models.ForeignKey(
                on_delete=django.db.models.deletion.SET_NULL,
                null=True,
                blank=True,
                related_name="stock_movements",
                to="sales.sale",
            ),
        ),
    ]
