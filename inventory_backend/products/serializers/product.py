# products/serializers/product.py

"""
PRODUCT SERIALIZER

Purpose:
- Catalog fields + packaging (units_per_package, package_type).
- Read-only stock figures:
  - batch_stock: sum of quantity_remaining over ACTIVE batches (annotated by the viewset)
  - ledger_quantity: StockLedger.current_quantity (aggregate counter)
"""

from rest_framework import serializers

from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    batch_stock = serializers.SerializerMethodField(read_only=True)
    ledger_quantity = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "unit_price",
            "units_per_package",
            "package_type",
            "batch_stock",
            "ledger_quantity",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "batch_stock",
            "ledger_quantity",
            "created_at",
            "updated_at",
        ]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")
        return value

    def validate_unit_price(self, value):
        if value is None or value < 0:
            raise serializers.ValidationError("Unit price must be non-negative")
        return value

    def validate_units_per_package(self, value):
        if value is None or int(value) < 1:
            raise serializers.ValidationError("units_per_package must be at least 1")
        return value

    def get_batch_stock(self, obj) -> int:
        annotated = getattr(obj, "active_batch_stock", None)
        if annotated is not None:
            return int(annotated or 0)
        return obj.batch_stock

    def get_ledger_quantity(self, obj) -> int | None:
        ledger = getattr(obj, "stock_ledger", None)
        if ledger is None:
            return None
        return int(ledger.current_quantity or 0)
