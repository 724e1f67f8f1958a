# products/serializers/stock_ledger.py

from rest_framework import serializers

from products.models import StockLedger


class StockLedgerSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = StockLedger
        fields = [
            "id",
            "product_id",
            "product_name",
            "current_quantity",
            "package_qty",
            "threshold_quantity",
            "max_stock_level",
            "is_low_stock",
            "updated_at",
        ]
        read_only_fields = fields


class ThresholdSerializer(serializers.Serializer):
    """
    Accepts min_stock_level as the public name of threshold_quantity.
    """

    min_stock_level = serializers.IntegerField(required=False, min_value=0)
    max_stock_level = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs):
        if "min_stock_level" not in attrs and "max_stock_level" not in attrs:
            raise serializers.ValidationError(
                "Provide min_stock_level and/or max_stock_level"
            )
        low = attrs.get("min_stock_level")
        high = attrs.get("max_stock_level")
        if low is not None and high is not None and high < low:
            raise serializers.ValidationError(
                {"max_stock_level": "max_stock_level cannot be below min_stock_level"}
            )
        return attrs
