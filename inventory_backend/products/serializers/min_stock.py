# products/serializers/min_stock.py

"""
MIN STOCK REQUEST SERIALIZERS

config accepts the same keys as MinStockConfig, in snake_case or camelCase
(lookbackDays, leadTimeDays, safetyStockMultiplier, minThreshold,
seasonalAdjustment). Unknown keys are rejected by the service.
"""

from rest_framework import serializers


class MinStockConfigField(serializers.DictField):
    def to_internal_value(self, data):
        if not isinstance(data, dict):
            raise serializers.ValidationError("config must be an object")
        return dict(data)


class MinStockCalculateSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    config = MinStockConfigField(required=False, default=dict)


class MinStockUpdateAllSerializer(serializers.Serializer):
    auto_apply = serializers.BooleanField(required=False, default=True)
    config = MinStockConfigField(required=False, default=dict)


class MinStockApplySerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    min_stock_level = serializers.IntegerField(min_value=0)
    max_stock_level = serializers.IntegerField(required=False, allow_null=True, min_value=0)
