# products/serializers/stock_movement.py

from rest_framework import serializers

from products.models import StockMovement
from products.services.stock_issue import ISSUE_TYPES


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    batch_number = serializers.CharField(source="batch.batch_number", read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "product_name",
            "batch",
            "batch_number",
            "movement_type",
            "quantity",
            "cost_loss",
            "notes",
            "sale",
            "performed_by",
            "created_at",
        ]
        read_only_fields = fields


class StockIssueSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    batch_id = serializers.IntegerField(required=False, allow_null=True)
    movement_type = serializers.ChoiceField(choices=sorted(ISSUE_TYPES))
    quantity = serializers.IntegerField(min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
