# products/serializers/stock_batch.py
"""
======================================================
PATH: products/serializers/stock_batch.py
======================================================
STOCK BATCH SERIALIZERS

Purpose:
- Validate batch intake (POST) and batch edits (PATCH) at the API boundary.
- Quantities are applied by services (intake_batch / update_batch), never by
  serializer.save().

Rules:
- POST needs product_id, expiry_date and quantity OR packages_received.
- batch_number is optional on POST (auto-generated when blank).
- quantity_remaining and status are never writable through the API.
"""

from __future__ import annotations

from rest_framework import serializers

from products.models import ExpiredDisposal, StockBatch


class StockBatchSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField()
    product_name = serializers.CharField(source="product.name", read_only=True)

    batch_number = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="Supplier / delivery batch reference (optional; auto-generated if missing).",
    )
    quantity = serializers.IntegerField(required=False, min_value=0)
    packages_received = serializers.IntegerField(required=False, min_value=0)

    class Meta:
        model = StockBatch
        fields = [
            "id",
            "product_id",
            "product_name",
            "batch_number",
            "manufacture_date",
            "received_date",
            "expiry_date",
            "quantity",
            "quantity_remaining",
            "packages_received",
            "cost_price",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "product_name",
            "quantity_remaining",
            "status",
            "created_at",
            "updated_at",
        ]

    def get_fields(self):
        fields = super().get_fields()
        if self.instance is not None:
            fields["product_id"].read_only = True
        return fields

    def validate(self, attrs):
        if self.instance is not None:
            if "batch_number" in attrs:
                bn = (attrs.get("batch_number") or "").strip()
                if not bn:
                    raise serializers.ValidationError(
                        {"batch_number": "batch_number cannot be blank"}
                    )
                attrs["batch_number"] = bn
            return attrs

        if not attrs.get("quantity") and not attrs.get("packages_received"):
            raise serializers.ValidationError(
                {"quantity": "quantity or packages_received is required"}
            )

        manufacture_date = attrs.get("manufacture_date")
        expiry_date = attrs.get("expiry_date")
        if manufacture_date and expiry_date and manufacture_date > expiry_date:
            raise serializers.ValidationError(
                {"manufacture_date": "manufacture_date cannot be after expiry_date"}
            )

        bn = attrs.get("batch_number")
        attrs["batch_number"] = (str(bn).strip() or None) if bn is not None else None
        return attrs


class BatchDisposeSerializer(serializers.Serializer):
    disposal_method = serializers.ChoiceField(choices=ExpiredDisposal.Method.choices)
    cost_loss = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    disposal_date = serializers.DateField(required=False, allow_null=True)


class ExpiredDisposalSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = ExpiredDisposal
        fields = [
            "id",
            "product",
            "product_name",
            "batch",
            "batch_number",
            "quantity_disposed",
            "disposal_date",
            "disposal_method",
            "cost_loss",
            "reason",
            "created_at",
        ]
        read_only_fields = fields
