# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import Sale

from .sale_item import SaleItemSerializer


class SaleSerializer(serializers.ModelSerializer):
    """
    Read-only sale payload (header + items).
    Financial fields are immutable; only process_status changes after creation.
    """

    items = SaleItemSerializer(many=True, read_only=True)
    dealer_name = serializers.CharField(source="dealer.name", read_only=True, default=None)

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_no",
            "user",
            "customer_type",
            "channel",
            "dealer",
            "dealer_name",
            "subtotal_amount",
            "discount_amount",
            "tax_amount",
            "total_amount",
            "payment_method",
            "payment_status",
            "process_status",
            "note",
            "delivery_date",
            "payment_due_date",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class ProcessStatusSerializer(serializers.Serializer):
    process_status = serializers.ChoiceField(choices=Sale.ProcessStatus.choices)
