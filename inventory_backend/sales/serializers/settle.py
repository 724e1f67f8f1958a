# sales/serializers/settle.py

"""
SETTLEMENT INPUT

Validates the POS payload and turns it into a GeneralCart or DealerCart.

Notes:
- cart_items is also accepted as cartItems.
- Line subtotal and the header subtotal/total sent by the client are accepted
  but ignored: totals are recomputed server-side.
- discount / tax are flat amounts; discount_percent / tax_percent win when sent.
"""

from __future__ import annotations

from rest_framework import serializers

from sales.models import Sale
from sales.services.carts import CartLine, DealerCart, GeneralCart


class CartItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(required=False, min_value=0, default=0)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    package_qty = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    package_type = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class SettleInputSerializer(serializers.Serializer):
    cart_items = CartItemInputSerializer(many=True, required=False)
    cartItems = CartItemInputSerializer(many=True, required=False, write_only=True)

    customer_type = serializers.ChoiceField(
        choices=Sale.CustomerType.choices,
        default=Sale.CustomerType.GENERAL,
    )
    channel = serializers.ChoiceField(
        choices=Sale.Channel.choices,
        required=False,
        default=Sale.Channel.WALK_IN,
    )
    payment_method = serializers.ChoiceField(
        choices=Sale.PaymentMethod.choices,
        default=Sale.PaymentMethod.CASH,
    )
    payment_status = serializers.ChoiceField(
        choices=Sale.PaymentStatus.choices,
        default=Sale.PaymentStatus.PAID,
    )

    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    discount_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, min_value=0, max_value=100
    )
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    tax_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, min_value=0, max_value=100
    )
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)

    dealer_id = serializers.UUIDField(required=False, allow_null=True)
    delivery_date = serializers.DateField(required=False, allow_null=True)
    payment_due_date = serializers.DateField(required=False, allow_null=True)
    note = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        alias = attrs.pop("cartItems", None)
        if not attrs.get("cart_items") and alias:
            attrs["cart_items"] = alias
        attrs.setdefault("cart_items", [])

        if attrs["customer_type"] == Sale.CustomerType.DEALER and not attrs.get("dealer_id"):
            raise serializers.ValidationError({"dealer_id": "dealer_id is required for dealer sales"})
        return attrs

    def to_cart(self):
        v = self.validated_data
        is_dealer = v["customer_type"] == Sale.CustomerType.DEALER

        lines = [
            CartLine(
                product_id=str(item["product_id"]),
                quantity=item.get("quantity") or 0,
                unit_price=item["unit_price"],
                package_qty=item.get("package_qty") if is_dealer else None,
                package_type=(item.get("package_type") or None) if is_dealer else None,
            )
            for item in v["cart_items"]
        ]

        common = dict(
            lines=lines,
            payment_method=v["payment_method"],
            payment_status=v["payment_status"],
            discount_percent=v.get("discount_percent"),
            discount_amount=v.get("discount"),
            tax_percent=v.get("tax_percent"),
            tax_amount=v.get("tax"),
            note=v.get("note") or "",
        )

        if is_dealer:
            return DealerCart(
                dealer_id=str(v["dealer_id"]),
                delivery_date=v.get("delivery_date"),
                payment_due_date=v.get("payment_due_date"),
                **common,
            )
        return GeneralCart(channel=v.get("channel") or Sale.Channel.WALK_IN, **common)
