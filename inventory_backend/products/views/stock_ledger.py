# products/views/stock_ledger.py

"""
STOCK LEDGER (STOCK ALERT) ENDPOINTS

- GET   /api/products/stock-ledger/
- GET   /api/products/stock-ledger/low/
- PATCH /api/products/stock-ledger/{product_id}/thresholds/

Rows are addressed by product id.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import Product, StockLedger
from products.serializers.stock_ledger import StockLedgerSerializer, ThresholdSerializer
from products.services import stock_ledger


class StockLedgerViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockLedgerSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = "product_id"
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_queryset(self):
        return StockLedger.objects.select_related("product").order_by("product__name")

    @action(detail=False, methods=["get"], url_path="low")
    def low(self, request):
        data = self.get_serializer(stock_ledger.low_stock(), many=True).data
        return Response({"count": len(data), "results": data})

    @extend_schema(request=ThresholdSerializer, responses={200: StockLedgerSerializer})
    @action(detail=True, methods=["patch"], url_path="thresholds")
    def thresholds(self, request, product_id=None):
        if not Product.objects.filter(pk=product_id).exists():
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        serializer = ThresholdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        ledger = stock_ledger.set_thresholds(
            product_id,
            threshold_quantity=v.get("min_stock_level"),
            max_stock_level=v.get("max_stock_level"),
        )
        return Response(self.get_serializer(ledger).data, status=status.HTTP_200_OK)
