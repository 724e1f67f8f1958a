# products/views/min_stock.py

"""
MIN STOCK RECOMMENDATION ENDPOINTS

- POST /api/products/min-stock/calculate/   single product, no writes
- POST /api/products/min-stock/update-all/  every active product (auto_apply default true)
- POST /api/products/min-stock/apply/       set a threshold by hand
"""

import logging

from django.db import DatabaseError
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import Product
from products.serializers.min_stock import (
    MinStockApplySerializer,
    MinStockCalculateSerializer,
    MinStockUpdateAllSerializer,
)
from products.serializers.stock_ledger import StockLedgerSerializer
from products.services import stock_ledger
from products.services.min_stock import MinStockConfig, MinStockError, recommend, recommend_all

logger = logging.getLogger(__name__)


def _failure(error, http_status):
    return Response({"success": False, "error": error}, status=http_status)


class MinStockCalculateView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=MinStockCalculateSerializer)
    def post(self, request):
        serializer = MinStockCalculateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            config = MinStockConfig.from_settings(v.get("config"))
            result = recommend(v["product_id"], config)
        except MinStockError as exc:
            return _failure(str(exc), status.HTTP_400_BAD_REQUEST)
        except DatabaseError as exc:
            logger.exception("Min stock calculation failed", extra={"product_id": str(v["product_id"])})
            return _failure(f"Error calculating min stock: {exc}", status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(result.as_dict(), status=status.HTTP_200_OK)


class MinStockUpdateAllView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=MinStockUpdateAllSerializer)
    def post(self, request):
        serializer = MinStockUpdateAllSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            config = MinStockConfig.from_settings(v.get("config"))
        except MinStockError as exc:
            return _failure(str(exc), status.HTTP_400_BAD_REQUEST)

        try:
            result = recommend_all(config, auto_apply=v.get("auto_apply", True))
        except DatabaseError as exc:
            logger.exception("Min stock batch run failed")
            return _failure(f"Error updating min stock levels: {exc}", status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(result.as_dict(), status=status.HTTP_200_OK)


class MinStockApplyView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=MinStockApplySerializer, responses={200: StockLedgerSerializer})
    def post(self, request):
        serializer = MinStockApplySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        if not Product.objects.filter(pk=v["product_id"]).exists():
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        ledger = stock_ledger.set_thresholds(
            v["product_id"],
            threshold_quantity=v["min_stock_level"],
            max_stock_level=v.get("max_stock_level"),
        )
        return Response(StockLedgerSerializer(ledger).data, status=status.HTTP_200_OK)
