# products/views/stock_movement.py

"""
STOCK MOVEMENTS + STOCK ISSUE

- GET  /api/products/stock-movements/?product_id=&movement_type=&sale_id=
- POST /api/products/stock-issues/   (return / damage / adjustment)
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import Product, StockBatch, StockMovement
from products.serializers.stock_movement import StockIssueSerializer, StockMovementSerializer
from products.services.stock_issue import InsufficientLedgerStockError, StockIssueError, issue_stock


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockMovementSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["movement_type"]

    def get_queryset(self):
        qs = StockMovement.objects.select_related("product", "batch").order_by("-created_at")

        product_id = (self.request.query_params.get("product_id") or "").strip()
        if product_id:
            qs = qs.filter(product_id=product_id)

        sale_id = (self.request.query_params.get("sale_id") or "").strip()
        if sale_id:
            qs = qs.filter(sale_id=sale_id)

        return qs


class StockIssueView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=StockIssueSerializer,
        responses={201: StockMovementSerializer},
        description="Issue stock out of the ledger as a return, damage or adjustment.",
    )
    def post(self, request):
        serializer = StockIssueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        product = Product.objects.filter(pk=v["product_id"]).first()
        if product is None:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        batch = None
        if v.get("batch_id"):
            batch = StockBatch.objects.filter(pk=v["batch_id"]).first()
            if batch is None:
                return Response({"detail": "Batch not found"}, status=status.HTTP_404_NOT_FOUND)

        try:
            result = issue_stock(
                product=product,
                batch=batch,
                movement_type=v["movement_type"],
                quantity=v["quantity"],
                notes=v.get("notes", ""),
                user=request.user,
            )
        except InsufficientLedgerStockError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except StockIssueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            StockMovementSerializer(result.movement).data,
            status=status.HTTP_201_CREATED,
        )
