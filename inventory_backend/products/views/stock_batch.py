"""
======================================================
PATH: products/views/stock_batch.py
======================================================
STOCK BATCH VIEWSET

Purpose:
- Batch intake (POST) and metadata/quantity edits (PATCH) through services.
- Expiry listing and disposal.

Rules:
- Creating a batch is a stock receipt: intake_batch() also moves the ledger.
- PATCH goes through update_batch() so the ledger follows quantity edits.
- DELETE is not exposed; disposal is the operator action that empties a batch.
"""

from __future__ import annotations

from datetime import datetime

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import ExpiredDisposal, Product, StockBatch
from products.serializers.stock_batch import (
    BatchDisposeSerializer,
    ExpiredDisposalSerializer,
    StockBatchSerializer,
)
from products.services.expiry import (
    DisposalError,
    dispose_batch,
    disposal_statistics,
    expired_batches,
)
from products.services.stock_intake import StockIntakeError, intake_batch, update_batch


class StockBatchViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = StockBatchSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status"]

    def get_queryset(self):
        qs = StockBatch.objects.select_related("product").order_by("expiry_date", "id")

        product_id = (self.request.query_params.get("product_id") or "").strip()
        if product_id:
            qs = qs.filter(product_id=product_id)

        return qs

    # -------------------------------------------------
    # CREATE (stock receipt)
    # -------------------------------------------------
    def create(self, request, *args, **kwargs):
        """
        POST /api/products/batches/
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        product = Product.objects.filter(id=v["product_id"], is_active=True).first()
        if product is None:
            return Response(
                {"detail": "Invalid or inactive product id"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            batch = intake_batch(
                product=product,
                expiry_date=v["expiry_date"],
                quantity=v.get("quantity"),
                packages_received=v.get("packages_received"),
                batch_number=v.get("batch_number"),
                manufacture_date=v.get("manufacture_date"),
                received_date=v.get("received_date"),
                cost_price=v.get("cost_price"),
                user=request.user,
            )
        except StockIntakeError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(self.get_serializer(batch).data, status=status.HTTP_201_CREATED)

    # -------------------------------------------------
    # UPDATE (service-managed)
    # -------------------------------------------------
    def update(self, request, *args, **kwargs):
        if not kwargs.get("partial"):
            return Response(
                {"detail": "PUT is not allowed for batches. Use PATCH."},
                status=status.HTTP_405_METHOD_NOT_ALLOWED,
            )

        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        v = dict(serializer.validated_data)

        quantity = v.pop("quantity", None)
        packages_received = v.pop("packages_received", None)

        try:
            batch = update_batch(
                batch=instance,
                quantity=quantity,
                packages_received=packages_received,
                **v,
            )
        except StockIntakeError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(self.get_serializer(batch).data, status=status.HTTP_200_OK)

    # -------------------------------------------------
    # EXPIRY
    # -------------------------------------------------
    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="as_of",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                description="YYYY-MM-DD (default: today)",
            ),
        ],
        responses={200: StockBatchSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="expired")
    def expired(self, request):
        raw = (request.query_params.get("as_of") or "").strip()
        as_of = None
        if raw:
            try:
                as_of = datetime.strptime(raw, "%Y-%m-%d").date()
            except ValueError:
                return Response({"detail": "as_of must be YYYY-MM-DD"}, status=400)

        data = self.get_serializer(expired_batches(as_of), many=True).data
        return Response({"count": len(data), "results": data})

    @extend_schema(
        request=BatchDisposeSerializer,
        responses={201: ExpiredDisposalSerializer},
    )
    @action(detail=True, methods=["post"], url_path="dispose")
    def dispose(self, request, pk=None):
        batch = self.get_object()
        serializer = BatchDisposeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            disposal = dispose_batch(
                batch=batch,
                disposal_method=v["disposal_method"],
                cost_loss=v.get("cost_loss"),
                reason=v.get("reason", ""),
                disposal_date=v.get("disposal_date"),
                user=request.user,
            )
        except DisposalError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(ExpiredDisposalSerializer(disposal).data, status=status.HTTP_201_CREATED)


class ExpiredDisposalViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/products/disposals/
    GET /api/products/disposals/statistics/
    """

    serializer_class = ExpiredDisposalSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["disposal_method"]

    def get_queryset(self):
        qs = ExpiredDisposal.objects.select_related("product").order_by("-created_at")

        date_from = (self.request.query_params.get("date_from") or "").strip()
        date_to = (self.request.query_params.get("date_to") or "").strip()
        if date_from:
            qs = qs.filter(disposal_date__gte=date_from)
        if date_to:
            qs = qs.filter(disposal_date__lte=date_to)
        return qs

    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request):
        return Response(disposal_statistics())
