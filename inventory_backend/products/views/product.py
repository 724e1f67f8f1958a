# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Catalog CRUD used by intake, POS and the min-stock screens.
- Lists carry batch_stock (annotated, active batches only) and the ledger counter.
"""

from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from products.models import Product, StockBatch
from products.serializers.product import ProductSerializer


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_active", "package_type"]

    def get_queryset(self):
        active = Q(stock_batches__status=StockBatch.Status.ACTIVE)
        qs = (
            Product.objects.select_related("stock_ledger")
            .annotate(
                active_batch_stock=Coalesce(
                    Sum("stock_batches__quantity_remaining", filter=active), 0
                )
            )
            .order_by("-created_at")
        )

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))
        return qs

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="q",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Search by name or SKU.",
            ),
        ],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)
