# sales/api/viewsets/sale.py

"""
======================================================
PATH: sales/api/viewsets/sale.py
======================================================
SALE VIEWSETS (STAFF)

- Sales history: list + retrieve with basic filters.
- Order tracker: PATCH /api/sales/sales/{id}/process-status/
- Sale items: GET /api/sales/sale-items/?product_id=
======================================================
"""

from __future__ import annotations

from datetime import datetime

from django.db.models import Q
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from sales.models import Sale, SaleItem
from sales.serializers import ProcessStatusSerializer, SaleItemSerializer, SaleSerializer
from sales.services.sale_lifecycle import SaleLifecycleError, update_process_status


def _parse_date(s: str):
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class SaleViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SaleSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["customer_type", "process_status", "payment_status", "dealer"]

    def get_queryset(self):
        qs = (
            Sale.objects.all()
            .select_related("user", "dealer")
            .prefetch_related("items", "items__product")
            .order_by("-created_at")
        )

        params = self.request.query_params

        pm = (params.get("payment_method") or "").strip().lower()
        if pm:
            qs = qs.filter(payment_method__iexact=pm)

        q = (params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(invoice_no__icontains=q) | Q(dealer__name__icontains=q))

        date_from = _parse_date((params.get("date_from") or "").strip())
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)

        date_to = _parse_date((params.get("date_to") or "").strip())
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)

        return qs

    @extend_schema(
        request=ProcessStatusSerializer,
        responses={200: SaleSerializer},
        description="Move a sale along pending -> processing -> completed, or cancel it.",
    )
    @action(detail=True, methods=["patch"], url_path="process-status")
    def process_status(self, request, pk=None):
        sale: Sale = self.get_object()

        ser = ProcessStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            sale = update_process_status(
                sale=sale,
                process_status=ser.validated_data["process_status"],
            )
        except SaleLifecycleError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        sale = self.get_queryset().get(pk=sale.pk)
        return Response(SaleSerializer(sale).data, status=status.HTTP_200_OK)


class SaleItemViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SaleItemSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = SaleItem.objects.select_related("product", "sale").order_by("-created_at")

        product_id = (self.request.query_params.get("product_id") or "").strip()
        if product_id:
            qs = qs.filter(product_id=product_id)

        sale_id = (self.request.query_params.get("sale_id") or "").strip()
        if sale_id:
            qs = qs.filter(sale_id=sale_id)

        return qs
