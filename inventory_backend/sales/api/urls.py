# sales/api/urls.py

"""
SALES API URLS

Rules:
- Explicit non-PK routes (like "settle") MUST be registered BEFORE router URLs,
  otherwise the router will treat "settle" as a <pk> and you'll get 405.

Provides:
    POST  /api/sales/settle/
    GET   /api/sales/sales/
    GET   /api/sales/sales/<uuid>/
    PATCH /api/sales/sales/<uuid>/process-status/
    GET   /api/sales/sale-items/?product_id=<uuid>
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.viewsets.sale import SaleItemViewSet, SaleViewSet
from sales.views.settle import SettleSaleView

router = DefaultRouter()

router.register(r"sales", SaleViewSet, basename="sales")
router.register(r"sale-items", SaleItemViewSet, basename="sale-items")

urlpatterns = [
    path("settle/", SettleSaleView.as_view(), name="sales-settle"),
    path("", include(router.urls)),
]
