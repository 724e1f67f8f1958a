# products/urls.py

"""
PRODUCTS URLS

Registers stock routes under /api/products/
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import (
    ExpiredDisposalViewSet,
    MinStockApplyView,
    MinStockCalculateView,
    MinStockUpdateAllView,
    ProductViewSet,
    StockBatchViewSet,
    StockIssueView,
    StockLedgerViewSet,
    StockMovementViewSet,
)

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")
router.register(r"batches", StockBatchViewSet, basename="batches")
router.register(r"disposals", ExpiredDisposalViewSet, basename="disposals")
router.register(r"stock-ledger", StockLedgerViewSet, basename="stock-ledger")
router.register(r"stock-movements", StockMovementViewSet, basename="stock-movements")

urlpatterns = [
    path("stock-issues/", StockIssueView.as_view(), name="stock-issues"),
    path("min-stock/calculate/", MinStockCalculateView.as_view(), name="min-stock-calculate"),
    path("min-stock/update-all/", MinStockUpdateAllView.as_view(), name="min-stock-update-all"),
    path("min-stock/apply/", MinStockApplyView.as_view(), name="min-stock-apply"),
    path("", include(router.urls)),
]
