# products/views/__init__.py

"""
Products views package exports.
"""

from .min_stock import MinStockApplyView, MinStockCalculateView, MinStockUpdateAllView
from .product import ProductViewSet
from .stock_batch import ExpiredDisposalViewSet, StockBatchViewSet
from .stock_ledger import StockLedgerViewSet
from .stock_movement import StockIssueView, StockMovementViewSet

__all__ = [
    "ProductViewSet",
    "StockBatchViewSet",
    "ExpiredDisposalViewSet",
    "StockLedgerViewSet",
    "StockMovementViewSet",
    "StockIssueView",
    "MinStockCalculateView",
    "MinStockUpdateAllView",
    "MinStockApplyView",
]
