# products/serializers/__init__.py

from .min_stock import (
    MinStockApplySerializer,
    MinStockCalculateSerializer,
    MinStockUpdateAllSerializer,
)
from .product import ProductSerializer
from .stock_batch import BatchDisposeSerializer, ExpiredDisposalSerializer, StockBatchSerializer
from .stock_ledger import StockLedgerSerializer, ThresholdSerializer
from .stock_movement import StockIssueSerializer, StockMovementSerializer

__all__ = [
    "ProductSerializer",
    "StockBatchSerializer",
    "BatchDisposeSerializer",
    "ExpiredDisposalSerializer",
    "StockLedgerSerializer",
    "ThresholdSerializer",
    "StockMovementSerializer",
    "StockIssueSerializer",
    "MinStockCalculateSerializer",
    "MinStockUpdateAllSerializer",
    "MinStockApplySerializer",
]
