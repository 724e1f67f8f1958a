"""
PATH: products/services/__init__.py

Stock services: ledger counter, FIFO batch allocation, intake, issue,
expiry/disposal and minimum-stock recommendation.
"""

from .batch_allocator import AllocationRecord, AllocationResult, StockUpdateError, allocate
from .stock_intake import intake_batch, update_batch
from .stock_issue import issue_stock
from .stock_ledger import decrement, increment, set_thresholds

__all__ = [
    "AllocationRecord",
    "AllocationResult",
    "StockUpdateError",
    "allocate",
    "decrement",
    "increment",
    "set_thresholds",
    "intake_batch",
    "update_batch",
    "issue_stock",
]
