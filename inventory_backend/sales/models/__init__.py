# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS
"""

from .dealer import Dealer
from .sale import Sale
from .sale_item import SaleItem

__all__ = [
    "Dealer",
    "Sale",
    "SaleItem",
]
