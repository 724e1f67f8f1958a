from .sale import ProcessStatusSerializer, SaleSerializer
from .sale_item import SaleItemSerializer
from .settle import SettleInputSerializer

__all__ = [
    "ProcessStatusSerializer",
    "SaleSerializer",
    "SaleItemSerializer",
    "SettleInputSerializer",
]
