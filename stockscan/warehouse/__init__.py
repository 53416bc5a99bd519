"""Warehouse collaborators: HTTP client, forms and the stock modal."""

from __future__ import annotations

from .client import WarehouseClient
from .errors import (
    AuthenticationError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    TransportError,
    ValidationError,
    WarehouseError,
)
from .forms import ProductDraft, StockForm
from .modal import IllegalTransition, ModalState, StockModal
from .models import (
    Category,
    Product,
    ProductFound,
    ProductNotFound,
    ScanRecord,
    StockDirection,
    StockHistoryEntry,
    User,
)

__all__ = [
    "WarehouseClient",
    "AuthenticationError",
    "ConflictError",
    "InsufficientStockError",
    "NotFoundError",
    "TransportError",
    "ValidationError",
    "WarehouseError",
    "ProductDraft",
    "StockForm",
    "IllegalTransition",
    "ModalState",
    "StockModal",
    "Category",
    "Product",
    "ProductFound",
    "ProductNotFound",
    "ScanRecord",
    "StockDirection",
    "StockHistoryEntry",
    "User",
]
