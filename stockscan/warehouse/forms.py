"""Synchronous validation of product and stock forms."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from .errors import InsufficientStockError, ValidationError
from .models import Product, StockDirection

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class ProductDraft:
    name: str = ""
    quantity: str | int = ""
    buying_price: str | float = ""
    selling_price: str | float = ""
    supplier: str = ""
    sell_location: str = ""
    note: str = ""


@dataclass
class StockForm:
    direction: StockDirection = StockDirection.ADD
    quantity: str | int = ""
    note: str = ""
    supplier: str = ""
    location: str = ""


@dataclass(frozen=True)
class NewProduct:
    barcode: str
    name: str
    initial_quantity: int
    buying_price: float
    selling_price: float
    supplier: str
    sell_location: str
    note: str


@dataclass(frozen=True)
class StockAdjustment:
    barcode: str
    direction: StockDirection
    quantity: int
    note: str
    counterparty: str


def parse_quantity(raw: str | int | None) -> int | None:
    """Return a positive integer quantity or ``None``.

    Text is read up to the first non-digit, so "2.5" gives 2 and "3 pcs" gives 3.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(str(raw))
        if match is None:
            return None
        value = int(match.group(1))
    return value if value > 0 else None


def parse_price(raw: str | float | None) -> float:
    if raw is None or raw == "":
        return 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def require_barcode(barcode: str) -> str:
    value = (barcode or "").strip()
    if not value:
        raise ValidationError("Barcode is required")
    return value


def validate_product_draft(barcode: str, draft: ProductDraft) -> NewProduct:
    code = require_barcode(barcode)
    name = draft.name.strip()
    if not name:
        raise ValidationError("Product name is required")
    quantity = parse_quantity(draft.quantity)
    if quantity is None:
        raise ValidationError("Valid quantity is required")
    return NewProduct(
        barcode=code,
        name=name,
        initial_quantity=quantity,
        buying_price=parse_price(draft.buying_price),
        selling_price=parse_price(draft.selling_price),
        supplier=draft.supplier.strip(),
        sell_location=draft.sell_location.strip(),
        note=draft.note.strip(),
    )


def validate_stock_form(form: StockForm, product: Product) -> StockAdjustment:
    quantity = parse_quantity(form.quantity)
    if quantity is None:
        raise ValidationError("Valid quantity is required")
    if form.direction == StockDirection.REMOVE:
        if quantity > product.current_stock:
            raise InsufficientStockError(
                f"Cannot remove {quantity}. Only {product.current_stock} in stock."
            )
        counterparty = form.location.strip()
    else:
        counterparty = form.supplier.strip()
    return StockAdjustment(
        barcode=require_barcode(product.barcode),
        direction=form.direction,
        quantity=quantity,
        note=form.note.strip(),
        counterparty=counterparty,
    )
