"""Warehouse records exchanged with the inventory API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Mapping, TypeVar, Union

from ..capture.modes import ScanMode

T = TypeVar("T")


def _parse_ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class StockDirection(Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class User:
    id: str
    username: str
    full_name: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "User":
        return cls(
            id=str(payload.get("id", "")),
            username=str(payload.get("username", "")),
            full_name=str(payload.get("full_name") or ""),
        )


@dataclass(frozen=True)
class ScanRecord:
    id: str
    barcode: str
    scan_mode: ScanMode
    scanned_at: datetime
    user_id: str = ""
    username: str = ""
    user_full_name: str = ""
    device_info: str | None = None
    location: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ScanRecord":
        return cls(
            id=str(payload.get("id", "")),
            barcode=str(payload.get("barcode", "")),
            scan_mode=ScanMode(payload.get("scan_mode") or ScanMode.KEYBOARD.value),
            scanned_at=_parse_ts(payload.get("scanned_at")) or datetime.now(timezone.utc),
            user_id=str(payload.get("user_id") or ""),
            username=str(payload.get("username") or ""),
            user_full_name=str(payload.get("user_full_name") or ""),
            device_info=_opt_str(payload.get("device_info")),
            location=_opt_str(payload.get("location")),
        )


@dataclass(frozen=True)
class StockHistoryEntry:
    quantity: int
    direction: StockDirection
    actor: str
    created_at: datetime
    note: str = ""
    supplier: str | None = None
    location: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "StockHistoryEntry":
        return cls(
            quantity=int(payload.get("quantity", 0)),
            direction=StockDirection(payload.get("direction", StockDirection.ADD.value)),
            actor=str(payload.get("actor") or ""),
            created_at=_parse_ts(payload.get("created_at")) or datetime.now(timezone.utc),
            note=str(payload.get("note") or ""),
            supplier=_opt_str(payload.get("supplier")),
            location=_opt_str(payload.get("location")),
        )


@dataclass
class Product:
    barcode: str
    name: str
    current_stock: int
    id: str = ""
    note: str = ""
    buying_price: float = 0.0
    selling_price: float = 0.0
    bought_from: str = ""
    sell_location: str = ""
    image_url: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    stock_history: list[StockHistoryEntry] = field(default_factory=list)
    created_by_name: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Product":
        return cls(
            barcode=str(payload.get("barcode", "")),
            name=str(payload.get("name", "")),
            current_stock=int(payload.get("current_stock", 0)),
            id=str(payload.get("id") or ""),
            note=str(payload.get("note") or ""),
            buying_price=float(payload.get("buying_price") or 0.0),
            selling_price=float(payload.get("selling_price") or 0.0),
            bought_from=str(payload.get("bought_from") or ""),
            sell_location=str(payload.get("sell_location") or ""),
            image_url=_opt_str(payload.get("image_url")),
            category_id=_opt_str(payload.get("category_id")),
            category_name=_opt_str(payload.get("category_name")),
            stock_history=[
                StockHistoryEntry.from_payload(entry)
                for entry in payload.get("stock_history") or []
            ],
            created_by_name=str(payload.get("created_by_name") or ""),
            created_at=_parse_ts(payload.get("created_at")),
            updated_at=_parse_ts(payload.get("updated_at")),
        )


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: str = ""
    color: str = ""
    created_by_name: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Category":
        return cls(
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
            description=str(payload.get("description") or ""),
            color=str(payload.get("color") or ""),
            created_by_name=str(payload.get("created_by_name") or ""),
            created_at=_parse_ts(payload.get("created_at")),
            updated_at=_parse_ts(payload.get("updated_at")),
        )


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Pagination":
        return cls(
            page=int(payload.get("page", 1)),
            limit=int(payload.get("limit", 0)),
            total=int(payload.get("total", 0)),
            pages=int(payload.get("pages", 0)),
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    pagination: Pagination


@dataclass(frozen=True)
class ScanStats:
    total_scans: int
    today_scans: int
    recent_scans: list[ScanRecord]


@dataclass(frozen=True)
class DashboardStats:
    total_products: int
    total_buy_value: float
    total_sell_value: float
    monthly_profit: float

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DashboardStats":
        return cls(
            total_products=int(payload.get("total_products", 0)),
            total_buy_value=float(payload.get("total_buy_value", 0.0)),
            total_sell_value=float(payload.get("total_sell_value", 0.0)),
            monthly_profit=float(payload.get("monthly_profit", 0.0)),
        )


@dataclass(frozen=True)
class ProductFound:
    product: Product


@dataclass(frozen=True)
class ProductNotFound:
    barcode: str


LookupResult = Union[ProductFound, ProductNotFound]


@dataclass(frozen=True)
class InventoryValuePoint:
    """Stock value moved on one day: bought in, sold out and the margin on sales."""

    date: str
    bought: float
    sold: float
    profit: float

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InventoryValuePoint":
        return cls(
            date=str(payload["date"]),
            bought=float(payload.get("bought", 0.0)),
            sold=float(payload.get("sold", 0.0)),
            profit=float(payload.get("profit", 0.0)),
        )
