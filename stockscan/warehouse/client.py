"""Async HTTP client for the inventory API."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping
from urllib.parse import quote

import httpx

from ..capture.modes import ScanMode
from ..config import constants
from ..config.settings import Settings
from .errors import INVALID_RESPONSE, TransportError, ValidationError, error_for
from .forms import NewProduct, StockAdjustment
from .models import (
    Category,
    DashboardStats,
    InventoryValuePoint,
    LookupResult,
    Page,
    Pagination,
    Product,
    ProductFound,
    ProductNotFound,
    ScanRecord,
    ScanStats,
    StockDirection,
    User,
)

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


@contextmanager
def _decoding(path: str) -> Iterator[None]:
    """Turn a 2xx body of the wrong shape into a transport error."""

    try:
        yield
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("malformed response from %s: %r", path, exc)
        raise TransportError(INVALID_RESPONSE) from exc


def _error_details(payload: Any, response: httpx.Response) -> tuple[str, str | None]:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("detail")
        code = payload.get("code")
        if message:
            return str(message), str(code) if code else None
    return f"request failed with status {response.status_code}", None


class WarehouseClient:
    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = constants.DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token or None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "WarehouseClient":
        return cls(
            settings.api_base_url,
            token=settings.api_token or None,
            timeout=settings.request_timeout,
            **kwargs,
        )

    async def __aenter__(self) -> "WarehouseClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http_client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self._url(path)
        logger.debug("warehouse request %s %s", method, url)
        try:
            response = await self._http_client.request(
                method, url, json=json, params=params, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("non-JSON response from %s: %.200s", url, response.text)
            raise TransportError(INVALID_RESPONSE) from exc
        if response.is_error:
            message, code = _error_details(payload, response)
            raise error_for(response.status_code, message, code)
        if not isinstance(payload, dict):
            raise TransportError(INVALID_RESPONSE)
        return payload

    # auth

    async def login(self, username: str, password: str) -> User:
        if not username or not password:
            raise ValidationError("Username and password are required")
        payload = await self._request(
            "POST", "auth/login", json={"username": username, "password": password}
        )
        with _decoding("auth/login"):
            token = str(payload["token"])
            user = User.from_payload(payload["user"])
        self.token = token
        return user

    async def me(self) -> User:
        payload = await self._request("GET", "auth/me")
        with _decoding("auth/me"):
            return User.from_payload(payload["user"])

    async def logout(self) -> None:
        await self._request("POST", "auth/logout")
        self.token = None

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "health")

    # scans

    async def submit_scan(
        self,
        value: str,
        mode: ScanMode,
        device_tag: str,
        *,
        location: str | None = None,
    ) -> ScanRecord:
        body: dict[str, Any] = {
            "barcode": value,
            "scan_mode": mode.value,
            "device_info": device_tag,
        }
        if location:
            body["location"] = location
        payload = await self._request("POST", "scans", json=body)
        with _decoding("scans"):
            return ScanRecord.from_payload(payload["scan"])

    async def list_scans(
        self, page: int = 1, limit: int | None = None, *, mine: bool = False
    ) -> Page[ScanRecord]:
        params: dict[str, Any] = {"page": page}
        if limit is not None:
            params["limit"] = limit
        path = "scans/my" if mine else "scans/all"
        payload = await self._request("GET", path, params=params)
        with _decoding(path):
            return Page(
                items=[ScanRecord.from_payload(entry) for entry in payload.get("scans", [])],
                pagination=Pagination.from_payload(payload.get("pagination", {})),
            )

    async def scan_stats(self) -> ScanStats:
        payload = await self._request("GET", "scans/stats")
        with _decoding("scans/stats"):
            stats = payload["stats"]
            return ScanStats(
                total_scans=int(stats.get("total_scans", 0)),
                today_scans=int(stats.get("today_scans", 0)),
                recent_scans=[
                    ScanRecord.from_payload(entry) for entry in stats.get("recent_scans", [])
                ],
            )

    async def cleanup_scans(self, days: int) -> int:
        payload = await self._request("DELETE", "scans/cleanup", params={"days": days})
        with _decoding("scans/cleanup"):
            return int(payload.get("deleted_count", 0))

    # products

    async def lookup_product(self, barcode: str) -> LookupResult:
        path = f"products/check/{_segment(barcode)}"
        payload = await self._request("GET", path)
        with _decoding(path):
            if payload.get("exists") and payload.get("product"):
                return ProductFound(Product.from_payload(payload["product"]))
        return ProductNotFound(barcode)

    async def get_product(self, barcode: str) -> Product:
        path = f"products/{_segment(barcode)}"
        payload = await self._request("GET", path)
        with _decoding(path):
            return Product.from_payload(payload["product"])

    async def list_products(
        self,
        page: int = 1,
        limit: int | None = None,
        *,
        search: str = "",
        category: str = "",
    ) -> Page[Product]:
        params: dict[str, Any] = {"page": page}
        if limit is not None:
            params["limit"] = limit
        if search:
            params["search"] = search
        if category:
            params["category"] = category
        payload = await self._request("GET", "products", params=params)
        with _decoding("products"):
            return Page(
                items=[Product.from_payload(entry) for entry in payload.get("products", [])],
                pagination=Pagination.from_payload(payload.get("pagination", {})),
            )

    async def create_product(
        self,
        barcode: str,
        name: str,
        initial_qty: int,
        buy_price: float = 0.0,
        sell_price: float = 0.0,
        supplier: str = "",
        sell_location: str = "",
        note: str = "",
    ) -> Product:
        payload = await self._request(
            "POST",
            "products",
            json={
                "barcode": barcode,
                "name": name,
                "quantity": initial_qty,
                "buying_price": buy_price,
                "selling_price": sell_price,
                "bought_from": supplier,
                "sell_location": sell_location,
                "note": note,
            },
        )
        with _decoding("products"):
            return Product.from_payload(payload["product"])

    async def adjust_stock(
        self,
        barcode: str,
        direction: StockDirection,
        qty: int,
        note: str = "",
        counterparty: str = "",
    ) -> Product:
        if qty <= 0:
            raise ValidationError("Valid quantity is required")
        body: dict[str, Any] = {"quantity": qty, "note": note}
        if direction == StockDirection.ADD:
            body["supplier"] = counterparty
            path = f"products/{_segment(barcode)}/add-stock"
        else:
            body["location"] = counterparty
            path = f"products/{_segment(barcode)}/remove-stock"
        payload = await self._request("POST", path, json=body)
        with _decoding(path):
            return Product.from_payload(payload["product"])

    async def create_from(self, command: NewProduct) -> Product:
        return await self.create_product(
            command.barcode,
            command.name,
            command.initial_quantity,
            command.buying_price,
            command.selling_price,
            command.supplier,
            command.sell_location,
            command.note,
        )

    async def apply_adjustment(self, command: StockAdjustment) -> Product:
        return await self.adjust_stock(
            command.barcode,
            command.direction,
            command.quantity,
            command.note,
            command.counterparty,
        )

    async def update_product(self, barcode: str, **fields: Any) -> Product:
        path = f"products/{_segment(barcode)}"
        payload = await self._request("PUT", path, json=fields)
        with _decoding(path):
            return Product.from_payload(payload["product"])

    # categories

    async def list_categories(self) -> list[Category]:
        payload = await self._request("GET", "categories")
        with _decoding("categories"):
            return [Category.from_payload(entry) for entry in payload.get("categories", [])]

    async def create_category(
        self,
        name: str,
        description: str = "",
        color: str = constants.DEFAULT_CATEGORY_COLOR,
    ) -> Category:
        payload = await self._request(
            "POST",
            "categories",
            json={"name": name, "description": description, "color": color},
        )
        with _decoding("categories"):
            return Category.from_payload(payload["category"])

    async def update_category(
        self, category_id: str, name: str, description: str, color: str
    ) -> Category:
        path = f"categories/{_segment(category_id)}"
        payload = await self._request(
            "PUT",
            path,
            json={"name": name, "description": description, "color": color},
        )
        with _decoding(path):
            return Category.from_payload(payload["category"])

    async def delete_category(self, category_id: str) -> None:
        await self._request("DELETE", f"categories/{_segment(category_id)}")

    # stats

    async def dashboard_stats(self) -> DashboardStats:
        payload = await self._request("GET", "stats/dashboard")
        with _decoding("stats/dashboard"):
            return DashboardStats.from_payload(payload["stats"])

    async def category_distribution(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "stats/category-distribution")
        with _decoding("stats/category-distribution"):
            return list(payload.get("distribution", []))

    async def inventory_value(self) -> list[InventoryValuePoint]:
        """Daily bought/sold/profit totals, oldest day first."""

        payload = await self._request("GET", "stats/inventory-value")
        with _decoding("stats/inventory-value"):
            return [InventoryValuePoint.from_payload(entry) for entry in payload["data"]]
