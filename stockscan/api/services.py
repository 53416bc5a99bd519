"""In-memory inventory store behind the API routes."""

from __future__ import annotations

import logging
import math
import secrets
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

import bcrypt
import jwt

from ..capture.modes import ScanMode
from ..config import constants
from ..config.settings import Settings
from ..warehouse.errors import (
    AuthenticationError,
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from ..warehouse.models import (
    Category,
    DashboardStats,
    Page,
    Pagination,
    Product,
    ScanRecord,
    ScanStats,
    StockDirection,
    StockHistoryEntry,
    User,
)

logger = logging.getLogger(__name__)

_JWT_ALGORITHM = "HS256"
_BCRYPT_MAX_BYTES = 72
_UNCATEGORIZED_COLOR = "#9ca3af"
_PROFIT_WINDOW = timedelta(days=30)
_UPDATABLE_FIELDS = (
    "name",
    "note",
    "buying_price",
    "selling_price",
    "bought_from",
    "sell_location",
    "image_url",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _hash_password(password: str, rounds: int) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds))


def _verify_password(password: str, password_hash: bytes) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(encoded, password_hash)


def parse_user_spec(spec: str) -> tuple[str, str, str]:
    """Split ``user:password[:Full Name]``."""

    parts = spec.split(":", 2)
    if len(parts) < 2 or not parts[0].strip() or not parts[1]:
        raise ValueError(f"invalid user spec {spec!r}; expected user:password[:Full Name]")
    username = parts[0].strip()
    full_name = parts[2].strip() if len(parts) == 3 else ""
    return username, parts[1], full_name or username


def _paginate(items: list[Any], page: int, limit: int) -> tuple[list[Any], Pagination]:
    page = max(1, page)
    limit = max(1, limit)
    total = len(items)
    start = (page - 1) * limit
    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
    )
    return items[start : start + limit], pagination


@dataclass
class UserAccount:
    id: str
    username: str
    full_name: str
    password_hash: bytes
    last_login: datetime | None = None

    def to_user(self) -> User:
        return User(id=self.id, username=self.username, full_name=self.full_name)


class InventoryService:
    """Users, scans, products and categories kept in process memory.

    Passwords are stored as bcrypt hashes. Sessions are HS256 JWTs carrying
    the username (``sub``) and a unique ``jti``; logout puts the ``jti`` on a
    denylist until the token would have expired anyway.

    Stock only moves through ``create_product``, ``add_stock`` and
    ``remove_stock``; each movement appends exactly one history entry and
    entries are never edited or removed.
    """

    def __init__(
        self,
        users: Iterable[str] = (),
        *,
        token_ttl_seconds: int = constants.DEFAULT_TOKEN_TTL_SECONDS,
        secret_key: str | None = None,
        hash_rounds: int = constants.DEFAULT_BCRYPT_ROUNDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._clock = clock or _utcnow
        self._token_ttl = timedelta(seconds=token_ttl_seconds)
        if not secret_key:
            logger.warning("no JWT secret configured; tokens will not survive a restart")
            secret_key = secrets.token_urlsafe(32)
        self._secret_key = secret_key
        self._hash_rounds = hash_rounds
        self._accounts: dict[str, UserAccount] = {}
        self._revoked: dict[str, datetime] = {}
        self._scans: list[ScanRecord] = []
        self._products: dict[str, Product] = {}
        self._categories: dict[str, Category] = {}
        for spec in users:
            self.add_user(*parse_user_spec(spec))

    @classmethod
    def from_settings(cls, settings: Settings) -> "InventoryService":
        return cls(
            settings.users,
            token_ttl_seconds=settings.token_ttl_seconds,
            secret_key=settings.jwt_secret or None,
        )

    # auth

    def add_user(self, username: str, password: str, full_name: str = "") -> User:
        key = username.strip().lower()
        if not key or not password:
            raise ValidationError("Username and password are required")
        password_hash = _hash_password(password, self._hash_rounds)
        with self._lock:
            if key in self._accounts:
                raise ConflictError(f"User {key} already exists")
            account = UserAccount(
                id=_new_id(),
                username=key,
                full_name=full_name or key,
                password_hash=password_hash,
            )
            self._accounts[key] = account
        return account.to_user()

    def _issue_token(self, account: UserAccount) -> str:
        issued_at = _utcnow()
        claims = {
            "sub": account.username,
            "uid": account.id,
            "iat": issued_at,
            "exp": issued_at + self._token_ttl,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(claims, self._secret_key, algorithm=_JWT_ALGORITHM)

    def _decode_token(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=[_JWT_ALGORITHM],
                options={"require": ["exp", "sub", "jti"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired") from exc
        except jwt.PyJWTError as exc:
            raise AuthenticationError("Invalid token") from exc

    def authenticate(self, username: str, password: str) -> tuple[str, User]:
        if not username or not password:
            raise ValidationError("Username and password are required")
        with self._lock:
            account = self._accounts.get(username.strip().lower())
        if account is None or not _verify_password(password, account.password_hash):
            raise AuthenticationError("Invalid username or password")
        with self._lock:
            account.last_login = self._clock()
        token = self._issue_token(account)
        logger.info("user %s logged in", account.username)
        return token, account.to_user()

    def resolve_token(self, token: str | None) -> User:
        if not token:
            raise AuthenticationError("No token provided")
        claims = self._decode_token(token)
        with self._lock:
            if claims["jti"] in self._revoked:
                raise AuthenticationError("Invalid token")
            account = self._accounts.get(claims["sub"])
            if account is None:
                raise AuthenticationError("User not found")
            return account.to_user()

    def revoke(self, token: str) -> None:
        claims = self._decode_token(token)
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        now = _utcnow()
        with self._lock:
            self._revoked = {jti: exp for jti, exp in self._revoked.items() if exp > now}
            self._revoked[claims["jti"]] = expires_at

    # scans

    def record_scan(
        self,
        user: User,
        barcode: str,
        scan_mode: ScanMode = ScanMode.KEYBOARD,
        device_info: str | None = None,
        location: str | None = None,
    ) -> ScanRecord:
        value = (barcode or "").strip()
        if not value:
            raise ValidationError("Barcode data is required")
        scan = ScanRecord(
            id=_new_id(),
            barcode=value,
            scan_mode=scan_mode,
            scanned_at=self._clock(),
            user_id=user.id,
            username=user.username,
            user_full_name=user.full_name,
            device_info=device_info or None,
            location=location or None,
        )
        with self._lock:
            self._scans.append(scan)
        return scan

    def _scans_for(self, user_id: str | None) -> list[ScanRecord]:
        with self._lock:
            scans = [scan for scan in self._scans if user_id is None or scan.user_id == user_id]
        scans.sort(key=lambda scan: scan.scanned_at, reverse=True)
        return scans

    def list_scans(self, user_id: str | None, page: int, limit: int) -> Page[ScanRecord]:
        items, pagination = _paginate(self._scans_for(user_id), page, limit)
        return Page(items=items, pagination=pagination)

    def scan_stats(self, user_id: str) -> ScanStats:
        scans = self._scans_for(user_id)
        today_start = self._clock().replace(hour=0, minute=0, second=0, microsecond=0)
        return ScanStats(
            total_scans=len(scans),
            today_scans=sum(1 for scan in scans if scan.scanned_at >= today_start),
            recent_scans=scans[:5],
        )

    def cleanup_scans(self, days: int) -> int:
        if days < 0:
            raise ValidationError("days must not be negative")
        cutoff = self._clock() - timedelta(days=days)
        with self._lock:
            kept = [scan for scan in self._scans if scan.scanned_at >= cutoff]
            deleted = len(self._scans) - len(kept)
            self._scans = kept
        return deleted

    # products

    def _snapshot(self, product: Product) -> Product:
        return replace(product, stock_history=list(product.stock_history))

    def _product(self, barcode: str) -> Product:
        product = self._products.get(barcode.strip())
        if product is None:
            raise NotFoundError("Product not found")
        return product

    def check_product(self, barcode: str) -> Product | None:
        with self._lock:
            product = self._products.get(barcode.strip())
            return self._snapshot(product) if product else None

    def get_product(self, barcode: str) -> Product:
        with self._lock:
            return self._snapshot(self._product(barcode))

    def list_products(
        self,
        page: int,
        limit: int,
        *,
        search: str = "",
        category: str = "",
    ) -> Page[Product]:
        needle = search.strip().lower()
        with self._lock:
            products = [
                self._snapshot(product)
                for product in self._products.values()
                if (not category or product.category_id == category)
                and (
                    not needle
                    or needle in product.name.lower()
                    or needle in product.barcode.lower()
                )
            ]
        products.sort(key=lambda product: product.created_at or self._clock(), reverse=True)
        items, pagination = _paginate(products, page, limit)
        return Page(items=items, pagination=pagination)

    def _category_name(self, category_id: str | None) -> str | None:
        if not category_id:
            return None
        category = self._categories.get(category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category.name

    def create_product(
        self,
        user: User,
        barcode: str,
        name: str,
        quantity: int = 0,
        *,
        note: str = "",
        buying_price: float = 0.0,
        selling_price: float = 0.0,
        bought_from: str = "",
        sell_location: str = "",
        image_url: str | None = None,
        category_id: str | None = None,
    ) -> Product:
        code = (barcode or "").strip()
        if not code:
            raise ValidationError("Barcode is required")
        if not (name or "").strip():
            raise ValidationError("Product name is required")
        if quantity < 0:
            raise ValidationError("Valid quantity is required")
        now = self._clock()
        with self._lock:
            if code in self._products:
                raise ConflictError("Product with this barcode already exists")
            product = Product(
                barcode=code,
                name=name.strip(),
                current_stock=quantity,
                id=_new_id(),
                note=note.strip(),
                buying_price=buying_price,
                selling_price=selling_price,
                bought_from=bought_from.strip(),
                sell_location=sell_location.strip(),
                image_url=image_url or None,
                category_id=category_id or None,
                category_name=self._category_name(category_id),
                created_by_name=user.full_name,
                created_at=now,
                updated_at=now,
            )
            if quantity > 0:
                product.stock_history.append(
                    StockHistoryEntry(
                        quantity=quantity,
                        direction=StockDirection.ADD,
                        actor=user.full_name,
                        created_at=now,
                        note=note.strip() or "Initial stock",
                        supplier=bought_from.strip() or None,
                    )
                )
            self._products[code] = product
            logger.info("product %s created by %s with %s units", code, user.username, quantity)
            return self._snapshot(product)

    def add_stock(
        self,
        user: User,
        barcode: str,
        quantity: int,
        *,
        note: str = "",
        supplier: str | None = None,
    ) -> Product:
        if quantity <= 0:
            raise ValidationError("Valid quantity is required")
        now = self._clock()
        with self._lock:
            product = self._product(barcode)
            product.current_stock += quantity
            product.updated_at = now
            product.stock_history.append(
                StockHistoryEntry(
                    quantity=quantity,
                    direction=StockDirection.ADD,
                    actor=user.full_name,
                    created_at=now,
                    note=note.strip(),
                    supplier=(supplier or "").strip() or None,
                )
            )
            return self._snapshot(product)

    def remove_stock(
        self,
        user: User,
        barcode: str,
        quantity: int,
        *,
        note: str = "",
        location: str | None = None,
    ) -> Product:
        if quantity <= 0:
            raise ValidationError("Valid quantity is required")
        now = self._clock()
        with self._lock:
            product = self._product(barcode)
            if quantity > product.current_stock:
                raise InsufficientStockError(
                    f"Cannot remove {quantity}. Only {product.current_stock} in stock."
                )
            product.current_stock -= quantity
            product.updated_at = now
            product.stock_history.append(
                StockHistoryEntry(
                    quantity=quantity,
                    direction=StockDirection.REMOVE,
                    actor=user.full_name,
                    created_at=now,
                    note=note.strip(),
                    location=(location or "").strip() or None,
                )
            )
            return self._snapshot(product)

    def update_product(self, barcode: str, fields: dict[str, Any]) -> Product:
        """Apply descriptive edits atomically; stock and history are never touched."""

        changes: dict[str, Any] = {}
        for key in _UPDATABLE_FIELDS:
            value = fields.get(key)
            if value is None:
                continue
            if key == "name" and not str(value).strip():
                raise ValidationError("Product name is required")
            changes[key] = value.strip() if isinstance(value, str) else value
        with self._lock:
            product = self._product(barcode)
            if "category_id" in fields:
                category_id = fields["category_id"] or None
                changes["category_name"] = self._category_name(category_id)
                changes["category_id"] = category_id
            for key, value in changes.items():
                setattr(product, key, value)
            product.updated_at = self._clock()
            return self._snapshot(product)

    # categories

    def _ensure_unique_name(self, name: str, exclude_id: str | None = None) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Category name is required")
        for category in self._categories.values():
            if category.id != exclude_id and category.name.lower() == clean.lower():
                raise ConflictError("Category with this name already exists")
        return clean

    def list_categories(self) -> list[Category]:
        with self._lock:
            return sorted(self._categories.values(), key=lambda category: category.name.lower())

    def create_category(
        self,
        user: User,
        name: str,
        description: str = "",
        color: str = constants.DEFAULT_CATEGORY_COLOR,
    ) -> Category:
        now = self._clock()
        with self._lock:
            category = Category(
                id=_new_id(),
                name=self._ensure_unique_name(name),
                description=description.strip(),
                color=color or constants.DEFAULT_CATEGORY_COLOR,
                created_by_name=user.full_name,
                created_at=now,
                updated_at=now,
            )
            self._categories[category.id] = category
            return category

    def update_category(
        self, category_id: str, name: str, description: str, color: str
    ) -> Category:
        with self._lock:
            current = self._categories.get(category_id)
            if current is None:
                raise NotFoundError("Category not found")
            updated = replace(
                current,
                name=self._ensure_unique_name(name, exclude_id=category_id),
                description=description.strip(),
                color=color or current.color,
                updated_at=self._clock(),
            )
            self._categories[category_id] = updated
            for product in self._products.values():
                if product.category_id == category_id:
                    product.category_name = updated.name
            return updated

    def delete_category(self, category_id: str) -> None:
        with self._lock:
            if self._categories.pop(category_id, None) is None:
                raise NotFoundError("Category not found")
            for product in self._products.values():
                if product.category_id == category_id:
                    product.category_id = None
                    product.category_name = None

    # stats

    def dashboard_stats(self) -> DashboardStats:
        since = self._clock() - _PROFIT_WINDOW
        with self._lock:
            products = list(self._products.values())
            profit = sum(
                entry.quantity * (product.selling_price - product.buying_price)
                for product in products
                for entry in product.stock_history
                if entry.direction == StockDirection.REMOVE and entry.created_at >= since
            )
            return DashboardStats(
                total_products=len(products),
                total_buy_value=sum(p.current_stock * p.buying_price for p in products),
                total_sell_value=sum(p.current_stock * p.selling_price for p in products),
                monthly_profit=profit,
            )

    def category_distribution(self) -> list[dict[str, Any]]:
        with self._lock:
            counts: dict[str | None, int] = {}
            for product in self._products.values():
                counts[product.category_id] = counts.get(product.category_id, 0) + 1
            rows = [
                {"name": category.name, "color": category.color, "count": counts.get(category.id, 0)}
                for category in self._categories.values()
                if counts.get(category.id)
            ]
            if counts.get(None):
                rows.append({"name": "Uncategorized", "color": _UNCATEGORIZED_COLOR, "count": counts[None]})
        rows.sort(key=lambda row: row["count"], reverse=True)
        return rows

    def inventory_value(
        self, days: int = constants.DEFAULT_INVENTORY_VALUE_DAYS
    ) -> list[dict[str, Any]]:
        """Per-day value of stock bought in and sold out, oldest day first.

        ADD entries count towards ``bought`` at the buying price; REMOVE entries
        count towards ``sold`` at the selling price and towards ``profit`` at
        the margin. Days without movements are left out.
        """

        if days <= 0:
            raise ValidationError("days must be positive")
        since = self._clock() - timedelta(days=days)
        totals: dict[str, dict[str, float]] = {}
        with self._lock:
            for product in self._products.values():
                for entry in product.stock_history:
                    if entry.created_at < since:
                        continue
                    day = totals.setdefault(
                        entry.created_at.date().isoformat(),
                        {"bought": 0.0, "sold": 0.0, "profit": 0.0},
                    )
                    if entry.direction == StockDirection.ADD:
                        day["bought"] += entry.quantity * product.buying_price
                    else:
                        day["sold"] += entry.quantity * product.selling_price
                        day["profit"] += entry.quantity * (
                            product.selling_price - product.buying_price
                        )
        return [
            {"date": date, **{key: round(value, 2) for key, value in day.items()}}
            for date, day in sorted(totals.items())
        ]
