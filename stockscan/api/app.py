"""FastAPI surface of the reference inventory service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import constants, settings
from ..warehouse.errors import AuthenticationError, WarehouseError
from ..warehouse.models import User
from .schemas import (
    CategoryDistributionResponse,
    CategoryListResponse,
    CategoryRequest,
    CategoryResponse,
    CategorySchema,
    CategoryShare,
    CleanupResponse,
    DashboardResponse,
    DashboardStatsSchema,
    HealthResponse,
    InventoryValuePoint,
    InventoryValueResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PaginationSchema,
    ProductCheckResponse,
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductSchema,
    ProductUpdateRequest,
    ScanCreateRequest,
    ScanListResponse,
    ScanResponse,
    ScanSchema,
    ScanStatsResponse,
    ScanStatsSchema,
    StockChangeRequest,
    UserResponse,
    UserSchema,
)
from .services import InventoryService

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "code": code},
    )


def create_app(service: InventoryService | None = None) -> FastAPI:
    if service is None:
        service = InventoryService.from_settings(settings.get_settings())
    app = FastAPI(title="Stockscan Inventory API", version=__version__)
    app.state.service = service

    @app.exception_handler(WarehouseError)
    async def _warehouse_error(_request: Request, exc: WarehouseError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request failed: %s", exc)
        return _error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return _error_response(status.HTTP_400_BAD_REQUEST, str(message), "validation_error")

    def access_token(authorization: Optional[str] = Header(None)) -> str:
        token = _bearer_token(authorization)
        if token is None:
            raise AuthenticationError("No token provided")
        return token

    def current_user(token: str = Depends(access_token)) -> User:
        return service.resolve_token(token)

    # auth

    @app.post("/api/auth/login", response_model=LoginResponse)
    def login(request: LoginRequest) -> LoginResponse:
        token, user = service.authenticate(request.username, request.password)
        return LoginResponse(token=token, user=UserSchema.model_validate(user))

    @app.get("/api/auth/me", response_model=UserResponse)
    def me(user: User = Depends(current_user)) -> UserResponse:
        return UserResponse(user=UserSchema.model_validate(user))

    @app.post("/api/auth/logout", response_model=MessageResponse)
    def logout(
        token: str = Depends(access_token), user: User = Depends(current_user)
    ) -> MessageResponse:
        service.revoke(token)
        logger.info("user %s logged out", user.username)
        return MessageResponse(message="Logged out successfully")

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc))

    # scans

    @app.post("/api/scans", response_model=ScanResponse, status_code=status.HTTP_201_CREATED)
    def create_scan(request: ScanCreateRequest, user: User = Depends(current_user)) -> ScanResponse:
        scan = service.record_scan(
            user,
            request.barcode,
            request.scan_mode,
            device_info=request.device_info,
            location=request.location,
        )
        return ScanResponse(scan=ScanSchema.model_validate(scan))

    @app.get("/api/scans/my", response_model=ScanListResponse)
    def my_scans(
        page: int = 1,
        limit: int = constants.DEFAULT_SCANS_PAGE_LIMIT,
        user: User = Depends(current_user),
    ) -> ScanListResponse:
        result = service.list_scans(user.id, page, limit)
        return ScanListResponse(
            scans=[ScanSchema.model_validate(scan) for scan in result.items],
            pagination=PaginationSchema.model_validate(result.pagination),
        )

    @app.get("/api/scans/all", response_model=ScanListResponse)
    def all_scans(
        page: int = 1,
        limit: int = constants.DEFAULT_ALL_SCANS_PAGE_LIMIT,
        _user: User = Depends(current_user),
    ) -> ScanListResponse:
        result = service.list_scans(None, page, limit)
        return ScanListResponse(
            scans=[ScanSchema.model_validate(scan) for scan in result.items],
            pagination=PaginationSchema.model_validate(result.pagination),
        )

    @app.get("/api/scans/stats", response_model=ScanStatsResponse)
    def scan_stats(user: User = Depends(current_user)) -> ScanStatsResponse:
        return ScanStatsResponse(stats=ScanStatsSchema.model_validate(service.scan_stats(user.id)))

    @app.delete("/api/scans/cleanup", response_model=CleanupResponse)
    def cleanup_scans(
        days: int = constants.DEFAULT_SCAN_RETENTION_DAYS,
        user: User = Depends(current_user),
    ) -> CleanupResponse:
        deleted = service.cleanup_scans(days)
        logger.info("%s removed %s scans older than %s days", user.username, deleted, days)
        return CleanupResponse(
            message=f"Deleted {deleted} scans older than {days} days",
            deleted_count=deleted,
        )

    # products

    @app.get("/api/products", response_model=ProductListResponse)
    def list_products(
        page: int = 1,
        limit: int = constants.DEFAULT_PRODUCTS_PAGE_LIMIT,
        search: str = "",
        category: str = "",
        _user: User = Depends(current_user),
    ) -> ProductListResponse:
        result = service.list_products(page, limit, search=search, category=category)
        return ProductListResponse(
            products=[ProductSchema.model_validate(product) for product in result.items],
            pagination=PaginationSchema.model_validate(result.pagination),
        )

    @app.post(
        "/api/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
    )
    def create_product(
        request: ProductCreateRequest, user: User = Depends(current_user)
    ) -> ProductResponse:
        product = service.create_product(
            user,
            request.barcode,
            request.name,
            request.quantity,
            note=request.note,
            buying_price=request.buying_price,
            selling_price=request.selling_price,
            bought_from=request.bought_from,
            sell_location=request.sell_location,
            image_url=request.image_url,
            category_id=request.category_id,
        )
        return ProductResponse(product=ProductSchema.model_validate(product))

    @app.get("/api/products/check/{barcode:path}", response_model=ProductCheckResponse)
    def check_product(barcode: str, _user: User = Depends(current_user)) -> ProductCheckResponse:
        product = service.check_product(barcode)
        if product is None:
            return ProductCheckResponse(exists=False)
        return ProductCheckResponse(exists=True, product=ProductSchema.model_validate(product))

    @app.post("/api/products/{barcode:path}/add-stock", response_model=ProductResponse)
    def add_stock(
        barcode: str, request: StockChangeRequest, user: User = Depends(current_user)
    ) -> ProductResponse:
        product = service.add_stock(
            user, barcode, request.quantity, note=request.note, supplier=request.supplier
        )
        return ProductResponse(product=ProductSchema.model_validate(product))

    @app.post("/api/products/{barcode:path}/remove-stock", response_model=ProductResponse)
    def remove_stock(
        barcode: str, request: StockChangeRequest, user: User = Depends(current_user)
    ) -> ProductResponse:
        product = service.remove_stock(
            user, barcode, request.quantity, note=request.note, location=request.location
        )
        return ProductResponse(product=ProductSchema.model_validate(product))

    @app.get("/api/products/{barcode:path}", response_model=ProductResponse)
    def get_product(barcode: str, _user: User = Depends(current_user)) -> ProductResponse:
        return ProductResponse(product=ProductSchema.model_validate(service.get_product(barcode)))

    @app.put("/api/products/{barcode:path}", response_model=ProductResponse)
    def update_product(
        barcode: str, request: ProductUpdateRequest, _user: User = Depends(current_user)
    ) -> ProductResponse:
        product = service.update_product(barcode, request.model_dump(exclude_unset=True))
        return ProductResponse(product=ProductSchema.model_validate(product))

    # categories

    @app.get("/api/categories", response_model=CategoryListResponse)
    def list_categories(_user: User = Depends(current_user)) -> CategoryListResponse:
        return CategoryListResponse(
            categories=[CategorySchema.model_validate(c) for c in service.list_categories()]
        )

    @app.post(
        "/api/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED
    )
    def create_category(
        request: CategoryRequest, user: User = Depends(current_user)
    ) -> CategoryResponse:
        category = service.create_category(user, request.name, request.description, request.color)
        return CategoryResponse(category=CategorySchema.model_validate(category))

    @app.put("/api/categories/{category_id}", response_model=CategoryResponse)
    def update_category(
        category_id: str, request: CategoryRequest, _user: User = Depends(current_user)
    ) -> CategoryResponse:
        category = service.update_category(
            category_id, request.name, request.description, request.color
        )
        return CategoryResponse(category=CategorySchema.model_validate(category))

    @app.delete("/api/categories/{category_id}", response_model=MessageResponse)
    def delete_category(category_id: str, _user: User = Depends(current_user)) -> MessageResponse:
        service.delete_category(category_id)
        return MessageResponse(message="Category deleted successfully")

    # stats

    @app.get("/api/stats/dashboard", response_model=DashboardResponse)
    def dashboard(_user: User = Depends(current_user)) -> DashboardResponse:
        return DashboardResponse(
            stats=DashboardStatsSchema.model_validate(service.dashboard_stats())
        )

    @app.get("/api/stats/category-distribution", response_model=CategoryDistributionResponse)
    def category_distribution(
        _user: User = Depends(current_user),
    ) -> CategoryDistributionResponse:
        return CategoryDistributionResponse(
            distribution=[CategoryShare(**row) for row in service.category_distribution()]
        )

    @app.get("/api/stats/inventory-value", response_model=InventoryValueResponse)
    def inventory_value(
        days: int = constants.DEFAULT_INVENTORY_VALUE_DAYS,
        _user: User = Depends(current_user),
    ) -> InventoryValueResponse:
        return InventoryValueResponse(
            data=[InventoryValuePoint(**row) for row in service.inventory_value(days)]
        )

    return app


_app: FastAPI | None = None


def get_app() -> FastAPI:
    global _app
    if _app is None:
        _app = create_app()
    return _app
