"""Pydantic API schemas for the inventory service."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..capture.modes import ScanMode
from ..config import constants
from ..warehouse.models import StockDirection


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserSchema(_Record):
    id: str
    username: str
    full_name: str


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: UserSchema


class UserResponse(BaseModel):
    success: bool = True
    user: UserSchema


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime


class ScanCreateRequest(BaseModel):
    barcode: str = ""
    scan_mode: ScanMode = ScanMode.KEYBOARD
    device_info: Optional[str] = None
    location: Optional[str] = None


class ScanSchema(_Record):
    id: str
    barcode: str
    scan_mode: ScanMode
    scanned_at: datetime
    user_id: str
    username: str
    user_full_name: str
    device_info: Optional[str] = None
    location: Optional[str] = None


class ScanResponse(BaseModel):
    success: bool = True
    scan: ScanSchema


class PaginationSchema(_Record):
    page: int
    limit: int
    total: int
    pages: int


class ScanListResponse(BaseModel):
    success: bool = True
    scans: List[ScanSchema]
    pagination: PaginationSchema


class ScanStatsSchema(_Record):
    total_scans: int
    today_scans: int
    recent_scans: List[ScanSchema]


class ScanStatsResponse(BaseModel):
    success: bool = True
    stats: ScanStatsSchema


class CleanupResponse(BaseModel):
    success: bool = True
    message: str
    deleted_count: int


class StockHistorySchema(_Record):
    quantity: int
    direction: StockDirection
    actor: str
    created_at: datetime
    note: str = ""
    supplier: Optional[str] = None
    location: Optional[str] = None


class ProductSchema(_Record):
    id: str
    barcode: str
    name: str
    current_stock: int
    note: str
    buying_price: float
    selling_price: float
    bought_from: str
    sell_location: str
    image_url: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    stock_history: List[StockHistorySchema]
    created_by_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductCreateRequest(BaseModel):
    barcode: str = ""
    name: str = ""
    quantity: int = Field(0, ge=0)
    note: str = ""
    buying_price: float = 0.0
    selling_price: float = 0.0
    bought_from: str = ""
    sell_location: str = ""
    image_url: Optional[str] = None
    category_id: Optional[str] = None


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = None
    note: Optional[str] = None
    buying_price: Optional[float] = None
    selling_price: Optional[float] = None
    bought_from: Optional[str] = None
    sell_location: Optional[str] = None
    image_url: Optional[str] = None
    category_id: Optional[str] = None


class StockChangeRequest(BaseModel):
    quantity: int = 0
    note: str = ""
    supplier: Optional[str] = None
    location: Optional[str] = None


class ProductResponse(BaseModel):
    success: bool = True
    product: ProductSchema


class ProductCheckResponse(BaseModel):
    success: bool = True
    exists: bool
    product: Optional[ProductSchema] = None


class ProductListResponse(BaseModel):
    success: bool = True
    products: List[ProductSchema]
    pagination: PaginationSchema


class CategoryRequest(BaseModel):
    name: str = ""
    description: str = ""
    color: str = constants.DEFAULT_CATEGORY_COLOR


class CategorySchema(_Record):
    id: str
    name: str
    description: str
    color: str
    created_by_name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryResponse(BaseModel):
    success: bool = True
    category: CategorySchema


class CategoryListResponse(BaseModel):
    success: bool = True
    categories: List[CategorySchema]


class DashboardStatsSchema(_Record):
    total_products: int
    total_buy_value: float
    total_sell_value: float
    monthly_profit: float


class DashboardResponse(BaseModel):
    success: bool = True
    stats: DashboardStatsSchema


class CategoryShare(BaseModel):
    name: str
    color: str
    count: int


class CategoryDistributionResponse(BaseModel):
    success: bool = True
    distribution: List[CategoryShare]


class InventoryValuePoint(BaseModel):
    date: str
    bought: float
    sold: float
    profit: float


class InventoryValueResponse(BaseModel):
    success: bool = True
    data: List[InventoryValuePoint]
