"""
Pydantic schemas for back-office API endpoints.
Centralized to avoid circular imports between routers and services.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from shared.utils.schemas import (
    DeliveryPayerLiteral,
    DeliveryTypeLiteral,
    EntityStatusLiteral,
    ExecutorTypeLiteral,
    LogLevelLiteral,
    OrderStatusLiteral,
    PaymentMethodTypeLiteral,
    PaymentStatusLiteral,
)

# =============================================================================
# Partner Settings Schemas
# =============================================================================


class PartnerOutput(BaseModel):
    id: int
    name: str
    url_suffix: str
    logo_url: str | None = None
    status: str
    pause_message: str | None = None

    class Config:
        from_attributes = True


class PartnerSettingsOutput(BaseModel):
    partner_id: int
    order_completion_norm_minutes: int
    timezone: str
    next_order_number: int
    currency_code: str
    currency_symbol: str
    courier_no_zone_message: str | None = None
    min_pickup_order_amount: float | None = None
    courier_bot_token: str | None = None
    courier_bot_enabled: bool
    external_courier_bot_token: str | None = None
    poster_account: str | None = None
    poster_api_token: str | None = None
    binotel_company_id: str | None = None
    history_retention_days: int | None = None
    history_auto_cleanup_enabled: bool

    class Config:
        from_attributes = True


class SettingsOutput(BaseModel):
    partner: PartnerOutput
    settings: PartnerSettingsOutput


class SettingsUpdate(BaseModel):
    # Partner
    name: str | None = None
    logo_url: str | None = None
    pause_message: str | None = None
    status: Optional[str] = Field(default=None, pattern="^(active|paused)$")
    # Settings
    order_completion_norm_minutes: int | None = Field(default=None, ge=1)
    timezone: str | None = None
    next_order_number: int | None = Field(default=None, ge=1)
    currency_code: str | None = None
    currency_symbol: str | None = None
    courier_no_zone_message: str | None = None
    min_pickup_order_amount: float | None = Field(default=None, ge=0)
    courier_bot_token: str | None = None
    courier_bot_enabled: bool | None = None
    external_courier_bot_token: str | None = None
    poster_account: str | None = None
    poster_api_token: str | None = None
    binotel_company_id: str | None = None
    history_retention_days: int | None = Field(default=None, ge=1)
    history_auto_cleanup_enabled: bool | None = None


class NextOrderNumberOutput(BaseModel):
    order_number: int


# =============================================================================
# Branch Schemas
# =============================================================================


class BranchOutput(BaseModel):
    id: int
    partner_id: int
    name: str
    address: str | None = None
    phone: str | None = None
    status: str
    latitude: float | None = None
    longitude: float | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    poster_enabled: bool
    poster_spot_id: int | None = None
    poster_spot_name: str | None = None
    poster_spot_address: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class BranchCreate(BaseModel):
    name: str
    address: str | None = None
    phone: str | None = None
    status: EntityStatusLiteral = "active"
    latitude: float | None = None
    longitude: float | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    poster_enabled: bool = False
    poster_spot_id: int | None = None
    poster_spot_name: str | None = None
    poster_spot_address: str | None = None


class BranchUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    phone: str | None = None
    status: EntityStatusLiteral | None = None
    latitude: float | None = None
    longitude: float | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    poster_enabled: bool | None = None
    poster_spot_id: int | None = None
    poster_spot_name: str | None = None
    poster_spot_address: str | None = None


class WebhookOutput(BaseModel):
    ok: bool
    webhook_url: str
    webhook_info: dict[str, Any] = {}


# =============================================================================
# Position / Staff Schemas
# =============================================================================


class PositionOutput(BaseModel):
    id: int
    partner_id: int
    name: str
    can_delete_orders: bool
    can_revert_order_status: bool
    can_skip_order_status: bool
    sections: list[str]
    branch_ids: list[int]
    staff_count: int = 0


class PositionCreate(BaseModel):
    name: str
    can_delete_orders: bool = False
    can_revert_order_status: bool = False
    can_skip_order_status: bool = False
    sections: list[str] = []
    branch_ids: list[int] = []


class PositionUpdate(BaseModel):
    name: str | None = None
    can_delete_orders: bool | None = None
    can_revert_order_status: bool | None = None
    can_skip_order_status: bool | None = None
    sections: list[str] | None = None
    branch_ids: list[int] | None = None


class StaffOutput(BaseModel):
    id: int
    partner_id: int
    login: str
    name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: str
    position_id: int | None = None
    position_name: str | None = None
    active: bool
    fired_at: datetime | None = None
    fired_reason: str | None = None
    created_at: datetime


class StaffCreate(BaseModel):
    login: str
    password: str
    name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    position_id: int | None = None


class StaffUpdate(BaseModel):
    login: str | None = None
    password: str | None = None
    name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    position_id: int | None = None


class FireStaffRequest(BaseModel):
    reason: str | None = None


# =============================================================================
# Executor Schemas
# =============================================================================


class ExecutorOutput(BaseModel):
    id: int
    partner_id: int
    name: str
    own_couriers: bool
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    payment_for_pour: bool
    payment_terminal: bool
    payment_cashless: bool
    commission_percent: float
    different_prices: bool
    price_markup_percent: float
    bad_weather_surcharge_percent: float
    delivery_payer_default: str
    default_payment_method_id: int | None = None
    status: str
    no_zone_message: str | None = None
    km_calculation_enabled: bool
    price_per_km: float
    km_graduation_meters: int
    created_at: datetime

    class Config:
        from_attributes = True


class ExecutorCreate(BaseModel):
    name: str
    own_couriers: bool = False
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    payment_for_pour: bool = False
    payment_terminal: bool = False
    payment_cashless: bool = False
    commission_percent: float = Field(default=0, ge=0, le=100)
    different_prices: bool = False
    price_markup_percent: float = Field(default=0, ge=0)
    bad_weather_surcharge_percent: float = Field(default=0, ge=0)
    delivery_payer_default: DeliveryPayerLiteral = "restaurant"
    default_payment_method_id: int | None = None
    status: EntityStatusLiteral = "active"
    no_zone_message: str | None = None
    km_calculation_enabled: bool = False
    price_per_km: float = Field(default=0, ge=0)
    km_graduation_meters: int = Field(default=100, ge=0)


class ExecutorUpdate(BaseModel):
    name: str | None = None
    own_couriers: bool | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    payment_for_pour: bool | None = None
    payment_terminal: bool | None = None
    payment_cashless: bool | None = None
    commission_percent: float | None = Field(default=None, ge=0, le=100)
    different_prices: bool | None = None
    price_markup_percent: float | None = Field(default=None, ge=0)
    bad_weather_surcharge_percent: float | None = Field(default=None, ge=0)
    delivery_payer_default: DeliveryPayerLiteral | None = None
    default_payment_method_id: int | None = None
    status: EntityStatusLiteral | None = None
    no_zone_message: str | None = None
    km_calculation_enabled: bool | None = None
    price_per_km: float | None = Field(default=None, ge=0)
    km_graduation_meters: int | None = Field(default=None, ge=0)


class PriceBreakdownOutput(BaseModel):
    zone_id: int
    zone_name: str
    delivery_price: int
    courier_payment_base: int
    distance_price: int
    total_courier_payment: int
    distance_km: float | None = None


# =============================================================================
# Zone Schemas
# =============================================================================


class LatLng(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class PerformerZoneOutput(BaseModel):
    id: int
    executor_id: int
    name: str
    color: str | None = None
    price_uah: float
    courier_payment: float | None = None
    polygons: list[Any] = []

    class Config:
        from_attributes = True


class PerformerZoneCreate(BaseModel):
    name: str
    color: str | None = None
    price_uah: float = Field(default=0, ge=0)
    courier_payment: float | None = Field(default=None, ge=0)
    polygons: list[list[LatLng]] = []


class PerformerZoneUpdate(BaseModel):
    name: str | None = None
    color: str | None = None
    price_uah: float | None = Field(default=None, ge=0)
    courier_payment: float | None = Field(default=None, ge=0)
    polygons: list[list[LatLng]] | None = None


class CourierZoneOutput(BaseModel):
    id: int
    name: str
    color: str | None = None
    price_uah: float
    courier_payment: float | None = None
    free_delivery_threshold: float | None = None
    min_order_amount: float | None = None
    polygons: list[Any] = []

    class Config:
        from_attributes = True


class CourierZoneCreate(BaseModel):
    name: str
    color: str | None = None
    price_uah: float = Field(default=0, ge=0)
    courier_payment: float | None = Field(default=None, ge=0)
    free_delivery_threshold: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    polygons: list[list[LatLng]] = []


class CourierZoneUpdate(BaseModel):
    name: str | None = None
    color: str | None = None
    price_uah: float | None = Field(default=None, ge=0)
    courier_payment: float | None = Field(default=None, ge=0)
    free_delivery_threshold: float | None = Field(default=None, ge=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    polygons: list[list[LatLng]] | None = None


class ZoneLookupOutput(BaseModel):
    found: bool
    zone_id: int | None = None
    zone_name: str | None = None
    price_uah: float | None = None
    courier_payment: float | None = None
    message: str | None = None


class CourierDeliveryPriceOutput(BaseModel):
    found: bool
    zone_id: int | None = None
    delivery_price: float | None = None
    free_delivery: bool = False
    min_order_amount: float | None = None
    message: str | None = None


# =============================================================================
# Courier Schemas
# =============================================================================


class CourierOutput(BaseModel):
    id: int
    partner_id: int
    branch_id: int | None = None
    name: str
    lastname: str | None = None
    phone: str | None = None
    is_active: bool
    vehicle_type: str | None = None
    telegram_user_id: str | None = None
    telegram_username: str | None = None
    is_own: bool
    is_external: bool
    cabinet_slug: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class CourierCreate(BaseModel):
    branch_id: int | None = None
    name: str
    lastname: str | None = None
    phone: str | None = None
    is_active: bool = True
    vehicle_type: str | None = None
    telegram_user_id: str | None = None
    telegram_username: str | None = None
    is_own: bool = True
    is_external: bool = False


class CourierUpdate(BaseModel):
    branch_id: int | None = None
    name: str | None = None
    lastname: str | None = None
    phone: str | None = None
    is_active: bool | None = None
    vehicle_type: str | None = None
    telegram_user_id: str | None = None
    telegram_username: str | None = None
    is_own: bool | None = None
    is_external: bool | None = None


# =============================================================================
# Payment Method Schemas
# =============================================================================


class PaymentMethodOutput(BaseModel):
    id: int
    partner_id: int
    name: str
    method_type: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentMethodCreate(BaseModel):
    name: str
    method_type: PaymentMethodTypeLiteral
    is_active: bool = True


class PaymentMethodUpdate(BaseModel):
    name: str | None = None
    method_type: PaymentMethodTypeLiteral | None = None
    is_active: bool | None = None


# =============================================================================
# Shift Schemas
# =============================================================================


class ShiftOutput(BaseModel):
    id: int
    partner_id: int
    branch_id: int
    status: str
    opened_at: datetime
    closed_at: datetime | None = None
    opened_by: int | None = None
    closed_by: int | None = None
    total_orders_count: int
    completed_orders_count: int

    class Config:
        from_attributes = True


class ShiftOpen(BaseModel):
    branch_id: int


class ShiftStatsOutput(BaseModel):
    shift_id: int
    branch_id: int
    status: str
    total_orders: int
    completed_orders: int
    revenue: float
    delivery_orders: int
    pickup_orders: int
    delivery_revenue: float
    courier_payments: float
    duration_minutes: int


# =============================================================================
# Order Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    product_name: str
    quantity: int = Field(default=1, ge=1, le=999)
    base_price: float = Field(default=0, ge=0)
    modifiers: list[dict[str, Any]] = []


class OrderItemOutput(BaseModel):
    id: int
    product_name: str
    quantity: int
    base_price: float
    total_price: float
    modifiers: list[Any] = []

    class Config:
        from_attributes = True


class OrderOutput(BaseModel):
    id: int
    partner_id: int
    branch_id: int
    shift_id: int | None = None
    order_number: int
    status: str
    payment_status: str
    payment_method_id: int | None = None
    delivery_type: str
    client_name: str | None = None
    phone: str | None = None
    address_line: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    comment: str | None = None
    total_amount: float
    delivery_price_uah: float | None = None
    distance_km: float | None = None
    executor_type: str | None = None
    executor_id: int | None = None
    executor_zone_id: int | None = None
    courier_id: int | None = None
    courier_zone_id: int | None = None
    delivery_payer: str | None = None
    courier_payment_amount: float | None = None
    bad_weather: bool
    en_route_at: datetime | None = None
    completed_at: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime
    items: list[OrderItemOutput] = []

    class Config:
        from_attributes = True


class OrderCreate(BaseModel):
    branch_id: int
    delivery_type: DeliveryTypeLiteral = "delivery"
    payment_method_id: int | None = None
    payment_status: PaymentStatusLiteral = "unpaid"
    client_name: str | None = None
    phone: str | None = None
    address_line: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    comment: str | None = None
    distance_km: float | None = Field(default=None, ge=0)
    delivery_price_uah: float | None = Field(default=None, ge=0)
    items: list[OrderItemInput] = []


class OrderUpdate(BaseModel):
    delivery_type: DeliveryTypeLiteral | None = None
    payment_method_id: int | None = None
    client_name: str | None = None
    phone: str | None = None
    address_line: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    comment: str | None = None
    distance_km: float | None = Field(default=None, ge=0)
    delivery_price_uah: float | None = Field(default=None, ge=0)
    bad_weather: bool | None = None
    items: list[OrderItemInput] | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatusLiteral


class AssignExecutorRequest(BaseModel):
    """
    executor_type "courier": courier_id of an own courier, zone from the
    order location. executor_type "performer": executor_id plus zone_id.
    """

    executor_type: ExecutorTypeLiteral
    courier_id: int | None = None
    executor_id: int | None = None
    zone_id: int | None = None
    delivery_payer: DeliveryPayerLiteral | None = None
    bad_weather: bool | None = None
    distance_km: float | None = Field(default=None, ge=0)


# =============================================================================
# History / Reports Schemas
# =============================================================================


class HistoryRow(BaseModel):
    id: int
    order_number: int
    branch_id: int
    branch_name: str | None = None
    shift_id: int | None = None
    status: str
    payment_status: str
    payment_method_id: int | None = None
    payment_method_name: str | None = None
    delivery_type: str
    client_name: str | None = None
    phone: str | None = None
    address_line: str | None = None
    total_amount: float
    delivery_price: float | None = None
    courier_payment: float | None = None
    zone_name: str | None = None
    executor_type: str | None = None
    executor_id: int | None = None
    executor_name: str | None = None
    courier_id: int | None = None
    courier_name: str | None = None
    distance_km: float | None = None
    created_at: datetime
    completed_at: datetime | None = None
    archived_at: datetime | None = None


class HistoryTotals(BaseModel):
    total_amount: float = 0
    total_delivery: float = 0
    total_courier_payment: float = 0
    delivery_count: int = 0
    delivery_amount: float = 0
    pickup_count: int = 0
    pickup_amount: float = 0


class HistoryOutput(BaseModel):
    orders: list[HistoryRow]
    totals: HistoryTotals
    limit: int
    truncated: bool


class CleanupRequest(BaseModel):
    retention_days: int | None = Field(default=None, ge=1)


class CleanupOutput(BaseModel):
    deleted: int
    retention_days: int
    cutoff: datetime


class ReportBucket(BaseModel):
    id: int | None = None
    name: str
    orders: int
    revenue: float
    delivery_total: float
    courier_payment_total: float


class DashboardReport(BaseModel):
    date_from: datetime | None = None
    date_to: datetime | None = None
    totals: HistoryTotals
    by_branch: list[ReportBucket]
    by_executor: list[ReportBucket]


# =============================================================================
# Log Schemas
# =============================================================================


class LogOutput(BaseModel):
    id: int
    partner_id: int
    section: str
    level: str
    message: str
    details: dict[str, Any] | None = None
    action: str | None = None
    user_id: int | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class LogCreate(BaseModel):
    section: str = "general"
    level: LogLevelLiteral = "error"
    message: str = Field(min_length=1, max_length=4000)
    details: dict[str, Any] | None = None
    action: str | None = None


# =============================================================================
# Call Center Schemas
# =============================================================================


class CallOutput(BaseModel):
    id: int
    general_call_id: str | None = None
    branch_id: int | None = None
    client_id: int | None = None
    call_type: int
    is_outgoing: bool
    external_number: str | None = None
    internal_number: str | None = None
    pbx_number: str | None = None
    call_status: str | None = None
    waitsec: int | None = None
    billsec: int | None = None
    duration_seconds: int | None = None
    is_missed: bool
    is_lost: bool
    employee_name: str | None = None
    employee_email: str | None = None
    started_at: datetime | None = None
    answered_at: datetime | None = None
    completed_at: datetime | None = None

    class Config:
        from_attributes = True


class WaitStats(BaseModel):
    branch_id: int | None = None
    calls: int
    avg_wait: float
    median_wait: float
    p90_wait: float


# =============================================================================
# Poster Schemas
# =============================================================================


class PosterSyncStats(BaseModel):
    categories: int = 0
    products: int = 0
    modifiers: int = 0
    productModifiers: int = 0


class PosterSyncOutput(BaseModel):
    success: bool
    stats: PosterSyncStats


class PosterTestOutput(BaseModel):
    success: bool
    categories: int
    products: int


class PosterSpot(BaseModel):
    spot_id: int
    name: str | None = None
    address: str | None = None
