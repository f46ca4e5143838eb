"""
Centralized constants for the backend application.

Usage:
    from shared.config.constants import Roles, OrderStatus, Sections

    if ctx["role"] == Roles.OWNER:
        ...

    if order.status == OrderStatus.EN_ROUTE:
        ...
"""

from typing import Final


# =============================================================================
# User Roles
# =============================================================================


class Roles:
    """User role constants."""

    OWNER: Final[str] = "OWNER"
    STAFF: Final[str] = "STAFF"

    ALL: Final[list[str]] = [OWNER, STAFF]


# =============================================================================
# Access control catalog
# =============================================================================


class Sections:
    """Back-office sections a position can grant."""

    DASHBOARD: Final[str] = "dashboard"
    ORDERS: Final[str] = "orders"
    CLIENTS: Final[str] = "clients"
    HISTORY: Final[str] = "history"
    LOGS: Final[str] = "logs"
    OPEN_SHIFTS: Final[str] = "open_shifts"
    REPORTS: Final[str] = "reports"
    MENU_CATEGORIES: Final[str] = "menu_categories"
    MENU_PRODUCTS: Final[str] = "menu_products"
    GENERAL_SETTINGS: Final[str] = "general_settings"
    BRANCHES: Final[str] = "branches"
    COURIERS: Final[str] = "couriers"
    COURIER_ZONES: Final[str] = "courier_zones"
    PAYMENT_METHODS: Final[str] = "payment_methods"
    EXECUTORS: Final[str] = "executors"
    POSTER_SETTINGS: Final[str] = "poster_settings"
    PRINT_SETTINGS: Final[str] = "print_settings"
    POSITIONS: Final[str] = "positions"
    STAFF: Final[str] = "staff"
    WORK_SCHEDULE: Final[str] = "work_schedule"
    EMPLOYEES: Final[str] = "employees"

    ALL: Final[tuple[str, ...]] = (
        DASHBOARD,
        ORDERS,
        CLIENTS,
        HISTORY,
        LOGS,
        OPEN_SHIFTS,
        REPORTS,
        MENU_CATEGORIES,
        MENU_PRODUCTS,
        GENERAL_SETTINGS,
        BRANCHES,
        COURIERS,
        COURIER_ZONES,
        PAYMENT_METHODS,
        EXECUTORS,
        POSTER_SETTINGS,
        PRINT_SETTINGS,
        POSITIONS,
        STAFF,
        WORK_SCHEDULE,
        EMPLOYEES,
    )


class OrderActions:
    """Order-action permission flags carried by positions and tokens."""

    CAN_DELETE_ORDERS: Final[str] = "can_delete_orders"
    CAN_REVERT_ORDER_STATUS: Final[str] = "can_revert_order_status"
    CAN_SKIP_ORDER_STATUS: Final[str] = "can_skip_order_status"

    ALL: Final[tuple[str, ...]] = (
        CAN_DELETE_ORDERS,
        CAN_REVERT_ORDER_STATUS,
        CAN_SKIP_ORDER_STATUS,
    )


# =============================================================================
# Entity Status Constants
# =============================================================================


class PartnerStatus:
    ACTIVE: Final[str] = "active"
    PAUSED: Final[str] = "paused"
    DELETED: Final[str] = "deleted"


class EntityStatus:
    """Status shared by branches and executors."""

    ACTIVE: Final[str] = "active"
    INACTIVE: Final[str] = "inactive"

    ALL: Final[list[str]] = [ACTIVE, INACTIVE]


class ShiftStatus:
    OPEN: Final[str] = "open"
    CLOSED: Final[str] = "closed"


class OrderStatus:
    """Order status constants, in workflow order."""

    IN_PROGRESS: Final[str] = "in_progress"
    EN_ROUTE: Final[str] = "en_route"
    COMPLETED: Final[str] = "completed"

    FLOW: Final[list[str]] = [IN_PROGRESS, EN_ROUTE, COMPLETED]


class PaymentStatus:
    PAID: Final[str] = "paid"
    UNPAID: Final[str] = "unpaid"


class DeliveryType:
    DELIVERY: Final[str] = "delivery"
    PICKUP: Final[str] = "pickup"

    ALL: Final[list[str]] = [DELIVERY, PICKUP]


class ExecutorType:
    COURIER: Final[str] = "courier"
    PERFORMER: Final[str] = "performer"

    ALL: Final[list[str]] = [COURIER, PERFORMER]


class DeliveryPayer:
    RESTAURANT: Final[str] = "restaurant"
    CLIENT: Final[str] = "client"

    ALL: Final[list[str]] = [RESTAURANT, CLIENT]


class PaymentMethodType:
    CASH: Final[str] = "cash"
    CASHLESS: Final[str] = "cashless"

    ALL: Final[list[str]] = [CASH, CASHLESS]


# =============================================================================
# Domain log
# =============================================================================


class LogLevel:
    INFO: Final[str] = "info"
    WARNING: Final[str] = "warning"
    ERROR: Final[str] = "error"
    CRITICAL: Final[str] = "critical"

    ALL: Final[list[str]] = [INFO, WARNING, ERROR, CRITICAL]


class LogSection:
    ORDERS: Final[str] = "orders"
    BRANCHES: Final[str] = "branches"
    COURIERS: Final[str] = "couriers"
    PAYMENT_METHODS: Final[str] = "payment_methods"
    SETTINGS: Final[str] = "settings"
    AUTH: Final[str] = "auth"
    SYSTEM: Final[str] = "system"
    GENERAL: Final[str] = "general"
    POSTER: Final[str] = "poster"
    MENU: Final[str] = "menu"
    SHIFTS: Final[str] = "shifts"
    EXECUTORS: Final[str] = "executors"
    STAFF: Final[str] = "staff"
    POSITIONS: Final[str] = "positions"
    CALLS: Final[str] = "calls"
    HISTORY_CLEANUP: Final[str] = "history_cleanup"

    ALL: Final[list[str]] = [
        ORDERS, BRANCHES, COURIERS, PAYMENT_METHODS, SETTINGS, AUTH, SYSTEM,
        GENERAL, POSTER, MENU, SHIFTS, EXECUTORS, STAFF, POSITIONS, CALLS,
        HISTORY_CLEANUP,
    ]


# =============================================================================
# Pagination / limits
# =============================================================================


class Limits:
    HISTORY_MAX_ROWS: Final[int] = 500
    LOGS_MAX_ROWS: Final[int] = 1000
    CALLS_MAX_ROWS: Final[int] = 500
    MIN_PASSWORD_LENGTH: Final[int] = 6
    # Window in which a completed Binotel call is matched to an open record
    CALL_MATCH_WINDOW_MINUTES: Final[int] = 10


DEFAULT_KM_GRADUATION_METERS: Final[int] = 100
