"""
Domain Services - application layer.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from backoffice.services.domain import OrderService

    # In router
    service = OrderService(db)
    order = service.create(body, ctx)
"""

from .log_service import LogService, record_log, record_log_detached
from .auth_service import AuthService
from .settings_service import SettingsService
from .branch_service import BranchService
from .position_service import PositionService
from .staff_service import StaffService
from .executor_service import ExecutorService, PerformerZoneService
from .courier_service import CourierService, CourierZoneService
from .payment_method_service import PaymentMethodService
from .shift_service import ShiftService
from .order_service import OrderService
from .history_service import HistoryService
from .call_service import CallService
from .poster_service import PosterService

__all__ = [
    "LogService",
    "record_log",
    "record_log_detached",
    "AuthService",
    "SettingsService",
    "BranchService",
    "PositionService",
    "StaffService",
    "ExecutorService",
    "PerformerZoneService",
    "CourierService",
    "CourierZoneService",
    "PaymentMethodService",
    "ShiftService",
    "OrderService",
    "HistoryService",
    "CallService",
    "PosterService",
]
