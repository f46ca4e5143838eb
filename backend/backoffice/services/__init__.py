"""
Services module for business logic.

- domain/: application services (business logic) - USE THESE
- crud/: partner-scoped repositories
- pricing/: zone lookup and delivery price rules
- integrations/: Poster, Telegram, Binotel clients and parsers

Usage:
    from backoffice.services.domain import ShiftService
    service = ShiftService(db)
    shift = service.open_shift(branch_id, partner_id, user_id)
"""

from .domain import (
    AuthService,
    BranchService,
    CallService,
    CourierService,
    CourierZoneService,
    ExecutorService,
    HistoryService,
    LogService,
    OrderService,
    PaymentMethodService,
    PerformerZoneService,
    PositionService,
    PosterService,
    SettingsService,
    ShiftService,
    StaffService,
)
