"""
SQLAlchemy ORM Models Package.

- base: Base, TimestampMixin, time helpers
- partner: Partner, PartnerSettings, Branch
- user: User, Position, PositionPermission, PositionBranch
- executor: Executor, PerformerDeliveryZone
- courier: Courier, CourierDeliveryZone
- payment: PaymentMethod
- shift: Shift
- order: Order, OrderItem
- log: LogEntry
- call: Client, CallRecord
- menu: MenuCategory, MenuProduct, MenuModifier, ProductModifier
"""

from .base import Base, BigIntPK, TimestampMixin, as_utc, utcnow

from .partner import Partner, PartnerSettings, Branch
from .user import User, Position, PositionPermission, PositionBranch
from .payment import PaymentMethod
from .executor import Executor, PerformerDeliveryZone
from .courier import Courier, CourierDeliveryZone
from .shift import Shift
from .order import Order, OrderItem
from .log import LogEntry
from .call import Client, CallRecord
from .menu import MenuCategory, MenuProduct, MenuModifier, ProductModifier

__all__ = [
    "Base",
    "BigIntPK",
    "TimestampMixin",
    "as_utc",
    "utcnow",
    "Partner",
    "PartnerSettings",
    "Branch",
    "User",
    "Position",
    "PositionPermission",
    "PositionBranch",
    "PaymentMethod",
    "Executor",
    "PerformerDeliveryZone",
    "Courier",
    "CourierDeliveryZone",
    "Shift",
    "Order",
    "OrderItem",
    "LogEntry",
    "Client",
    "CallRecord",
    "MenuCategory",
    "MenuProduct",
    "MenuModifier",
    "ProductModifier",
]
