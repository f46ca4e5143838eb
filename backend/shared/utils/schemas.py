"""
Shared Pydantic schemas used across the application.
"""

from typing import Literal

from pydantic import BaseModel, Field


# =============================================================================
# Common Types
# =============================================================================

Role = Literal["OWNER", "STAFF"]
OrderStatusLiteral = Literal["in_progress", "en_route", "completed"]
PaymentStatusLiteral = Literal["paid", "unpaid"]
DeliveryTypeLiteral = Literal["delivery", "pickup"]
ExecutorTypeLiteral = Literal["courier", "performer"]
DeliveryPayerLiteral = Literal["restaurant", "client"]
PaymentMethodTypeLiteral = Literal["cash", "cashless"]
EntityStatusLiteral = Literal["active", "inactive"]
LogLevelLiteral = Literal["info", "warning", "error", "critical"]
ExportFormat = Literal["csv", "json"]


# =============================================================================
# Authentication Schemas
# =============================================================================


class LoginRequest(BaseModel):
    """Login request body. partner_suffix is the partner's url_suffix."""

    partner_suffix: str = Field(min_length=1, max_length=100)
    login: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=200)


class UserInfo(BaseModel):
    id: int
    partner_id: int
    login: str
    name: str | None = None
    last_name: str | None = None
    role: Role
    position_id: int | None = None
    branch_ids: list[int] | None = None
    sections: list[str] = []
    flags: dict[str, bool] = {}


class LoginResponse(BaseModel):
    """Login response with JWT token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class MeOutput(BaseModel):
    user_id: int
    partner_id: int
    role: Role
    branch_ids: list[int] | None = None
    sections: list[str] = []
    flags: dict[str, bool] = {}


# =============================================================================
# Errors / health
# =============================================================================


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    database: bool
    redis: bool | None = None
    version: str
