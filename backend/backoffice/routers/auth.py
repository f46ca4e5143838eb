"""
Authentication router: login and the current user's context.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backoffice.routers._common import get_user_id
from backoffice.services.domain import AuthService
from backoffice.services.domain.auth_service import build_access_claims
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context, sign_jwt
from shared.security.rate_limit import limiter
from shared.utils.schemas import LoginRequest, LoginResponse, MeOutput, UserInfo

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """
    Authenticate a partner user and return an access token.

    The token carries the partner, role, branch scope, sections and
    order-action flags; changes to a position apply from the next login.
    """
    user = AuthService(db).authenticate(body.partner_suffix, body.login, body.password)
    claims = build_access_claims(user)
    token = sign_jwt(claims)
    return LoginResponse(
        access_token=token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserInfo(
            id=user.id,
            partner_id=user.partner_id,
            login=user.login,
            name=user.name,
            last_name=user.last_name,
            role=claims["role"],
            position_id=claims["position_id"],
            branch_ids=claims["branch_ids"],
            sections=claims["sections"],
            flags=claims["flags"],
        ),
    )


@router.get("/me", response_model=MeOutput)
def me(ctx: dict = Depends(current_user_context)) -> MeOutput:
    return MeOutput(
        user_id=get_user_id(ctx),
        partner_id=ctx["partner_id"],
        role=ctx["role"],
        branch_ids=ctx.get("branch_ids"),
        sections=ctx.get("sections") or [],
        flags=ctx.get("flags") or {},
    )
