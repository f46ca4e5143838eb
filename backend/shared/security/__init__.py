"""
Security module: authentication, access checks, password hashing, rate limiting.
"""

from shared.security.auth import (
    sign_jwt,
    verify_jwt,
    get_bearer_token,
    current_user_context,
)
from shared.security.access import (
    allowed_branch_ids,
    ensure_branch_access,
    has_flag,
    has_section,
    require_owner,
    require_section,
)
from shared.security.password import hash_password, verify_password
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    # auth
    "sign_jwt",
    "verify_jwt",
    "get_bearer_token",
    "current_user_context",
    # access
    "allowed_branch_ids",
    "ensure_branch_access",
    "has_flag",
    "has_section",
    "require_owner",
    "require_section",
    # password
    "hash_password",
    "verify_password",
    # rate_limit
    "limiter",
    "rate_limit_exceeded_handler",
]
