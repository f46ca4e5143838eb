"""
Section, branch and order-action checks on a decoded user context.

Owners have every section, every branch and every order action. Staff get
what their position grants; a position without branches sees all branches.

Usage:
    @router.get("/couriers")
    def list_couriers(ctx: dict = Depends(require_section(Sections.COURIERS))):
        ...

    ensure_branch_access(ctx, body.branch_id)
"""

from collections.abc import Callable
from typing import Any

from fastapi import Depends

from shared.config.constants import OrderActions, Roles, Sections
from shared.security.auth import current_user_context
from shared.utils.exceptions import (
    BranchAccessError,
    ForbiddenError,
    OwnerOnlyError,
    SectionAccessError,
)


def is_owner(ctx: dict[str, Any]) -> bool:
    return ctx.get("role") == Roles.OWNER


def user_sections(ctx: dict[str, Any]) -> set[str]:
    if is_owner(ctx):
        return set(Sections.ALL)
    return set(ctx.get("sections") or [])


def has_section(ctx: dict[str, Any], section: str) -> bool:
    return section in user_sections(ctx)


def has_flag(ctx: dict[str, Any], flag: str) -> bool:
    """Check an order-action permission (see OrderActions)."""
    if flag not in OrderActions.ALL:
        raise ValueError(f"Unknown order action flag: {flag}")
    if is_owner(ctx):
        return True
    return bool((ctx.get("flags") or {}).get(flag, False))


def allowed_branch_ids(ctx: dict[str, Any]) -> list[int] | None:
    """Branch ids the user may see, or None for every branch of the partner."""
    if is_owner(ctx):
        return None
    branch_ids = ctx.get("branch_ids")
    if not branch_ids:
        return None
    return [int(b) for b in branch_ids]


def can_access_branch(ctx: dict[str, Any], branch_id: int | None) -> bool:
    allowed = allowed_branch_ids(ctx)
    if allowed is None or branch_id is None:
        return True
    return branch_id in allowed


def ensure_branch_access(ctx: dict[str, Any], branch_id: int | None) -> None:
    """
    Raise BranchAccessError when the user's branch scope excludes branch_id.
    A missing branch_id is not branch-scoped and always passes.
    """
    if not can_access_branch(ctx, branch_id):
        raise BranchAccessError(branch_id, user_id=ctx.get("sub"))


def ensure_flag(ctx: dict[str, Any], flag: str, action: str) -> None:
    if not has_flag(ctx, flag):
        raise ForbiddenError(action, user_id=ctx.get("sub"), flag=flag)


def require_section(*sections: str) -> Callable[..., dict[str, Any]]:
    """
    Dependency factory: the user needs at least one of the given sections.
    """
    for section in sections:
        if section not in Sections.ALL:
            raise ValueError(f"Unknown section: {section}")

    def dependency(ctx: dict[str, Any] = Depends(current_user_context)) -> dict[str, Any]:
        granted = user_sections(ctx)
        if not granted.intersection(sections):
            raise SectionAccessError(sections[0], user_id=ctx.get("sub"))
        return ctx

    return dependency


def require_owner(ctx: dict[str, Any] = Depends(current_user_context)) -> dict[str, Any]:
    """Dependency: only the partner owner passes."""
    if not is_owner(ctx):
        raise OwnerOnlyError(user_id=ctx.get("sub"))
    return ctx
