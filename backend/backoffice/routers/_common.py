"""
Helpers shared by the back-office routers.
"""

from typing import Any

def get_user_id(ctx: dict[str, Any]) -> int:
    return int(ctx["sub"])

def get_partner_id(ctx: dict[str, Any]) -> int:
    return int(ctx["partner_id"])

def parse_id_list(raw: str | None) -> list[int] | None:
    """'1,2,3' -> [1, 2, 3]; blank -> None. Non-numeric parts are ignored."""
    if not raw:
        return None
    ids = [int(part) for part in raw.split(",") if part.strip().isdigit()]
    return ids or None

__all__ = ["get_user_id", "get_partner_id", "parse_id_list"]
