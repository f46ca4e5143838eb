"""
Redis Channel Naming.
"""

from __future__ import annotations


def _validate_positive_id(id_value: int, name: str) -> None:
    if not isinstance(id_value, int) or id_value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {id_value}")


def channel_partner_changes(partner_id: int) -> str:
    """Channel carrying every data change of a partner."""
    _validate_positive_id(partner_id, "partner_id")
    return f"partner:{partner_id}:changes"
