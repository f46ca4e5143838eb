"""
Infrastructure module: database sessions and Redis change events.

- db.py: SQLAlchemy engine/sessions, safe_commit()
- correlation.py: request correlation ids
- events/: change notifications over Redis pub/sub
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    get_db,
    get_db_context,
    safe_commit,
)

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "safe_commit",
]
