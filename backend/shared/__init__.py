"""
Shared building blocks of the back-office API.

- shared.config: settings (pydantic-settings), structured logging, constants
- shared.infrastructure: SQLAlchemy sessions, correlation ids, Redis change events
- shared.security: JWT auth, section/branch access checks, bcrypt, rate limiting
- shared.utils: HTTP exceptions, validators, schemas, CSV/JSON export

IMPORT EXAMPLES:
    from shared.security.auth import current_user_context
    from shared.security.access import require_section, ensure_branch_access
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
