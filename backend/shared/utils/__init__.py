"""
Utilities module: exceptions, validators, schemas, export helpers.
"""

from shared.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ValidationError,
    ConflictError,
)
from shared.utils.validators import (
    validate_image_url,
    escape_like_pattern,
    normalize_phone,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
    # validators
    "validate_image_url",
    "escape_like_pattern",
    "normalize_phone",
    # schemas
    "ErrorResponse",
]
