"""
Application wiring: CORS, middlewares, lifespan and error handlers.
"""

from .cors import configure_cors
from .errors import register_error_handlers
from .lifespan import lifespan
from .middlewares import register_middlewares

__all__ = ["configure_cors", "register_error_handlers", "lifespan", "register_middlewares"]
