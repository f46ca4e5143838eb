"""
HTTP routers. Each module exposes `router`; main.py mounts them.
Schemas live in routers/schemas.py so services can import them without
pulling in FastAPI routes.
"""
