"""
Back-office API main application.
Entry point for the FastAPI server.
"""

from fastapi import FastAPI

from backoffice import __version__
from backoffice.core import configure_cors, lifespan, register_error_handlers, register_middlewares
from backoffice.routers.auth import router as auth_router
from backoffice.routers.branches import router as branches_router
from backoffice.routers.calls import router as calls_router
from backoffice.routers.couriers import router as couriers_router
from backoffice.routers.executors import router as executors_router
from backoffice.routers.health import router as health_router
from backoffice.routers.history import router as history_router
from backoffice.routers.logs import router as logs_router
from backoffice.routers.orders import router as orders_router
from backoffice.routers.payment_methods import router as payment_methods_router
from backoffice.routers.positions import router as positions_router
from backoffice.routers.poster import router as poster_router
from backoffice.routers.settings import router as settings_router
from backoffice.routers.shifts import router as shifts_router
from backoffice.routers.staff import router as staff_router
from backoffice.routers.ws import router as ws_router
from shared.security.rate_limit import limiter

app = FastAPI(
    title="Delivery Back-Office API",
    description="Multi-tenant back office for restaurant delivery operations",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter

register_error_handlers(app)
register_middlewares(app)
configure_cors(app)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(settings_router)
app.include_router(positions_router)
app.include_router(staff_router)
app.include_router(branches_router)
app.include_router(executors_router)
app.include_router(couriers_router)
app.include_router(payment_methods_router)
app.include_router(shifts_router)
app.include_router(orders_router)
app.include_router(history_router)
app.include_router(logs_router)
app.include_router(calls_router)
app.include_router(poster_router)
app.include_router(ws_router)
