"""API routers package."""

from autoinvest.api.routers.holdings import router as holdings_router
from autoinvest.api.routers.auto_invest import router as schedules_router
from autoinvest.api.routers.auto_invest import sweep_router
from autoinvest.api.routers.balances import router as balances_router

__all__ = [
    "holdings_router",
    "schedules_router",
    "sweep_router",
    "balances_router",
]
