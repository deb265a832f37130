"""
Harvest Intake - API Routers
"""

from .admin import router as admin_router
from .health import router as health_router
from .registrar import router as registrar_router

__all__ = [
    "admin_router",
    "health_router",
    "registrar_router",
]
