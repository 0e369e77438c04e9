"""
API Routes Package

This package contains the route modules organized by functionality.
"""

from api.routes.enterprise import router as enterprise_router
from api.routes.system import router as system_router

__all__ = [
    "enterprise_router",
    "system_router"
]
