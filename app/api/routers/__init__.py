"""
app/api/routers package marker.
"""

from app.api.routers.dealers import router as dealers_router
from app.api.routers.imports import router as imports_router
from app.api.routers.pricing import router as pricing_router

__all__ = [
    "dealers_router",
    "imports_router",
    "pricing_router",
]
