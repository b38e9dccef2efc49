"""
API routers.
"""

from rest_api.routers.chats import router as chats_router
from rest_api.routers.health import router as health_router
from rest_api.routers.notifications import router as notifications_router

__all__ = [
    "chats_router",
    "health_router",
    "notifications_router",
]
