"""
REST API core: application wiring (CORS, lifespan, service container).
"""

from rest_api.core.cors import configure_cors
from rest_api.core.dependencies import ServiceContainer, get_services
from rest_api.core.lifespan import lifespan

__all__ = [
    "configure_cors",
    "ServiceContainer",
    "get_services",
    "lifespan",
]
