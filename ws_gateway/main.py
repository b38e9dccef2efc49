"""
WebSocket Gateway routes.

The gateway is mounted into the REST application (rest_api.main) so both
transports share one ConnectionManager and one set of domain services.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket

from ws_gateway.components.core.constants import WSConstants
from ws_gateway.components.core.dependencies import (
    GatewayDependencies,
    get_gateway_dependencies,
)
from ws_gateway.components.endpoints.handlers import ChatEndpoint


router = APIRouter()


@router.websocket(WSConstants.ENDPOINT)
async def chat_websocket(
    websocket: WebSocket,
    deps: GatewayDependencies = Depends(get_gateway_dependencies),
):
    """
    Real-time channel for chat messages, presence and notifications.

    Token sources: subprotocol "auth.<token>", Authorization header, ?token=.
    """
    endpoint = ChatEndpoint(websocket, deps)
    await endpoint.run()
