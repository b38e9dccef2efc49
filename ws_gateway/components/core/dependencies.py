"""
Dependencies for the WebSocket Gateway.

The gateway's collaborators are built once per application by the REST
service container (rest_api.core.dependencies) and read back from
`app.state` by the socket endpoint. Nothing here is a module-level
singleton, so tests get a fresh registry with every app.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import WebSocket

from shared.infrastructure.db import SessionRunner
from ws_gateway.components.auth.strategies import SessionAuthenticator
from ws_gateway.components.presence.coordinator import PresenceCoordinator
from ws_gateway.core.connection.lifecycle import ConnectionLifecycle

if TYPE_CHECKING:
    from rest_api.services.domain import MessagePipeline, NotificationFanout
    from ws_gateway.connection_manager import ConnectionManager


@dataclass(frozen=True)
class GatewayDependencies:
    """Everything a socket endpoint needs, wired to one ConnectionManager."""

    manager: "ConnectionManager"
    authenticator: SessionAuthenticator
    lifecycle: ConnectionLifecycle
    presence: PresenceCoordinator
    pipeline: "MessagePipeline"
    fanout: "NotificationFanout"

    @classmethod
    def build(
        cls,
        manager: "ConnectionManager",
        runner: SessionRunner,
        pipeline: "MessagePipeline",
        fanout: "NotificationFanout",
    ) -> "GatewayDependencies":
        return cls(
            manager=manager,
            authenticator=SessionAuthenticator(runner),
            lifecycle=ConnectionLifecycle(manager, runner, fanout),
            presence=PresenceCoordinator(manager, runner),
            pipeline=pipeline,
            fanout=fanout,
        )


def get_gateway_dependencies(websocket: WebSocket) -> GatewayDependencies:
    """
    FastAPI dependency resolving the gateway wiring from application state.

    Raises:
        RuntimeError: If the application lifespan has not run.
    """
    services = getattr(websocket.app.state, "services", None)
    if services is None:
        raise RuntimeError("Service container not initialized; is the lifespan running?")
    return services.gateway
