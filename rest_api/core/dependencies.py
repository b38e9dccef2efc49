"""
Service container.

One instance per application, created in the lifespan and stored on
`app.state.services`. REST routers and the WebSocket gateway resolve
their collaborators from it, so both transports share one
ConnectionManager and one set of domain services.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.engine import Engine

from rest_api.services.domain import (
    ChatService,
    MessagePipeline,
    NotificationFanout,
    NotificationInbox,
)
from shared.infrastructure.db import SessionRunner, build_session_factory
from ws_gateway.components.core.dependencies import GatewayDependencies
from ws_gateway.connection_manager import ConnectionManager


@dataclass(frozen=True)
class ServiceContainer:
    runner: SessionRunner
    manager: ConnectionManager
    fanout: NotificationFanout
    inbox: NotificationInbox
    pipeline: MessagePipeline
    chats: ChatService
    gateway: GatewayDependencies

    @classmethod
    def build(cls, engine: Engine) -> "ServiceContainer":
        runner = SessionRunner(build_session_factory(engine))
        manager = ConnectionManager()
        fanout = NotificationFanout(runner, manager)
        pipeline = MessagePipeline(runner, manager, fanout)
        return cls(
            runner=runner,
            manager=manager,
            fanout=fanout,
            inbox=NotificationInbox(runner, fanout),
            pipeline=pipeline,
            chats=ChatService(runner, manager, fanout),
            gateway=GatewayDependencies.build(manager, runner, pipeline, fanout),
        )


def get_services(request: Request) -> ServiceContainer:
    """
    FastAPI dependency returning the application's service container.

    Raises:
        RuntimeError: If the application lifespan has not run.
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Service container not initialized; is the lifespan running?")
    return services
