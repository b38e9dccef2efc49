"""
Domain Services - Application Layer.

Services contain business logic and orchestrate operations.
They use Repositories (through SessionRunner) for data access and push
events through the room broadcaster.

Structure:
    Router / WebSocket handler (thin)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import MessagePipeline

    pipeline = MessagePipeline(runner, broadcaster, notifier)
    message = await pipeline.send_message(user_id, chat_id, "hi")
"""

from .ports import Notifier, RoomBroadcaster
from .notification_kinds import KIND_RENDERERS, render_notification
from .notification_service import NotificationFanout, NotificationInbox
from .message_service import MessagePipeline
from .chat_service import ChatService

__all__ = [
    "Notifier",
    "RoomBroadcaster",
    "KIND_RENDERERS",
    "render_notification",
    "NotificationFanout",
    "NotificationInbox",
    "MessagePipeline",
    "ChatService",
]
