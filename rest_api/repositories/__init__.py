"""
Repository Layer.

Synchronous data access for the messaging core. Repositories wrap a
Session and are constructed per unit of work inside SessionRunner.run().

Usage:
    from rest_api.repositories import ChatRepository

    chat_ids = await runner.run(lambda db: ChatRepository(db).chat_ids_for_user(user_id))
"""

from .chat import ChatRepository, UserRepository
from .notification import NotificationRepository

__all__ = [
    "ChatRepository",
    "UserRepository",
    "NotificationRepository",
]
