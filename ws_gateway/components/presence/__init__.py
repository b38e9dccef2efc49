"""
Presence and typing signals.
"""

from ws_gateway.components.presence.coordinator import PresenceCoordinator

__all__ = ["PresenceCoordinator"]
