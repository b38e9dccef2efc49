"""
WebSocket Gateway Components.

Organized into domain-specific modules:
- core/       - Foundational components (constants, context, DI)
- connection/ - Room index and heartbeat
- auth/       - Handshake authentication
- presence/   - Chat room join/leave and typing signals
- endpoints/  - WebSocket endpoints (base, handlers)

Import from the specific submodules.
"""
