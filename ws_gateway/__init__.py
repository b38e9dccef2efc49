"""
WebSocket Gateway.

Room registry, connection lifecycle and the /ws endpoint.
"""
