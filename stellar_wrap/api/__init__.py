"""API endpoints."""

from stellar_wrap.api.routes import router
from stellar_wrap.api.websocket import (
    ConnectionManager,
    TransactionBroadcaster,
    manager,
    websocket_endpoint,
)

__all__ = [
    "router",
    "manager",
    "websocket_endpoint",
    "ConnectionManager",
    "TransactionBroadcaster",
]
