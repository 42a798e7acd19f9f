"""Remote execution bridge.

The client lives here; the server is imported separately to keep starlette
out of the import path of the gateway:

    from shellgate.bridge.server import create_app, serve
"""
from __future__ import annotations

from .client import BridgeClient, BridgeUnavailable

__all__ = [
    "BridgeClient",
    "BridgeUnavailable",
]
