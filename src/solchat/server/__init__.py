"""HTTP API server for solchat.

API Endpoints:
    GET /health - Health check
    POST /api/chat - Post a chat message; streams the response
    DELETE /api/chat - Delete a conversation
    GET /api/tools - Enabled tool metadata as NDJSON
"""

from .app import create_app
from .server import Server, ServerInfo

__all__ = [
    "Server",
    "ServerInfo",
    "create_app",
]
