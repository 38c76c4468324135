"""solchat - tool-invocation and streaming-response service for a
conversational Solana agent.
"""

__version__ = "0.1.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    """Lazy import module components."""
    if name in ("GlobalPath", "Identifier"):
        from . import core
        return getattr(core, name)
    if name == "Log":
        from .util.log import Log
        return Log
    if name in ("Tool", "ToolContext", "ToolInfo", "ToolStep", "ToolRegistry"):
        from . import tool
        return getattr(tool, name)
    if name in ("ChatProcessor", "ChatMessage", "ResponseReconciler"):
        from . import session
        return getattr(session, name)
    if name == "AppContext":
        from .runtime import AppContext
        return AppContext
    if name == "create_app":
        from .server import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "__version__",
    "GlobalPath",
    "Identifier",
    "Log",
    "Tool",
    "ToolContext",
    "ToolInfo",
    "ToolStep",
    "ToolRegistry",
    "ChatProcessor",
    "ChatMessage",
    "ResponseReconciler",
    "AppContext",
    "create_app",
]
