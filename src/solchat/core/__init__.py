"""Core infrastructure modules."""

from .global_paths import GlobalPath
from .id import Identifier

__all__ = ["GlobalPath", "Identifier"]

# Log is exported separately from util to avoid circular imports:
# from solchat.util.log import Log
