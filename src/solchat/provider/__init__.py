"""AI Provider modules."""

from .provider import Provider, ProviderInfo, ProviderNotConfiguredError
from .transform import ProviderTransform

__all__ = [
    "Provider",
    "ProviderInfo",
    "ProviderNotConfiguredError",
    "ProviderTransform",
]
