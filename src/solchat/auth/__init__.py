"""Request authentication."""

from .session import Authenticator, HeaderAuthenticator, UserSession

__all__ = ["Authenticator", "HeaderAuthenticator", "UserSession"]
