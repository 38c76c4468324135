"""User sessions resolved from trusted gateway headers.

The service runs behind a gateway that verifies the user and forwards the
identity as headers. An optional shared key guards against direct calls.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from ..util.log import Log

log = Log.create({"service": "auth"})

USER_ID_HEADER = "x-user-id"
PUBLIC_KEY_HEADER = "x-public-key"
DEGEN_MODE_HEADER = "x-degen-mode"
GATEWAY_KEY_HEADER = "x-api-key"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class UserSession:
    id: str
    public_key: Optional[str] = None
    degen_mode: bool = False


class Authenticator(Protocol):
    async def authenticate(self, headers: Mapping[str, str]) -> Optional[UserSession]: ...


class HeaderAuthenticator:
    """Reads the user session from request headers.

    Returns ``None`` when the user id is missing or the gateway key does not
    match; a missing public key still yields a session so the caller can
    answer with a distinct error.
    """

    def __init__(self, gateway_key: Optional[str] = None) -> None:
        self.gateway_key = gateway_key or None

    async def authenticate(self, headers: Mapping[str, str]) -> Optional[UserSession]:
        if self.gateway_key is not None:
            supplied = headers.get(GATEWAY_KEY_HEADER) or ""
            if not hmac.compare_digest(supplied, self.gateway_key):
                log.warn("rejected request with invalid gateway key")
                return None

        user_id = (headers.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return None
        public_key = (headers.get(PUBLIC_KEY_HEADER) or "").strip() or None
        degen = (headers.get(DEGEN_MODE_HEADER) or "").strip().lower() in _TRUE
        return UserSession(id=user_id, public_key=public_key, degen_mode=degen)
