"""
Opaque bearer tokens.

A token is 32 random bytes, hex encoded, mapped to a snapshot of the user
taken at login. The registry lives as long as the process: tokens never
expire and are never revoked.
"""

import secrets
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Header, Request

from .errors import Unauthorized
from .models import User

INVALID_TOKEN = "Unauthorized: Invalid or missing token"


@dataclass(frozen=True)
class Identity:
    id: int
    username: str
    role: str


class TokenRegistry:
    def __init__(self):
        self._tokens: Dict[str, Identity] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._tokens)

    def issue(self, user: User) -> str:
        token = secrets.token_hex(32)
        identity = Identity(id=user.id, username=user.username, role=user.role.value)
        with self._lock:
            self._tokens[token] = identity
        return token

    def resolve(self, token: str) -> Identity:
        with self._lock:
            identity = self._tokens.get(token)
        if identity is None:
            raise Unauthorized(INVALID_TOKEN)
        return identity

    def from_header(self, auth: Optional[str]) -> Identity:
        """Resolve an ``Authorization: Bearer <token>`` header value."""
        if not auth or not auth.lower().startswith("bearer "):
            raise Unauthorized(INVALID_TOKEN)
        token = auth.split(" ", 1)[1].strip()
        if not token:
            raise Unauthorized(INVALID_TOKEN)
        return self.resolve(token)

    def clear(self):
        with self._lock:
            self._tokens.clear()


def get_tokens(request: Request) -> TokenRegistry:
    return request.app.state.tokens


def get_user(request: Request, auth: Optional[str] = Header(default=None, alias="Authorization")) -> Identity:
    return get_tokens(request).from_header(auth)
