from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from .errors import AuthenticationError


class Authenticator(ABC):
    """Resolves a request token to an account id."""

    @abstractmethod
    def resolve(self, token: str) -> bytes:
        """Return the account id for ``token`` or raise AuthenticationError."""


class StaticTokenAuthenticator(Authenticator):
    """Token table held in memory; used in tests and local development."""

    def __init__(self, tokens: Optional[Mapping[str, bytes]] = None) -> None:
        self._tokens: Dict[str, bytes] = dict(tokens or {})

    def add(self, token: str, account: bytes) -> None:
        self._tokens[token] = bytes(account)

    def resolve(self, token: str) -> bytes:
        try:
            return self._tokens[token]
        except KeyError:
            raise AuthenticationError("invalid or expired session token") from None
