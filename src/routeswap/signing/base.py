"""Base interfaces for request authentication.

Authentication flow:
1. Transport builds the canonical request (method, URI, serialized body)
2. Authenticator turns it into headers for that scheme
3. Transport attaches the headers and sends the request

Authenticators never expose the session private key or derived secrets.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union

from routeswap.crypto import KEY_SIZE, decode_key
from routeswap.errors import InvalidKeyMaterial

logger = logging.getLogger(__name__)


class AuthScheme(str, Enum):
    """Header scheme an authenticator produces."""
    ROUTE_HMAC = "route_hmac"   # MR-ACCESS-TIMESTAMP / MR-ACCESS-SIGN
    MIXIN_JWT = "mixin_jwt"     # Authorization: Bearer <EdDSA JWT>


class Authenticator(ABC):
    """Abstract base class for request authenticators."""

    def __init__(self, scheme: AuthScheme):
        self.scheme = scheme

    @abstractmethod
    async def headers(self, method: str, uri: str, body: str) -> dict[str, str]:
        """Build authentication headers for one request.

        Args:
            method: HTTP method
            uri: Path plus query string, exactly as sent
            body: Serialized request body ("" if none)

        Returns:
            Headers to attach to the request
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(scheme={self.scheme.value})"


class PublicKeyResolver(ABC):
    """Looks up a counterparty's Ed25519 session public key."""

    @abstractmethod
    async def resolve(self, counterparty_id: str) -> Optional[bytes]:
        """Return the 32-byte public key, or None if the counterparty is unknown."""
        pass


class StaticKeyResolver(PublicKeyResolver):
    """Resolver backed by pinned keys (hex or base64url text, or raw bytes)."""

    def __init__(self, keys: dict[str, Union[str, bytes]]):
        self._keys: dict[str, bytes] = {}
        for counterparty_id, key in keys.items():
            raw = decode_key(key) if isinstance(key, str) else bytes(key)
            if len(raw) != KEY_SIZE:
                raise InvalidKeyMaterial(
                    f"Pinned key for {counterparty_id} must be {KEY_SIZE} bytes, got {len(raw)}"
                )
            self._keys[counterparty_id] = raw

    async def resolve(self, counterparty_id: str) -> Optional[bytes]:
        return self._keys.get(counterparty_id)


class ChainedKeyResolver(PublicKeyResolver):
    """Try resolvers in order, returning the first key found."""

    def __init__(self, *resolvers: PublicKeyResolver):
        self._resolvers = resolvers

    async def resolve(self, counterparty_id: str) -> Optional[bytes]:
        for resolver in self._resolvers:
            key = await resolver.resolve(counterparty_id)
            if key is not None:
                return key
        return None
