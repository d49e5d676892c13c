"""Route API request signing.

Signature = base64url(principal_id || HMAC-SHA256(shared_secret, canonical)),
unpadded, where canonical = timestamp + METHOD + uri + body and the shared
secret is the X25519 secret between our session seed and the route bot's
session key.
"""

import hashlib
import hmac
import logging
import time
from typing import Callable, Union

from routeswap.crypto import base64url_encode, derive_shared_secret
from routeswap.errors import InvalidKeyMaterial, RouteSwapError, SecretUnavailable
from routeswap.keystore import Principal
from routeswap.signing.base import Authenticator, AuthScheme, PublicKeyResolver
from routeswap.utils.locks import KeyedLocks

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "MR-ACCESS-TIMESTAMP"
SIGNATURE_HEADER = "MR-ACCESS-SIGN"


def canonical_string(timestamp: int, method: str, uri: str, body: Union[str, bytes] = "") -> bytes:
    """Build the byte string covered by the signature."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return f"{int(timestamp)}{method.upper()}{uri}".encode("utf-8") + (body or b"")


class RouteRequestSigner:
    """Signs route API requests on behalf of one principal.

    Shared secrets are cached per counterparty for the lifetime of the
    signer. Concurrent first requests to the same counterparty share a
    single key exchange.
    """

    def __init__(self, principal: Principal, resolver: PublicKeyResolver):
        self.principal = principal
        self._resolver = resolver
        self._secrets: dict[str, bytes] = {}
        self._locks = KeyedLocks()

    def has_secret(self, counterparty_id: str) -> bool:
        return counterparty_id in self._secrets

    async def shared_secret(self, counterparty_id: str) -> bytes:
        """Get the shared secret for a counterparty, deriving it on first use.

        Raises:
            SecretUnavailable: If the counterparty's public key cannot be resolved
            InvalidKeyMaterial: If the resolved key is malformed
        """
        secret = self._secrets.get(counterparty_id)
        if secret is not None:
            return secret

        async with self._locks.hold(counterparty_id, operation="key_exchange"):
            secret = self._secrets.get(counterparty_id)
            if secret is not None:
                return secret

            logger.debug(f"Deriving shared secret for counterparty {counterparty_id}")
            try:
                public_key = await self._resolver.resolve(counterparty_id)
            except (InvalidKeyMaterial, SecretUnavailable):
                raise
            except RouteSwapError as e:
                raise SecretUnavailable(
                    counterparty_id, f"Failed to resolve public key for {counterparty_id}: {e}"
                ) from e

            if public_key is None:
                raise SecretUnavailable(counterparty_id)

            secret = derive_shared_secret(self.principal.private_seed, public_key)
            self._secrets[counterparty_id] = secret
            logger.info(f"Shared secret established with counterparty {counterparty_id}")
            return secret

    async def sign(
        self,
        counterparty_id: str,
        method: str,
        uri: str,
        body: Union[str, bytes],
        timestamp: int,
    ) -> str:
        """Sign one request.

        Args:
            counterparty_id: Service identity whose key the secret is shared with
            method: HTTP method
            uri: Path plus query string
            body: Raw request body ("" if none)
            timestamp: Unix seconds, also sent in the timestamp header

        Returns:
            Unpadded base64url signature
        """
        secret = await self.shared_secret(counterparty_id)
        digest = hmac.new(secret, canonical_string(timestamp, method, uri, body), hashlib.sha256).digest()
        return base64url_encode(self.principal.principal_id.encode("utf-8") + digest)


class RouteAuthenticator(Authenticator):
    """Produces MR-ACCESS headers for requests to one counterparty."""

    def __init__(
        self,
        signer: RouteRequestSigner,
        counterparty_id: str,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(AuthScheme.ROUTE_HMAC)
        self.signer = signer
        self.counterparty_id = counterparty_id
        self._clock = clock

    async def headers(self, method: str, uri: str, body: str) -> dict[str, str]:
        timestamp = int(self._clock())
        signature = await self.signer.sign(self.counterparty_id, method, uri, body, timestamp)
        return {
            TIMESTAMP_HEADER: str(timestamp),
            SIGNATURE_HEADER: signature,
        }
