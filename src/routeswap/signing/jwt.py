"""Mixin API authentication tokens.

The Mixin API authenticates a session with a short-lived JWT signed by the
session's Ed25519 key (``alg: EdDSA``). The ``sig`` claim binds the token to
one request: hex SHA-256 of METHOD + uri + body.
"""

import hashlib
import json
import logging
import time
import uuid
from typing import Callable

from nacl.signing import SigningKey

from routeswap.crypto import base64url_encode
from routeswap.keystore import Principal
from routeswap.signing.base import Authenticator, AuthScheme

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 3600


def _segment(data: dict) -> str:
    return base64url_encode(json.dumps(data, separators=(",", ":")).encode("utf-8"))


class MixinTokenSigner:
    """Builds EdDSA bearer tokens for a principal's session."""

    def __init__(
        self,
        principal: Principal,
        clock: Callable[[], float] = time.time,
        jti_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        ttl: int = TOKEN_TTL_SECONDS,
    ):
        self.principal = principal
        self._signing_key = SigningKey(principal.private_seed)
        self._clock = clock
        self._jti_factory = jti_factory
        self.ttl = ttl

    def sign_token(self, method: str, uri: str, body: str = "") -> str:
        """Build a token authorizing one request."""
        issued_at = int(self._clock())
        request_hash = hashlib.sha256(f"{method.upper()}{uri}{body}".encode("utf-8")).hexdigest()

        header = {"alg": "EdDSA", "typ": "JWT", "kid": self.principal.session_id}
        claims = {
            "uid": self.principal.principal_id,
            "sid": self.principal.session_id,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
            "jti": self._jti_factory(),
            "sig": request_hash,
            "scp": "FULL",
        }

        signing_input = f"{_segment(header)}.{_segment(claims)}"
        signature = self._signing_key.sign(signing_input.encode("ascii")).signature
        return f"{signing_input}.{base64url_encode(signature)}"


class MixinJWTAuthenticator(Authenticator):
    """Attaches a per-request bearer token."""

    def __init__(self, token_signer: MixinTokenSigner):
        super().__init__(AuthScheme.MIXIN_JWT)
        self.token_signer = token_signer

    async def headers(self, method: str, uri: str, body: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token_signer.sign_token(method, uri, body)}"}
