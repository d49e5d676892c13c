"""Mixin API client.

Used for two things the route API itself does not provide:
- the route bot's session public key (``POST /sessions/fetch``), needed for
  the key exchange behind every route request signature
- ledger lookups by trace ID (``GET /safe/transactions/{id}``), the second
  signal that a swap payment has settled
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from routeswap.config import MIXIN_API_BASE
from routeswap.crypto import KEY_SIZE, decode_key
from routeswap.errors import InvalidKeyMaterial
from routeswap.keystore import Principal
from routeswap.signing.base import PublicKeyResolver
from routeswap.signing.jwt import MixinJWTAuthenticator, MixinTokenSigner
from routeswap.transport import DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT, RouteTransport

logger = logging.getLogger(__name__)

# Ledger state of a transaction whose outputs have been consumed
STATE_SPENT = "spent"


@dataclass
class LedgerTransaction:
    """Safe transaction as seen on the ledger."""

    transaction_id: Optional[str]
    state: str
    asset_id: Optional[str] = None
    amount: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def is_settled(self) -> bool:
        return self.state == STATE_SPENT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerTransaction":
        return cls(
            transaction_id=data.get("request_id") or data.get("transaction_id"),
            state=data.get("state", ""),
            asset_id=data.get("asset_id") or data.get("asset"),
            amount=data.get("amount"),
            raw=data,
        )


class MixinApiClient:
    """Authenticated Mixin API client for one principal."""

    def __init__(
        self,
        principal: Principal,
        base_url: str = MIXIN_API_BASE,
        transport: Optional[RouteTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = 0,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ):
        self.principal = principal
        self.transport = transport or RouteTransport(
            base_url,
            authenticator=MixinJWTAuthenticator(MixinTokenSigner(principal)),
            timeout=timeout,
            retry_count=retry_count,
            retry_delay=retry_delay,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def fetch_sessions(self, user_ids: list[str]) -> list[dict]:
        """Fetch the active sessions of users."""
        data = await self.transport.post("/sessions/fetch", user_ids)
        return data if isinstance(data, list) else []

    async def fetch_session_public_key(self, user_id: str) -> Optional[bytes]:
        """Get the Ed25519 session public key of a user.

        Returns:
            32-byte key, or None if the user has no session

        Raises:
            InvalidKeyMaterial: If the published key is malformed
        """
        sessions = await self.fetch_sessions([user_id])
        for session in sessions:
            if session.get("user_id", user_id) != user_id:
                continue
            public_key = session.get("public_key")
            if not public_key:
                continue
            raw = decode_key(public_key)
            if len(raw) != KEY_SIZE:
                raise InvalidKeyMaterial(
                    f"Session public key of {user_id} must be {KEY_SIZE} bytes, got {len(raw)}"
                )
            return raw

        logger.warning(f"No session public key published for user {user_id}")
        return None

    async def fetch_transaction(self, trace_id: str) -> LedgerTransaction:
        """Look up a safe transaction by trace ID.

        Raises:
            ApiError: ``is_not_found`` is true while the payment has not been made
        """
        data = await self.transport.get(f"/safe/transactions/{trace_id}")
        return LedgerTransaction.from_dict(data or {})


class SessionKeyResolver(PublicKeyResolver):
    """Resolves counterparty keys from their published Mixin sessions."""

    def __init__(self, client: MixinApiClient):
        self.client = client

    async def resolve(self, counterparty_id: str) -> Optional[bytes]:
        logger.info(f"Fetching session public key for {counterparty_id}")
        return await self.client.fetch_session_public_key(counterparty_id)
