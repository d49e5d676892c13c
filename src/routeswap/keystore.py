"""Principal: the local signing identity built from a Mixin keystore.

Two keystore shapes exist. App keystores carry ``app_id`` and the app's
``server_public_key``; network user keystores carry ``user_id``. Both are
normalized into one tagged ``Principal``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from routeswap.crypto import ED25519_SECRET_KEY_SIZE, KEY_SIZE, decode_key, ed25519_public_key
from routeswap.errors import InvalidKeyMaterial

if TYPE_CHECKING:
    from routeswap.config import Settings

logger = logging.getLogger(__name__)


class PrincipalKind(str, Enum):
    """Keystore flavor a principal was built from."""

    APP = "app"
    USER = "user"


@dataclass(frozen=True)
class Principal:
    """Signing identity.

    Attributes:
        kind: Keystore flavor
        principal_id: App ID or user ID placed in front of every signature
        session_id: Session the private key belongs to
        private_seed: 32-byte Ed25519 session seed
        server_public_key: App keystore companion key (APP only)
    """

    kind: PrincipalKind
    principal_id: str
    session_id: str
    private_seed: bytes = field(repr=False)
    server_public_key: Optional[bytes] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.principal_id:
            raise InvalidKeyMaterial("Principal ID is required")
        if len(self.private_seed) != KEY_SIZE:
            raise InvalidKeyMaterial(
                f"Session private key must be a {KEY_SIZE}-byte seed, got {len(self.private_seed)}"
            )
        if self.kind == PrincipalKind.USER and self.server_public_key is not None:
            raise InvalidKeyMaterial("User keystores do not carry a server public key")

    @property
    def public_key(self) -> bytes:
        """Ed25519 public key of the session."""
        return ed25519_public_key(self.private_seed)

    @staticmethod
    def _seed_from_text(value: str) -> bytes:
        raw = decode_key(value)
        # A full Ed25519 secret key is seed || public key
        if len(raw) == ED25519_SECRET_KEY_SIZE:
            raw = raw[:KEY_SIZE]
        return raw

    @classmethod
    def from_keystore(cls, keystore: dict[str, Any]) -> "Principal":
        """Build a principal from a keystore dict.

        Raises:
            InvalidKeyMaterial: If required fields are missing or malformed
        """
        session_id = keystore.get("session_id")
        private_key = keystore.get("session_private_key")
        if not session_id or not private_key:
            raise InvalidKeyMaterial("Keystore requires session_id and session_private_key")

        seed = cls._seed_from_text(private_key)

        if keystore.get("app_id"):
            server_key = keystore.get("server_public_key")
            return cls(
                kind=PrincipalKind.APP,
                principal_id=keystore["app_id"],
                session_id=session_id,
                private_seed=seed,
                server_public_key=decode_key(server_key) if server_key else None,
            )

        if keystore.get("user_id"):
            return cls(
                kind=PrincipalKind.USER,
                principal_id=keystore["user_id"],
                session_id=session_id,
                private_seed=seed,
            )

        raise InvalidKeyMaterial("Keystore requires app_id or user_id")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "Principal":
        """Build a principal from the configured keystore."""
        keystore = {
            "session_id": settings.mixin_session_id,
            "session_private_key": settings.mixin_session_private_key,
        }
        if settings.mixin_client_id:
            keystore["app_id"] = settings.mixin_client_id
            keystore["server_public_key"] = settings.mixin_server_public_key
        else:
            keystore["user_id"] = settings.mixin_user_id
        return cls.from_keystore(keystore)
