"""Tests for principals, settings and client wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from routeswap.config import ROUTE_BOT_USER_ID, Settings, get_settings
from routeswap.crypto import base64url_encode
from routeswap.errors import InvalidKeyMaterial
from routeswap.keystore import Principal, PrincipalKind
from routeswap.services.factory import create_clients, create_key_resolver
from routeswap.signing import ChainedKeyResolver

from conftest import APP_ID, LOCAL_PUBLIC_KEY, LOCAL_SEED, REMOTE_PUBLIC_KEY, SESSION_ID

USER_ID = "7000a1b2-c3d4-4e5f-8a9b-0c1d2e3f4a5b"


class TestPrincipal:
    """Tests for keystore parsing."""

    def test_app_keystore(self):
        principal = Principal.from_keystore(
            {
                "app_id": APP_ID,
                "session_id": SESSION_ID,
                "session_private_key": LOCAL_SEED.hex(),
                "server_public_key": REMOTE_PUBLIC_KEY.hex(),
            }
        )

        assert principal.kind == PrincipalKind.APP
        assert principal.principal_id == APP_ID
        assert principal.server_public_key == REMOTE_PUBLIC_KEY
        assert principal.public_key == LOCAL_PUBLIC_KEY

    def test_user_keystore(self):
        principal = Principal.from_keystore(
            {"user_id": USER_ID, "session_id": SESSION_ID, "session_private_key": LOCAL_SEED.hex()}
        )

        assert principal.kind == PrincipalKind.USER
        assert principal.principal_id == USER_ID
        assert principal.server_public_key is None

    def test_full_secret_key_truncated_to_seed(self):
        """A 64-byte Ed25519 secret key (seed || public key) is accepted."""
        principal = Principal.from_keystore(
            {
                "user_id": USER_ID,
                "session_id": SESSION_ID,
                "session_private_key": base64url_encode(LOCAL_SEED + LOCAL_PUBLIC_KEY),
            }
        )

        assert principal.private_seed == LOCAL_SEED

    @pytest.mark.parametrize(
        "keystore",
        [
            {"session_id": SESSION_ID, "session_private_key": LOCAL_SEED.hex()},
            {"user_id": USER_ID, "session_private_key": LOCAL_SEED.hex()},
            {"user_id": USER_ID, "session_id": SESSION_ID},
            {"user_id": USER_ID, "session_id": SESSION_ID, "session_private_key": LOCAL_SEED.hex()[:40]},
        ],
    )
    def test_invalid_keystore(self, keystore):
        with pytest.raises(InvalidKeyMaterial):
            Principal.from_keystore(keystore)

    def test_user_principal_rejects_server_key(self):
        with pytest.raises(InvalidKeyMaterial):
            Principal(PrincipalKind.USER, USER_ID, SESSION_ID, LOCAL_SEED, server_public_key=REMOTE_PUBLIC_KEY)

    def test_repr_hides_seed(self, principal):
        assert LOCAL_SEED.hex() not in repr(principal)
        assert "private_seed" not in repr(principal)


class TestSettings:
    """Tests for environment-backed settings."""

    def test_defaults(self):
        settings = get_settings()

        assert settings.route_api_base == "https://api.route.mixin.one"
        assert settings.route_bot_user_id == ROUTE_BOT_USER_ID
        assert settings.request_timeout == 10.0
        assert settings.retry_count == 0
        assert settings.poll_interval == 5.0
        assert settings.has_keystore
        assert not settings.is_production

    def test_from_settings(self):
        principal = Principal.from_settings(get_settings())

        assert principal.kind == PrincipalKind.APP
        assert principal.principal_id == APP_ID
        assert principal.private_seed == LOCAL_SEED

    def test_safe_dict_redacts_secrets(self):
        safe = get_settings().get_safe_dict()

        assert safe["keystore"]["session_private_key"] == "***"
        assert LOCAL_SEED.hex() not in str(safe)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RETRY_COUNT", "3")
        get_settings.cache_clear()

        assert get_settings().retry_count == 3

    def test_missing_keystore(self):
        settings = Settings(mixin_client_id=None, mixin_user_id=None)

        assert not settings.has_keystore
        with pytest.raises(InvalidKeyMaterial):
            Principal.from_settings(settings)


class TestFactory:
    """Tests for service wiring."""

    @pytest.mark.asyncio
    async def test_pinned_key_resolves_without_lookup(self):
        mixin_client = MagicMock()
        mixin_client.fetch_session_public_key = AsyncMock()

        resolver = create_key_resolver(mixin_client, get_settings())

        assert isinstance(resolver, ChainedKeyResolver)
        assert await resolver.resolve(ROUTE_BOT_USER_ID) == REMOTE_PUBLIC_KEY
        mixin_client.fetch_session_public_key.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unpinned_key_uses_session_lookup(self):
        mixin_client = MagicMock()
        mixin_client.fetch_session_public_key = AsyncMock(return_value=REMOTE_PUBLIC_KEY)
        settings = Settings(route_bot_public_key=None)

        resolver = create_key_resolver(mixin_client, settings)

        assert await resolver.resolve(ROUTE_BOT_USER_ID) == REMOTE_PUBLIC_KEY
        mixin_client.fetch_session_public_key.assert_awaited_once_with(ROUTE_BOT_USER_ID)

    @pytest.mark.asyncio
    async def test_create_clients(self):
        async with create_clients(get_settings()) as clients:
            assert clients.principal.principal_id == APP_ID
            assert clients.swap_service.transport.base_url == "https://api.route.mixin.one"
            assert clients.mixin_client.transport.base_url == "https://api.mixin.one"
