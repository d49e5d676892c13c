"""Pytest configuration and fixtures."""

import json
import os
from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["MIXIN_CLIENT_ID"] = "a1ce2d4c-4f3e-4b6a-9e8d-7c6b5a4f3e2d"
os.environ["MIXIN_SESSION_ID"] = "5e55104d-1d2c-4b3a-8f7e-6d5c4b3a2f1e"
os.environ["MIXIN_SESSION_PRIVATE_KEY"] = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
os.environ["ROUTE_BOT_PUBLIC_KEY"] = "3d4017c3e843895a92b70aa74d1b7ebc9c982ccf2ec4968cc0cd55f12af4660c"

from routeswap.config import ROUTE_BOT_USER_ID, get_settings
from routeswap.keystore import Principal, PrincipalKind
from routeswap.signing import RouteAuthenticator, RouteRequestSigner, StaticKeyResolver
from routeswap.transport import RouteTransport

# RFC 8032 test keys 1 and 2
LOCAL_SEED = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
LOCAL_PUBLIC_KEY = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
REMOTE_SEED = bytes.fromhex("4ccd089b28ff96da9db6c346ec114e0f5b8a319f35aba624da8cf6ed4fb8a6fb")
REMOTE_PUBLIC_KEY = bytes.fromhex("3d4017c3e843895a92b70aa74d1b7ebc9c982ccf2ec4968cc0cd55f12af4660c")

APP_ID = "a1ce2d4c-4f3e-4b6a-9e8d-7c6b5a4f3e2d"
SESSION_ID = "5e55104d-1d2c-4b3a-8f7e-6d5c4b3a2f1e"
FIXED_TIMESTAMP = 1700000000

BASE_URL = "https://api.route.test"

XIN = "c94ac88f-4671-3976-b60a-09064f1811e8"
USDT = "4d8c508b-91c5-375b-92b0-ee702ed2dac5"
BTC = "c6d0c728-2624-429b-8e0d-d9d19b6592fa"
ETH = "43d61dcd-e413-450d-80b8-101d5e903357"


def json_response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"))


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset around each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def principal() -> Principal:
    return Principal(
        kind=PrincipalKind.APP,
        principal_id=APP_ID,
        session_id=SESSION_ID,
        private_seed=LOCAL_SEED,
    )


@pytest.fixture
def resolver() -> StaticKeyResolver:
    return StaticKeyResolver({ROUTE_BOT_USER_ID: REMOTE_PUBLIC_KEY})


@pytest.fixture
def signer(principal, resolver) -> RouteRequestSigner:
    return RouteRequestSigner(principal, resolver)


@pytest.fixture
def sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep that returns immediately."""
    return AsyncMock()


@pytest.fixture
def make_transport(signer, sleep) -> Callable[..., RouteTransport]:
    """Build a transport whose requests are answered by ``handler``."""

    def factory(handler, **kwargs) -> RouteTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RouteTransport(
            BASE_URL,
            authenticator=RouteAuthenticator(signer, ROUTE_BOT_USER_ID, clock=lambda: FIXED_TIMESTAMP),
            client=client,
            sleep_func=sleep,
            **kwargs,
        )

    return factory
