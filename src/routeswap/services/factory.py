"""Factory for wiring services from settings.

The route bot's public key comes from the pinned setting when present,
otherwise from its published Mixin session.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from routeswap.config import Settings, get_settings
from routeswap.keystore import Principal
from routeswap.mixin import MixinApiClient, SessionKeyResolver
from routeswap.services.swap_service import SwapService
from routeswap.signing import (
    ChainedKeyResolver,
    PublicKeyResolver,
    RouteAuthenticator,
    RouteRequestSigner,
    StaticKeyResolver,
)
from routeswap.transport import RouteTransport

logger = logging.getLogger(__name__)


def create_mixin_client(
    principal: Principal,
    settings: Optional[Settings] = None,
) -> MixinApiClient:
    settings = settings or get_settings()
    return MixinApiClient(
        principal,
        base_url=settings.mixin_api_base,
        timeout=settings.request_timeout,
        retry_count=settings.retry_count,
        retry_delay=settings.retry_delay,
    )


def create_key_resolver(
    mixin_client: MixinApiClient,
    settings: Optional[Settings] = None,
) -> PublicKeyResolver:
    """Pinned route bot key first, then session lookup."""
    settings = settings or get_settings()
    session_resolver = SessionKeyResolver(mixin_client)

    if settings.route_bot_public_key:
        logger.info(f"Using pinned public key for route bot {settings.route_bot_user_id}")
        pinned = StaticKeyResolver({settings.route_bot_user_id: settings.route_bot_public_key})
        return ChainedKeyResolver(pinned, session_resolver)

    return session_resolver


@dataclass
class RouteClients:
    """Swap service plus the Mixin client it shares a principal with."""

    principal: Principal
    swap_service: SwapService
    mixin_client: MixinApiClient

    async def aclose(self) -> None:
        await self.swap_service.aclose()
        await self.mixin_client.aclose()

    async def __aenter__(self) -> "RouteClients":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def create_clients(
    settings: Optional[Settings] = None,
    principal: Optional[Principal] = None,
) -> RouteClients:
    """Create the swap service and Mixin client for the configured keystore.

    Raises:
        InvalidKeyMaterial: If no usable keystore is configured
    """
    settings = settings or get_settings()
    principal = principal or Principal.from_settings(settings)

    mixin_client = create_mixin_client(principal, settings)
    signer = RouteRequestSigner(principal, create_key_resolver(mixin_client, settings))
    transport = RouteTransport(
        settings.route_api_base,
        authenticator=RouteAuthenticator(signer, settings.route_bot_user_id),
        timeout=settings.request_timeout,
        retry_count=settings.retry_count,
        retry_delay=settings.retry_delay,
    )

    logger.info(
        f"Route clients ready for {principal.kind.value} principal {principal.principal_id} "
        f"({settings.route_api_base})"
    )
    return RouteClients(
        principal=principal,
        swap_service=SwapService(transport),
        mixin_client=mixin_client,
    )
