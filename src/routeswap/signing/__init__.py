"""Request authentication for the route and Mixin APIs."""

from routeswap.signing.base import (
    Authenticator,
    AuthScheme,
    ChainedKeyResolver,
    PublicKeyResolver,
    StaticKeyResolver,
)
from routeswap.signing.jwt import MixinJWTAuthenticator, MixinTokenSigner
from routeswap.signing.route import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    RouteAuthenticator,
    RouteRequestSigner,
    canonical_string,
)

__all__ = [
    "Authenticator",
    "AuthScheme",
    "ChainedKeyResolver",
    "MixinJWTAuthenticator",
    "MixinTokenSigner",
    "PublicKeyResolver",
    "RouteAuthenticator",
    "RouteRequestSigner",
    "SIGNATURE_HEADER",
    "StaticKeyResolver",
    "TIMESTAMP_HEADER",
    "canonical_string",
]
