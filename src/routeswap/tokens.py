"""Helpers over the swappable token list."""

from decimal import Decimal
from typing import Iterable, Optional

from routeswap.models import Quote, TokenDescriptor

# Common Mixin mainnet asset IDs
COMMON_TOKENS = {
    "XIN": "c94ac88f-4671-3976-b60a-09064f1811e8",
    "USDT": "4d8c508b-91c5-375b-92b0-ee702ed2dac5",
    "USDC": "9b180ab6-6abe-3dc0-a13f-04169eb34bfa",
    "BTC": "c6d0c728-2624-429b-8e0d-d9d19b6592fa",
    "ETH": "43d61dcd-e413-450d-80b8-101d5e903357",
}


def find_token(
    tokens: Iterable[TokenDescriptor],
    asset_id: Optional[str] = None,
    symbol: Optional[str] = None,
    name: Optional[str] = None,
) -> Optional[TokenDescriptor]:
    """Find a token by asset ID, symbol or name (checked in that order)."""
    tokens = list(tokens)
    if asset_id:
        return next((t for t in tokens if t.asset_id == asset_id), None)
    if symbol:
        return next((t for t in tokens if t.symbol.lower() == symbol.lower()), None)
    if name:
        return next((t for t in tokens if t.name.lower() == name.lower()), None)
    return None


def search_tokens(tokens: Iterable[TokenDescriptor], keyword: str) -> list[TokenDescriptor]:
    """Tokens whose symbol, name or asset ID contains the keyword."""
    keyword = keyword.lower()
    return [
        t
        for t in tokens
        if keyword in t.symbol.lower() or keyword in t.name.lower() or keyword in t.asset_id.lower()
    ]


def filter_by_chain(tokens: Iterable[TokenDescriptor], chain_symbol: str) -> list[TokenDescriptor]:
    return [t for t in tokens if t.chain.symbol.lower() == chain_symbol.lower()]


def group_by_chain(tokens: Iterable[TokenDescriptor]) -> dict[str, list[TokenDescriptor]]:
    groups: dict[str, list[TokenDescriptor]] = {}
    for token in tokens:
        groups.setdefault(token.chain.symbol, []).append(token)
    return groups


def can_swap(input_token: Optional[TokenDescriptor], output_token: Optional[TokenDescriptor]) -> bool:
    """Two distinct tokens are needed for a swap."""
    if input_token is None or output_token is None:
        return False
    return input_token.asset_id != output_token.asset_id


def exchange_rate(quote: Quote) -> Decimal:
    return quote.rate
