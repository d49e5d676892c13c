"""Command-line interface.

Usage:
    routeswap tokens --search usdt
    routeswap quote <input_asset_id> <output_asset_id> 1.5
    routeswap swap <input_asset_id> <output_asset_id> 1.5 --wait
    routeswap order <order_id>
    routeswap market <asset_id> --history 1W

Environment variables:
    MIXIN_CLIENT_ID / MIXIN_USER_ID: Keystore principal
    MIXIN_SESSION_ID, MIXIN_SESSION_PRIVATE_KEY: Keystore session
    ROUTE_BOT_PUBLIC_KEY: Pinned route bot key (optional)
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from routeswap.config import Settings, get_settings
from routeswap.errors import AmountOutOfRangeError, RouteSwapError
from routeswap.models import HistoryRange
from routeswap.services.factory import RouteClients, create_clients
from routeswap.services.order_tracker import OrderLifecycleTracker, SwapOrder
from routeswap.tokens import COMMON_TOKENS, search_tokens

logger = logging.getLogger(__name__)


def resolve_asset(value: str) -> str:
    """Accept a well-known symbol (XIN, USDT, ...) in place of an asset ID."""
    return COMMON_TOKENS.get(value.upper(), value)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="routeswap", description="Mixin route swap client")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    tokens = commands.add_parser("tokens", help="List swappable tokens")
    tokens.add_argument("--search", help="Filter by symbol, name or asset ID")

    quote = commands.add_parser("quote", help="Get a swap quote")
    quote.add_argument("input_asset_id")
    quote.add_argument("output_asset_id")
    quote.add_argument("amount")

    swap = commands.add_parser("swap", help="Create a swap order")
    swap.add_argument("input_asset_id")
    swap.add_argument("output_asset_id")
    swap.add_argument("amount")
    swap.add_argument("--payer", help="Payer user ID (default: keystore principal)")
    swap.add_argument("--wait", action="store_true", help="Track the order until it settles")

    order = commands.add_parser("order", help="Show a swap order")
    order.add_argument("order_id")

    market = commands.add_parser("market", help="Show market data for an asset")
    market.add_argument("asset_id")
    market.add_argument(
        "--history",
        choices=[r.value for r in HistoryRange],
        help="Also show price history for this range",
    )

    return parser


async def cmd_tokens(clients: RouteClients, args: argparse.Namespace, settings: Settings) -> None:
    tokens = await clients.swap_service.list_tokens()
    if args.search:
        tokens = search_tokens(tokens, args.search)
    for token in tokens:
        print(f"{token.symbol:<10} {token.asset_id}  {token.name} ({token.chain.symbol})")
    print(f"{len(tokens)} tokens")


async def cmd_quote(clients: RouteClients, args: argparse.Namespace, settings: Settings) -> None:
    quote = await clients.swap_service.get_quote(
        resolve_asset(args.input_asset_id), resolve_asset(args.output_asset_id), args.amount
    )
    print(f"In:   {quote.input_amount} {quote.input_asset_id}")
    print(f"Out:  {quote.output_amount} {quote.output_asset_id}")
    print(f"Rate: {quote.rate}")


async def cmd_swap(clients: RouteClients, args: argparse.Namespace, settings: Settings) -> None:
    payer_id = args.payer or clients.principal.principal_id
    execution = await clients.swap_service.execute_swap(
        payer_id=payer_id,
        input_asset_id=resolve_asset(args.input_asset_id),
        output_asset_id=resolve_asset(args.output_asset_id),
        amount=args.amount,
        referral_id=settings.referral_user_id,
    )
    print(f"Order:   {execution.order_id}")
    print(f"Expect:  {execution.response.quote.output_amount} {execution.response.quote.output_asset_id}")
    print(f"Pay:     {execution.response.tx}")

    if args.wait:
        tracker = OrderLifecycleTracker(
            SwapOrder.from_execution(execution, payer_id),
            clients.swap_service,
            ledger=clients.mixin_client,
            interval=settings.poll_interval,
        )
        tracker.start()
        try:
            state = await tracker.wait()
        finally:
            await tracker.stop()
        print(f"State:   {state.value}")


async def cmd_order(clients: RouteClients, args: argparse.Namespace, settings: Settings) -> None:
    order = await clients.swap_service.get_order(args.order_id)
    for name, value in order.model_dump(exclude_none=True).items():
        print(f"{name}: {value}")


async def cmd_market(clients: RouteClients, args: argparse.Namespace, settings: Settings) -> None:
    info = await clients.swap_service.get_market_info(resolve_asset(args.asset_id))
    print(f"{info.symbol} {info.name}: price {info.current_price}, 24h {info.price_change_percentage_24h}%")
    if args.history:
        history = await clients.swap_service.get_price_history(resolve_asset(args.asset_id), HistoryRange(args.history))
        for point in history.data:
            print(f"{point.unix} {point.price}")


COMMANDS = {
    "tokens": cmd_tokens,
    "quote": cmd_quote,
    "swap": cmd_swap,
    "order": cmd_order,
    "market": cmd_market,
}


async def run(args: argparse.Namespace, settings: Optional[Settings] = None) -> int:
    settings = settings or get_settings()
    try:
        async with create_clients(settings) as clients:
            await COMMANDS[args.command](clients, args, settings)
    except AmountOutOfRangeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except RouteSwapError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.verbose or settings.debug)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
