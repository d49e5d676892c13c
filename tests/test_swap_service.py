"""Tests for SwapService against a mocked route API."""

import json
from decimal import Decimal
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from routeswap.errors import AmountOutOfRangeError, ApiError, NoRouteError
from routeswap.models import HistoryRange
from routeswap.payment import build_payment_uri, encode_order_memo
from routeswap.services.swap_service import SwapService
from routeswap.tokens import can_swap, exchange_rate, filter_by_chain, find_token, group_by_chain, search_tokens

from conftest import BTC, USDT, XIN, json_response

PAYER_ID = "0b1ee5e8-3c9f-4b6e-9f3d-2a1b0c9d8e7f"
ROUTE_RECIPIENT = "61cb8dd4-16b1-4744-ba0c-7b2d2e52fc59"
ORDER_ID = "9f0c6c1e-6a5d-4c3b-8e2f-1a0b9c8d7e6f"
TRACE_ID = "d1e2f3a4-b5c6-4d7e-8f90-a1b2c3d4e5f6"

TOKENS = [
    {
        "assetId": XIN,
        "symbol": "XIN",
        "name": "Mixin",
        "icon": "https://example.com/xin.png",
        "chain": {"chainId": "43d61dcd-e413-450d-80b8-101d5e903357", "symbol": "ETH", "name": "Ethereum", "decimals": 18},
    },
    {
        "assetId": USDT,
        "symbol": "USDT",
        "name": "Tether USD",
        "chain": {"chainId": "43d61dcd-e413-450d-80b8-101d5e903357", "symbol": "ETH", "name": "Ethereum", "decimals": 6},
    },
    {
        "assetId": BTC,
        "symbol": "BTC",
        "name": "Bitcoin",
        "chain": {"chainId": BTC, "symbol": "BTC", "name": "Bitcoin", "decimals": 8},
    },
]


def quote_payload(amount="1", out_amount="63.667264", payload="P"):
    return {
        "inputMint": XIN,
        "inAmount": amount,
        "outputMint": USDT,
        "outAmount": out_amount,
        "payload": payload,
    }


class RouteApi:
    """In-memory route API answering the swap endpoints."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.swap_bodies: list[dict] = []
        self.quote_error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        query = dict(parse_qsl(urlsplit(str(request.url)).query))

        if path == "/web3/tokens":
            return json_response(200, {"data": TOKENS})
        if path == "/web3/quote":
            if self.quote_error:
                return json_response(400, {"error": self.quote_error})
            return json_response(200, {"data": quote_payload(amount=query["amount"])})
        if path == "/web3/swap" and request.method == "POST":
            body = json.loads(request.content)
            self.swap_bodies.append(body)
            tx = build_payment_uri(
                ROUTE_RECIPIENT,
                body["inputMint"],
                Decimal(body["inputAmount"]),
                encode_order_memo(ORDER_ID),
                TRACE_ID,
            )
            return json_response(200, {"data": {"tx": tx, "quote": quote_payload(amount=body["inputAmount"])}})
        if path.startswith("/web3/swap/orders/"):
            return json_response(200, {"data": {"orderId": path.rsplit("/", 1)[-1], "state": "pending"}})
        if path.endswith("/price-history"):
            return json_response(
                200,
                {"data": {"coin_id": "mixin", "type": query["type"], "data": [{"price": "120.5", "unix": 1700000000}]}},
            )
        if path.startswith("/markets/"):
            return json_response(
                200, {"data": {"coin_id": "mixin", "symbol": "xin", "current_price": "120.5", "rank": 300}}
            )
        return json_response(404, {"error": {"status": 404, "code": 404, "description": "not found"}})


@pytest.fixture
def route_api() -> RouteApi:
    return RouteApi()


@pytest.fixture
def service(make_transport, route_api) -> SwapService:
    return SwapService(make_transport(route_api))


class TestSwapService:
    """Tests for each swap operation."""

    @pytest.mark.asyncio
    async def test_list_tokens(self, service, route_api):
        tokens = await service.list_tokens()

        assert [t.symbol for t in tokens] == ["XIN", "USDT", "BTC"]
        assert tokens[0].chain.chain_id == "43d61dcd-e413-450d-80b8-101d5e903357"
        assert route_api.requests[0].url.raw_path == b"/web3/tokens?source=mixin"

    @pytest.mark.asyncio
    async def test_get_quote(self, service, route_api):
        quote = await service.get_quote(XIN, USDT, Decimal("1.50"))

        assert quote.output_amount == Decimal("63.667264")
        assert quote.payload == "P"
        raw_path = route_api.requests[0].url.raw_path.decode()
        assert raw_path == f"/web3/quote?inputMint={XIN}&outputMint={USDT}&amount=1.5&source=mixin"

    @pytest.mark.asyncio
    async def test_get_quote_out_of_range(self, service, route_api):
        route_api.quote_error = {"code": 10614, "description": "out of range", "extra": {"range": {"min": "0.01", "max": "5"}}}

        with pytest.raises(AmountOutOfRangeError) as exc_info:
            await service.get_quote(XIN, USDT, "100")

        assert exc_info.value.range.max == Decimal("5")

    @pytest.mark.asyncio
    async def test_get_quote_no_route(self, service, route_api):
        route_api.quote_error = {"code": 10615, "description": "no route"}

        with pytest.raises(NoRouteError):
            await service.get_quote(XIN, BTC, "1")

    @pytest.mark.asyncio
    async def test_malformed_quote_is_api_error(self, make_transport):
        service = SwapService(make_transport(lambda request: json_response(200, {"data": {"inputMint": XIN}})))

        with pytest.raises(ApiError) as exc_info:
            await service.get_quote(XIN, USDT, "1")

        assert "Malformed Quote" in str(exc_info.value)
        assert not exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_create_order_body(self, service, route_api):
        response = await service.create_order(PAYER_ID, XIN, USDT, "1", "P", referral_id="ref-1")

        assert route_api.swap_bodies == [
            {
                "payer": PAYER_ID,
                "inputMint": XIN,
                "outputMint": USDT,
                "inputAmount": "1",
                "payload": "P",
                "referral": "ref-1",
            }
        ]
        assert response.tx.startswith(f"https://mixin.one/pay/{ROUTE_RECIPIENT}?")

    @pytest.mark.asyncio
    async def test_create_order_omits_missing_referral(self, service, route_api):
        await service.create_order(PAYER_ID, XIN, USDT, "1", "P")
        assert "referral" not in route_api.swap_bodies[0]

    @pytest.mark.asyncio
    async def test_get_order(self, service, route_api):
        order = await service.get_order(ORDER_ID)

        assert order.order_id == ORDER_ID
        assert order.state == "pending"
        assert route_api.requests[0].url.path == f"/web3/swap/orders/{ORDER_ID}"

    @pytest.mark.asyncio
    async def test_market_info_keeps_unknown_fields(self, service):
        info = await service.get_market_info(XIN)

        assert info.current_price == Decimal("120.5")
        assert info.model_extra["rank"] == 300

    @pytest.mark.asyncio
    async def test_price_history(self, service, route_api):
        history = await service.get_price_history(XIN, HistoryRange.ONE_WEEK)

        assert history.type == "1W"
        assert history.data[0].price == Decimal("120.5")
        assert route_api.requests[0].url.raw_path.decode() == f"/markets/{XIN}/price-history?type=1W"


class TestExecuteSwap:
    """Quote, create and parse the payment in one call."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, service, route_api):
        execution = await service.execute_swap(PAYER_ID, XIN, USDT, "1")

        assert execution.quote.output_amount == Decimal("63.667264")
        assert route_api.swap_bodies[0]["payload"] == "P"
        assert execution.order_id == ORDER_ID
        assert execution.trace_id == TRACE_ID
        assert execution.payment.recipient_id == ROUTE_RECIPIENT
        assert execution.payment.amount == Decimal("1")

    @pytest.mark.asyncio
    async def test_quote_failure_skips_creation(self, service, route_api):
        route_api.quote_error = {"code": 10615, "description": "no route"}

        with pytest.raises(NoRouteError):
            await service.execute_swap(PAYER_ID, XIN, USDT, "1")

        assert route_api.swap_bodies == []


class TestTokenHelpers:
    """Tests for token list helpers."""

    @pytest.mark.asyncio
    async def test_helpers(self, service):
        tokens = await service.list_tokens()

        assert find_token(tokens, symbol="usdt").asset_id == USDT
        assert find_token(tokens, asset_id=BTC).symbol == "BTC"
        assert find_token(tokens) is None
        assert [t.symbol for t in search_tokens(tokens, "tether")] == ["USDT"]
        assert len(filter_by_chain(tokens, "eth")) == 2
        assert set(group_by_chain(tokens)) == {"ETH", "BTC"}
        assert can_swap(tokens[0], tokens[1])
        assert not can_swap(tokens[0], tokens[0])
        assert not can_swap(tokens[0], None)

    @pytest.mark.asyncio
    async def test_exchange_rate(self, service):
        quote = await service.get_quote(XIN, USDT, "2")
        assert exchange_rate(quote) == Decimal("63.667264") / Decimal("2")
