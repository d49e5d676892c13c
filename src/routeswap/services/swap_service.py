"""Swap service over the route API.

Thin domain layer: each operation maps to one signed request. Quotes carry
an opaque payload that must reach order creation unchanged; amounts stay
decimal strings end to end.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from routeswap.amounts import AmountLike, format_amount
from routeswap.errors import ApiError
from routeswap.models import (
    HistoryRange,
    MarketInfo,
    OrderView,
    PriceHistory,
    Quote,
    SwapRequest,
    SwapResponse,
    TokenDescriptor,
)
from routeswap.payment import PaymentRequest, parse_payment_uri
from routeswap.transport import RouteTransport

logger = logging.getLogger(__name__)

SOURCE = "mixin"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], data: Any) -> ModelT:
    """Validate a response payload, reporting a malformed one as ApiError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        logger.error(f"Malformed {model.__name__} response: {e}")
        raise ApiError(
            status_code=200,
            description=f"Malformed {model.__name__} response",
            raw_body=repr(data),
        ) from e


@dataclass(frozen=True)
class SwapExecution:
    """Result of quoting and creating one swap order."""

    quote: Quote
    response: SwapResponse
    payment: PaymentRequest

    @property
    def order_id(self) -> str:
        return self.payment.order_id

    @property
    def trace_id(self) -> Optional[str]:
        return self.payment.trace_id


class SwapService:
    """Route API swap operations.

    Usage:
        service = SwapService(transport)
        quote = await service.get_quote(XIN, USDT, "1")
        response = await service.create_order(payer_id, XIN, USDT, "1", quote.payload)
    """

    def __init__(self, transport: RouteTransport):
        self.transport = transport

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def list_tokens(self) -> list[TokenDescriptor]:
        """Get all tokens supported for swapping."""
        data = await self.transport.get("/web3/tokens", {"source": SOURCE})
        tokens = [_parse(TokenDescriptor, item) for item in data or []]
        logger.debug(f"Loaded {len(tokens)} swappable tokens")
        return tokens

    async def get_quote(
        self,
        input_asset_id: str,
        output_asset_id: str,
        amount: AmountLike,
    ) -> Quote:
        """Get a swap quote.

        Raises:
            AmountOutOfRangeError: Amount outside the allowed range (see ``range``)
            NoRouteError: No quote for this pair
            InvalidSwapConfigError: Service rejected the swap configuration
        """
        amount_text = format_amount(amount)
        logger.info(f"Requesting quote: {amount_text} {input_asset_id} -> {output_asset_id}")
        data = await self.transport.get(
            "/web3/quote",
            {
                "inputMint": input_asset_id,
                "outputMint": output_asset_id,
                "amount": amount_text,
                "source": SOURCE,
            },
        )
        quote = _parse(Quote, data)
        logger.info(
            f"Quote: {quote.input_amount} {quote.input_asset_id} -> "
            f"{quote.output_amount} {quote.output_asset_id}"
        )
        return quote

    async def create_order(
        self,
        payer_id: str,
        input_asset_id: str,
        output_asset_id: str,
        amount: AmountLike,
        payload: str,
        referral_id: Optional[str] = None,
    ) -> SwapResponse:
        """Create a swap order from a quote payload.

        Returns:
            Payment URI to fund the order and the quote it was priced at
        """
        request = SwapRequest(
            payer=payer_id,
            input_asset_id=input_asset_id,
            output_asset_id=output_asset_id,
            input_amount=format_amount(amount),
            payload=payload,
            referral=referral_id,
        )
        data = await self.transport.post("/web3/swap", request.to_body())
        response = _parse(SwapResponse, data)
        logger.info(f"Swap order created for payer {payer_id}: {input_asset_id} -> {output_asset_id}")
        return response

    async def get_order(self, order_id: str) -> OrderView:
        data = await self.transport.get(f"/web3/swap/orders/{order_id}")
        return _parse(OrderView, data)

    async def get_market_info(self, asset_id: str) -> MarketInfo:
        data = await self.transport.get(f"/markets/{asset_id}")
        return _parse(MarketInfo, data)

    async def get_price_history(self, asset_id: str, range: HistoryRange) -> PriceHistory:
        range = HistoryRange(range)
        data = await self.transport.get(f"/markets/{asset_id}/price-history", {"type": range.value})
        return _parse(PriceHistory, data)

    async def execute_swap(
        self,
        payer_id: str,
        input_asset_id: str,
        output_asset_id: str,
        amount: AmountLike,
        referral_id: Optional[str] = None,
    ) -> SwapExecution:
        """Quote and create an order in one step.

        The quote is discarded if order creation fails; nothing is persisted
        server-side by quoting, so there is nothing to undo.
        """
        quote = await self.get_quote(input_asset_id, output_asset_id, amount)
        response = await self.create_order(
            payer_id=payer_id,
            input_asset_id=input_asset_id,
            output_asset_id=output_asset_id,
            amount=amount,
            payload=quote.payload,
            referral_id=referral_id,
        )
        payment = parse_payment_uri(response.tx)
        return SwapExecution(quote=quote, response=response, payment=payment)
