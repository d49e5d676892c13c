"""Route API wire models.

Field names follow Python conventions; aliases match the JSON the service
sends and expects. Amounts are Decimal and serialize back to strings.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RouteModel(BaseModel):
    """Base for immutable wire models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class HistoryRange(str, Enum):
    """Price history window."""

    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    YTD = "YTD"
    ALL = "ALL"


class TokenChain(RouteModel):
    """Chain a token lives on."""

    chain_id: str = Field(..., alias="chainId")
    symbol: str
    name: str
    icon: str = ""
    decimals: int = 0


class TokenDescriptor(RouteModel):
    """Swappable token reference data."""

    asset_id: str = Field(..., alias="assetId")
    symbol: str
    name: str
    icon: str = ""
    chain: TokenChain


class Quote(RouteModel):
    """Price quote for a swap.

    The payload is opaque and must be forwarded unmodified to order creation.
    """

    input_asset_id: str = Field(..., alias="inputMint")
    input_amount: Decimal = Field(..., alias="inAmount")
    output_asset_id: str = Field(..., alias="outputMint")
    output_amount: Decimal = Field(..., alias="outAmount")
    payload: str

    @property
    def rate(self) -> Decimal:
        """Output units per input unit."""
        if self.input_amount == 0:
            return Decimal("0")
        return self.output_amount / self.input_amount


class SwapRequest(RouteModel):
    """Body of ``POST /web3/swap``."""

    payer: str
    input_asset_id: str = Field(..., alias="inputMint")
    output_asset_id: str = Field(..., alias="outputMint")
    input_amount: str = Field(..., alias="inputAmount")
    payload: str
    referral: Optional[str] = None

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SwapResponse(RouteModel):
    """Order creation result: a payment URI and the quote it was priced at."""

    tx: str
    quote: Quote


class OrderView(RouteModel):
    """Order as reported by ``GET /web3/swap/orders/{id}``."""

    order_id: Optional[str] = Field(None, validation_alias=AliasChoices("orderId", "order_id"))
    payer_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("payerId", "payer_id", "user_id", "payer")
    )
    input_asset_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("inputAssetId", "input_asset_id", "inputMint")
    )
    output_asset_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("outputAssetId", "output_asset_id", "outputMint")
    )
    input_amount: Optional[Decimal] = Field(
        None, validation_alias=AliasChoices("inputAmount", "input_amount", "inAmount")
    )
    output_amount: Optional[Decimal] = Field(
        None, validation_alias=AliasChoices("outputAmount", "output_amount", "outAmount")
    )
    payment_trace_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("paymentTraceId", "payment_trace_id", "traceId", "trace_id")
    )
    state: str


class MarketInfo(RouteModel):
    """Market data for an asset. Unknown fields are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    coin_id: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    icon_url: Optional[str] = None
    current_price: Optional[Decimal] = None
    market_cap: Optional[Decimal] = None
    total_volume: Optional[Decimal] = None
    price_change_percentage_24h: Optional[Decimal] = None


class PricePoint(RouteModel):
    price: Decimal
    unix: int = Field(..., validation_alias=AliasChoices("unix", "timestamp"))


class PriceHistory(RouteModel):
    coin_id: Optional[str] = None
    type: Optional[str] = None
    data: list[PricePoint] = Field(default_factory=list)
