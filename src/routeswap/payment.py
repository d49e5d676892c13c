"""Payment URI parsing.

Order creation returns a payment URI of the form::

    https://mixin.one/pay/{recipient}?asset=...&amount=...&memo=...&trace=...

The ``memo`` carries the swap order ID and ``trace`` the payment trace ID
that later appears on the ledger. Both are needed to track the order.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit

from routeswap.amounts import format_amount, to_decimal
from routeswap.crypto import base64url_decode, base64url_encode
from routeswap.errors import InvalidPaymentURI, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentRequest:
    """Parsed payment URI."""

    uri: str
    scheme: str
    host: str
    recipient_id: str
    asset_id: Optional[str]
    amount: Optional[Decimal]
    memo: str
    trace_id: Optional[str]
    order_id: str


def decode_order_id(memo: str) -> str:
    """Recover the order ID carried in a payment memo.

    A UUID memo is the order ID itself. Otherwise the memo is treated as
    unpadded base64url: 16 decoded bytes are a binary UUID, decoded UTF-8
    text is the ID. Anything else is returned unchanged.

    Raises:
        InvalidPaymentURI: If the memo is empty
    """
    memo = (memo or "").strip()
    if not memo:
        raise InvalidPaymentURI("Payment memo is empty")

    try:
        return str(uuid.UUID(memo))
    except ValueError:
        pass

    try:
        raw = base64url_decode(memo)
    except ValueError:
        return memo

    if len(raw) == 16:
        return str(uuid.UUID(bytes=raw))

    try:
        text = raw.decode("utf-8").strip()
    except UnicodeDecodeError:
        return memo

    if text and text.isprintable():
        return text
    return memo


def encode_order_memo(order_id: str) -> str:
    """Encode an order ID the way the service places it in a memo."""
    return base64url_encode(order_id.encode("utf-8"))


def parse_payment_uri(uri: str) -> PaymentRequest:
    """Parse a payment URI.

    Accepts ``scheme://host/pay/{recipient}?...`` and the short
    ``mixin://pay/{recipient}?...`` / ``mixin://pay?recipient=...`` forms.

    Raises:
        InvalidPaymentURI: If the URI lacks a recipient or memo
    """
    parts = urlsplit(uri or "")
    if not parts.scheme or not parts.netloc:
        raise InvalidPaymentURI(f"Not a payment URI: {uri!r}")

    params = {key: values[0] for key, values in parse_qs(parts.query).items() if values}
    segments = [segment for segment in parts.path.split("/") if segment]

    recipient_id = None
    if parts.netloc == "pay":
        recipient_id = segments[0] if segments else None
    elif len(segments) >= 2 and segments[0] == "pay":
        recipient_id = segments[1]
    elif not segments or segments == ["pay"]:
        recipient_id = None
    else:
        raise InvalidPaymentURI(f"Unrecognized payment path: {parts.path!r}")
    recipient_id = recipient_id or params.get("recipient")

    if not recipient_id:
        raise InvalidPaymentURI(f"Payment URI has no recipient: {uri!r}")

    amount = None
    if params.get("amount"):
        try:
            amount = to_decimal(params["amount"])
        except ValidationError as e:
            raise InvalidPaymentURI(f"Invalid payment amount: {e}") from e

    memo = params.get("memo", "")
    order_id = decode_order_id(memo)

    return PaymentRequest(
        uri=uri,
        scheme=parts.scheme,
        host=parts.netloc,
        recipient_id=recipient_id,
        asset_id=params.get("asset"),
        amount=amount,
        memo=memo,
        trace_id=params.get("trace"),
        order_id=order_id,
    )


def build_payment_uri(
    recipient_id: str,
    asset_id: str,
    amount: Decimal,
    memo: str,
    trace_id: str,
    scheme: str = "https",
    host: str = "mixin.one",
) -> str:
    """Build a payment URI in the canonical form."""
    query = urlencode(
        {"asset": asset_id, "amount": format_amount(amount), "memo": memo, "trace": trace_id}
    )
    return f"{scheme}://{host}/pay/{recipient_id}?{query}"
