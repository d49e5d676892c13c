"""Tests for payment URI parsing and order memo decoding."""

import uuid
from decimal import Decimal

import pytest

from routeswap.crypto import base64url_encode
from routeswap.errors import InvalidPaymentURI, ValidationError
from routeswap.payment import build_payment_uri, decode_order_id, encode_order_memo, parse_payment_uri

RECIPIENT = "61cb8dd4-16b1-4744-ba0c-7b2d2e52fc59"
ASSET = "c94ac88f-4671-3976-b60a-09064f1811e8"
ORDER_ID = "9f0c6c1e-6a5d-4c3b-8e2f-1a0b9c8d7e6f"
TRACE_ID = "d1e2f3a4-b5c6-4d7e-8f90-a1b2c3d4e5f6"


class TestDecodeOrderId:
    """Tests for memo to order ID decoding."""

    def test_plain_uuid(self):
        assert decode_order_id(ORDER_ID) == ORDER_ID

    def test_base64url_text(self):
        assert decode_order_id(encode_order_memo(ORDER_ID)) == ORDER_ID

    def test_base64url_binary_uuid(self):
        memo = base64url_encode(uuid.UUID(ORDER_ID).bytes)
        assert decode_order_id(memo) == ORDER_ID

    def test_raw_fallback(self):
        assert decode_order_id("order#42") == "order#42"

    @pytest.mark.parametrize("memo", ["", "   ", None])
    def test_empty_memo(self, memo):
        with pytest.raises(InvalidPaymentURI):
            decode_order_id(memo)


class TestParsePaymentUri:
    """Tests for parse_payment_uri."""

    def test_canonical_form(self):
        uri = build_payment_uri(RECIPIENT, ASSET, Decimal("1.25"), encode_order_memo(ORDER_ID), TRACE_ID)

        payment = parse_payment_uri(uri)

        assert payment.scheme == "https"
        assert payment.host == "mixin.one"
        assert payment.recipient_id == RECIPIENT
        assert payment.asset_id == ASSET
        assert payment.amount == Decimal("1.25")
        assert payment.trace_id == TRACE_ID
        assert payment.order_id == ORDER_ID
        assert payment.uri == uri

    def test_mixin_scheme_with_path(self):
        payment = parse_payment_uri(f"mixin://pay/{RECIPIENT}?asset={ASSET}&amount=2&memo={ORDER_ID}&trace={TRACE_ID}")

        assert payment.recipient_id == RECIPIENT
        assert payment.order_id == ORDER_ID

    def test_legacy_recipient_query(self):
        payment = parse_payment_uri(f"mixin://pay?recipient={RECIPIENT}&asset={ASSET}&amount=2&memo={ORDER_ID}")

        assert payment.recipient_id == RECIPIENT
        assert payment.trace_id is None

    def test_missing_memo(self):
        with pytest.raises(InvalidPaymentURI):
            parse_payment_uri(f"https://mixin.one/pay/{RECIPIENT}?asset={ASSET}&amount=1")

    def test_missing_recipient(self):
        with pytest.raises(InvalidPaymentURI):
            parse_payment_uri(f"mixin://pay?asset={ASSET}&memo={ORDER_ID}")

    @pytest.mark.parametrize("uri", ["", "not a uri", "https://mixin.one/transfer/x?memo=a"])
    def test_not_a_payment_uri(self, uri):
        with pytest.raises(ValidationError):
            parse_payment_uri(uri)

    def test_bad_amount(self):
        with pytest.raises(InvalidPaymentURI):
            parse_payment_uri(f"https://mixin.one/pay/{RECIPIENT}?amount=abc&memo={ORDER_ID}")
