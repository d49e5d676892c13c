"""Exception hierarchy for routeswap.

- RouteSwapError (base)
  - InvalidKeyMaterial (malformed key input, never retried)
  - SecretUnavailable (counterparty public key could not be resolved)
  - NetworkError (transport-level failure)
  - ApiError (request rejected by the service)
    - AmountOutOfRangeError (10614, carries the allowed range)
    - NoRouteError (10615)
    - InvalidSwapConfigError (10611)
  - ValidationError (client-side precondition failed before any network call)
    - InvalidPaymentURI
"""

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ERROR_INVALID_SWAP_CONFIG = 10611
ERROR_AMOUNT_OUT_OF_RANGE = 10614
ERROR_NO_ROUTE = 10615
ERROR_NOT_FOUND = 404


class RouteSwapError(Exception):
    """Base exception for all routeswap errors."""

    pass


class InvalidKeyMaterial(RouteSwapError):
    """Key input is malformed (wrong length, bad encoding, invalid point)."""

    pass


class SecretUnavailable(RouteSwapError):
    """Shared secret could not be derived because the counterparty key is unknown.

    Attributes:
        counterparty_id: Counterparty whose public key could not be resolved
    """

    def __init__(self, counterparty_id: str, message: Optional[str] = None):
        self.counterparty_id = counterparty_id
        super().__init__(message or f"Public key for counterparty {counterparty_id} unavailable")


class NetworkError(RouteSwapError):
    """Transport-level failure (connect, timeout, protocol)."""

    pass


class ValidationError(RouteSwapError):
    """Client-side precondition failed."""

    pass


class InvalidPaymentURI(ValidationError):
    """Payment URI could not be parsed."""

    pass


@dataclass(frozen=True)
class QuoteRange:
    """Allowed input amount range returned with an out-of-range error."""

    min: Decimal
    max: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> Optional["QuoteRange"]:
        try:
            return cls(min=Decimal(str(data["min"])), max=Decimal(str(data["max"])))
        except (KeyError, TypeError, InvalidOperation):
            return None


class ApiError(RouteSwapError):
    """Request rejected by the remote service.

    Attributes:
        status_code: HTTP status code of the response
        code: Service error code (None if the body carried no error object)
        description: Service error description
        range: Allowed amount range, when the service supplied one
        raw_body: Raw response body
    """

    def __init__(
        self,
        status_code: int,
        code: Optional[int] = None,
        description: Optional[str] = None,
        range: Optional[QuoteRange] = None,
        raw_body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.code = code
        self.description = description
        self.range = range
        self.raw_body = raw_body
        if description:
            message = description
        elif raw_body:
            message = f"HTTP {status_code}: {raw_body}"
        else:
            message = f"HTTP {status_code}"
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """5xx responses are retried, everything else is terminal."""
        return 500 <= self.status_code < 600

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or self.code == ERROR_NOT_FOUND

    @classmethod
    def from_error_object(
        cls, status_code: int, error: dict, raw_body: Optional[str] = None
    ) -> "ApiError":
        """Build the typed error for an ``{code, description, extra}`` object.

        Mixin reports failures as HTTP 200 with the real status in
        ``error.status``; when present it takes precedence.
        """
        status = error.get("status")
        if isinstance(status, int) and status >= 400:
            status_code = status
        code = error.get("code")
        description = error.get("description")
        extra = error.get("extra") or {}
        quote_range = None
        if isinstance(extra, dict) and isinstance(extra.get("range"), dict):
            quote_range = QuoteRange.from_dict(extra["range"])

        error_cls = _ERRORS_BY_CODE.get(code, ApiError)
        return error_cls(
            status_code=status_code,
            code=code,
            description=description,
            range=quote_range,
            raw_body=raw_body,
        )

    @classmethod
    def from_response(cls, status_code: int, raw_body: str) -> "ApiError":
        """Build an error from a failed HTTP response body."""
        try:
            payload: Any = json.loads(raw_body) if raw_body else None
        except ValueError:
            payload = None

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            return cls.from_error_object(status_code, payload["error"], raw_body)

        return ApiError(status_code=status_code, raw_body=raw_body)


class AmountOutOfRangeError(ApiError):
    """Input amount is outside the range the service accepts."""

    def __str__(self) -> str:
        if self.range:
            return f"Amount out of range. Min: {self.range.min}, Max: {self.range.max}"
        return "Amount out of range"


class NoRouteError(ApiError):
    """No quote is available for the asset pair."""

    def __str__(self) -> str:
        return "No available quote found for this swap pair"


class InvalidSwapConfigError(ApiError):
    """The service rejected the swap configuration."""

    def __str__(self) -> str:
        return "Invalid swap configuration"


_ERRORS_BY_CODE: dict[int, type[ApiError]] = {
    ERROR_AMOUNT_OUT_OF_RANGE: AmountOutOfRangeError,
    ERROR_NO_ROUTE: NoRouteError,
    ERROR_INVALID_SWAP_CONFIG: InvalidSwapConfigError,
}
