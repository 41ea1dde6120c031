"""Error taxonomy shared by the payment components.

``GatewayError`` and ``TransportError`` double as the failure variants of a
gateway call result: the client returns them instead of raising, and callers
decide whether to raise, retry or map them to a redirect.
"""

from __future__ import annotations

from typing import Any


class PaymentError(Exception):
    """Base class for every error raised by the payment adapter."""

    code = "payment_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(PaymentError):
    """Gateway credentials are missing, blank or switched off."""

    code = "payments_unavailable"

    MISSING = "missing"
    DISABLED = "disabled"

    def __init__(self, message: str, *, reason: str = MISSING) -> None:
        super().__init__(message)
        self.reason = reason


class ValidationError(PaymentError):
    """Checkout input rejected before anything is sent to the gateway."""

    code = "validation_error"

    def __init__(self, errors: list[dict[str, str]]) -> None:
        summary = ", ".join(f"{item['field']}: {item['message']}" for item in errors)
        super().__init__(f"Validation failed: {summary}")
        self.errors = errors


class GatewayError(PaymentError):
    """The gateway answered with a non-2xx status."""

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int,
        body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.http_status = http_status
        self.body = body or {}

    @property
    def retryable(self) -> bool:
        return self.http_status == 429

    def __repr__(self) -> str:
        return f"GatewayError(code={self.code!r}, http_status={self.http_status})"


class TransportError(PaymentError):
    """The gateway could not be reached or did not answer in time."""

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = f"{kind}_error"

    @property
    def retryable(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"TransportError(kind={self.kind!r})"


class CallbackAmbiguityError(PaymentError):
    """A return callback carried neither an order reference nor a status."""

    code = "callback_ambiguous"


__all__ = [
    "PaymentError",
    "ConfigurationError",
    "ValidationError",
    "GatewayError",
    "TransportError",
    "CallbackAmbiguityError",
]
