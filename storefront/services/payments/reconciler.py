from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable
from urllib.parse import urlencode

from ...core.constants import ERROR_PAYMENT_FAILED, FAILURE_PATH, SUCCESS_PATH
from .credentials import GatewayCredentials
from .errors import ConfigurationError, GatewayError, TransportError
from .gateway import GatewayClient, GatewayOk, GatewayOrderResult, with_retries

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    """Gateway-owned order state. ``ACTIVE`` is the only non-terminal state."""

    ACTIVE = "ACTIVE"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.ACTIVE


@dataclass(frozen=True)
class FinalOutcome:
    redirect_target: str
    verified: bool
    order_id: str | None = None
    reason: str | None = None


def success_redirect(client_url: str, order_id: str | None, *, verified: bool, **extra: str) -> str:
    params: dict[str, str] = {}
    if order_id:
        params["order_id"] = order_id
    params["payment_status"] = "success"
    params["verified"] = "true" if verified else "false"
    params.update(extra)
    params["timestamp"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return f"{client_url}{SUCCESS_PATH}?{urlencode(params)}"


def failure_redirect(client_url: str, error: str, *, order_id: str | None = None, **extra: str) -> str:
    params: dict[str, str] = {"error": error}
    if order_id:
        params["order_id"] = order_id
    params.update(extra)
    return f"{client_url}{FAILURE_PATH}?{urlencode(params)}"


def failure_reason(result: GatewayOrderResult) -> str:
    if isinstance(result, GatewayOk):
        return result.order_status or "UNKNOWN"
    if isinstance(result, TransportError):
        return result.code.upper()
    return f"GATEWAY_{result.http_status}"


class VerificationReconciler:
    """Turns the gateway's authoritative order status into the final redirect.

    Once an order id is known this is the only thing that decides whether
    the shopper sees the thank-you page.
    """

    def __init__(
        self,
        client: GatewayClient,
        credentials_provider: Callable[[], GatewayCredentials],
        *,
        attempts: int = 1,
        backoff: float = 0.5,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._client = client
        self._credentials_provider = credentials_provider
        self._attempts = attempts
        self._backoff = backoff
        self._sleep = sleep

    def fetch_status(self, order_id: str) -> GatewayOrderResult:
        credentials = self._credentials_provider()
        kwargs = {"attempts": self._attempts, "backoff": self._backoff}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return with_retries(lambda: self._client.get_order_status(order_id, credentials), **kwargs)

    def reconcile(self, order_id: str, client_url: str) -> FinalOutcome:
        try:
            result = self.fetch_status(order_id)
        except ConfigurationError as exc:
            logger.error("Cannot verify order, gateway not configured", extra={"order_id": order_id})
            reason = f"CONFIG_{exc.reason.upper()}"
            return FinalOutcome(
                redirect_target=failure_redirect(client_url, ERROR_PAYMENT_FAILED, order_id=order_id, reason=reason),
                verified=False,
                order_id=order_id,
                reason=reason,
            )

        if isinstance(result, GatewayOk) and result.order_status == OrderStatus.PAID.value:
            logger.info("Payment verified", extra={"order_id": order_id})
            return FinalOutcome(
                redirect_target=success_redirect(client_url, order_id, verified=True),
                verified=True,
                order_id=order_id,
            )

        reason = failure_reason(result)
        if isinstance(result, (GatewayError, TransportError)):
            logger.warning(
                "Order status lookup failed",
                extra={"order_id": order_id, "reason": reason, "error": result.message},
            )
        else:
            logger.info("Order not paid", extra={"order_id": order_id, "reason": reason})
        return FinalOutcome(
            redirect_target=failure_redirect(client_url, ERROR_PAYMENT_FAILED, order_id=order_id, reason=reason),
            verified=False,
            order_id=order_id,
            reason=reason,
        )


__all__ = [
    "OrderStatus",
    "FinalOutcome",
    "VerificationReconciler",
    "success_redirect",
    "failure_redirect",
    "failure_reason",
]
