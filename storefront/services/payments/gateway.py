from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Union
from urllib.parse import quote

import httpx

from ...core.constants import (
    CREATE_ORDER_TIMEOUT,
    LIVE_CHECKOUT_URL,
    ORDER_STATUS_TIMEOUT,
    SANDBOX_CHECKOUT_URL,
)
from .credentials import GatewayCredentials
from .errors import GatewayError, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayOk:
    body: dict[str, Any] = field(default_factory=dict)
    http_status: int = 200

    retryable = False

    @property
    def order_status(self) -> str:
        return str(self.body.get("order_status") or "").upper()


GatewayOrderResult = Union[GatewayOk, GatewayError, TransportError]


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"raw": response.text}
    return data if isinstance(data, dict) else {"data": data}


class GatewayClient:
    """Thin HTTP client for the gateway's order resource.

    Failures come back as values rather than exceptions. The client never
    retries on its own: re-creating an order is not idempotent, so that
    decision belongs to the caller (see :func:`with_retries`).
    """

    def __init__(
        self,
        *,
        api_version: str = "2025-01-01",
        transport: httpx.BaseTransport | None = None,
        create_timeout: float = CREATE_ORDER_TIMEOUT,
        status_timeout: float = ORDER_STATUS_TIMEOUT,
    ) -> None:
        self.api_version = api_version
        self._transport = transport
        self._create_timeout = create_timeout
        self._status_timeout = status_timeout

    def _headers(self, credentials: GatewayCredentials) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-client-id": credentials.client_id,
            "x-client-secret": credentials.client_secret,
            "x-api-version": self.api_version,
            "x-request-id": f"req_{uuid.uuid4().hex}",
        }

    def _send(
        self,
        method: str,
        url: str,
        credentials: GatewayCredentials,
        *,
        timeout: float,
        json: dict[str, Any] | None = None,
    ) -> GatewayOrderResult:
        try:
            with httpx.Client(timeout=timeout, transport=self._transport) as client:
                response = client.request(method, url, json=json, headers=self._headers(credentials))
        except httpx.TimeoutException as exc:
            logger.warning("Gateway request timed out", extra={"url": url, "timeout": timeout})
            return TransportError(TransportError.TIMEOUT, f"Gateway did not answer within {timeout:g}s: {exc}")
        except httpx.RequestError as exc:
            logger.warning("Gateway unreachable", extra={"url": url, "error": str(exc)})
            return TransportError(TransportError.UNREACHABLE, f"Unable to connect to payment gateway: {exc}")

        body = _json_body(response)
        if response.is_success:
            return GatewayOk(body=body, http_status=response.status_code)

        logger.error(
            "Gateway returned an error",
            extra={"url": url, "http_status": response.status_code, "body": body},
        )
        return GatewayError(
            code=str(body.get("code") or "api_error"),
            message=str(body.get("message") or f"Gateway responded with HTTP {response.status_code}"),
            http_status=response.status_code,
            body=body,
        )

    def create_order(self, payload: dict[str, Any], credentials: GatewayCredentials) -> GatewayOrderResult:
        logger.info(
            "Creating gateway order",
            extra={
                "order_id": payload.get("order_id"),
                "amount": payload.get("order_amount"),
                "environment": credentials.environment.value,
                "client_id": credentials.masked_client_id,
            },
        )
        return self._send(
            "POST",
            f"{credentials.base_url}/orders",
            credentials,
            timeout=self._create_timeout,
            json=payload,
        )

    def get_order_status(self, order_id: str, credentials: GatewayCredentials) -> GatewayOrderResult:
        return self._send(
            "GET",
            f"{credentials.base_url}/orders/{quote(order_id, safe='')}",
            credentials,
            timeout=self._status_timeout,
        )


def with_retries(
    call: Callable[[], GatewayOrderResult],
    *,
    attempts: int = 1,
    backoff: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> GatewayOrderResult:
    """Run ``call`` up to ``attempts`` times while the result is retryable."""

    result = call()
    for attempt in range(1, max(attempts, 1)):
        if not result.retryable:
            break
        delay = backoff * (2 ** (attempt - 1))
        logger.info("Retrying gateway call", extra={"attempt": attempt + 1, "delay": delay})
        sleep(delay)
        result = call()
    return result


def checkout_url(payment_session_id: str, credentials: GatewayCredentials) -> str:
    base = LIVE_CHECKOUT_URL if credentials.is_live else SANDBOX_CHECKOUT_URL
    return f"{base}/{quote(payment_session_id, safe='')}"


__all__ = [
    "GatewayOk",
    "GatewayOrderResult",
    "GatewayClient",
    "with_retries",
    "checkout_url",
]
