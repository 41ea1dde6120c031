"""Browser return from the gateway's hosted checkout.

The gateway does not commit to a stable shape for this redirect: the order
reference and the status arrive under different names, in the query string
or in a form/JSON body. Parsing is therefore a list of small extractor
functions tried in order. Missing a field is preferred to rejecting the
callback, and the raw parameters are always logged first so a miss can be
diagnosed later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence

from ...core.constants import ERROR_MISSING_ORDER_ID, ERROR_VERIFICATION_FAILED
from .errors import CallbackAmbiguityError
from .reconciler import FinalOutcome, VerificationReconciler, failure_redirect, success_redirect

logger = logging.getLogger(__name__)

ORDER_ID_ALIASES: tuple[str, ...] = (
    "order_id",
    "orderId",
    "ORDER_ID",
    "orderid",
    "merchant_order_id",
    "merchantOrderId",
    "reference_id",
    "referenceId",
    "cf_order_id",
    "cfOrderId",
    "CF_ORDER_ID",
    "order_token",
    "orderToken",
    "ORDER_TOKEN",
)

SESSION_ALIASES: tuple[str, ...] = (
    "payment_session_id",
    "paymentSessionId",
    "PAYMENT_SESSION_ID",
)

STATUS_ALIASES: tuple[str, ...] = (
    "payment_status",
    "paymentStatus",
    "PAYMENT_STATUS",
    "order_status",
    "orderStatus",
    "ORDER_STATUS",
    "txn_status",
    "txStatus",
    "transaction_status",
    "payment_state",
    "status",
    "STATUS",
)

SUCCESS_TOKENS = frozenset({"SUCCESS", "SUCCESSFUL", "PAID", "COMPLETED", "CAPTURED", "CHARGED"})
FAILURE_TOKENS = frozenset(
    {
        "FAILED",
        "FAILURE",
        "CANCELLED",
        "CANCELED",
        "USER_DROPPED",
        "DECLINED",
        "EXPIRED",
        "TERMINATED",
        "VOID",
    }
)


class ProvisionalStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    UNKNOWN = "UNKNOWN"


class CallbackSource(str, Enum):
    query = "query"
    body = "body"


@dataclass(frozen=True)
class CallbackParams:
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def sources(self) -> Iterable[tuple[CallbackSource, Mapping[str, Any]]]:
        yield CallbackSource.query, self.query
        yield CallbackSource.body, self.body

    def is_empty(self) -> bool:
        return not self.query and not self.body


@dataclass(frozen=True)
class CallbackOutcome:
    extracted_order_id: str | None
    provisional_status: ProvisionalStatus
    source: CallbackSource

    @property
    def unverified_success(self) -> bool:
        return self.extracted_order_id is None and self.provisional_status is ProvisionalStatus.SUCCESS


Extracted = tuple[str, CallbackSource]
Extractor = Callable[[CallbackParams], "Extracted | None"]


def _scalar(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or isinstance(value, (dict, bool)):
        return ""
    return str(value).strip()


def alias_extractor(aliases: Sequence[str]) -> Extractor:
    def extract(params: CallbackParams) -> Extracted | None:
        for alias in aliases:
            for source, values in params.sources():
                value = _scalar(values.get(alias))
                if value:
                    return value, source
        return None

    extract.__name__ = f"alias_extractor_{aliases[0]}"
    return extract


def nested_order_extractor(params: CallbackParams) -> Extracted | None:
    """JSON bodies shaped like the webhook: ``{"data": {"order": {...}}}``."""

    data = params.body.get("data") if isinstance(params.body.get("data"), dict) else params.body
    order = data.get("order") if isinstance(data, dict) else None
    if not isinstance(order, dict):
        return None
    value = _scalar(order.get("order_id")) or _scalar(order.get("orderId"))
    return (value, CallbackSource.body) if value else None


def nested_status_extractor(params: CallbackParams) -> Extracted | None:
    data = params.body.get("data") if isinstance(params.body.get("data"), dict) else params.body
    if not isinstance(data, dict):
        return None
    for section, key in (("payment", "payment_status"), ("order", "order_status")):
        nested = data.get(section)
        if isinstance(nested, dict):
            value = _scalar(nested.get(key))
            if value:
                return value, CallbackSource.body
    return None


ORDER_ID_EXTRACTORS: tuple[Extractor, ...] = (
    alias_extractor(ORDER_ID_ALIASES),
    nested_order_extractor,
    alias_extractor(SESSION_ALIASES),
)

STATUS_EXTRACTORS: tuple[Extractor, ...] = (
    alias_extractor(STATUS_ALIASES),
    nested_status_extractor,
)


def classify_status(token: str | None) -> ProvisionalStatus:
    normalized = (token or "").strip().upper()
    if normalized in SUCCESS_TOKENS:
        return ProvisionalStatus.SUCCESS
    if normalized in FAILURE_TOKENS:
        return ProvisionalStatus.FAILURE
    return ProvisionalStatus.UNKNOWN


def first_match(extractors: Sequence[Extractor], params: CallbackParams) -> Extracted | None:
    for extractor in extractors:
        found = extractor(params)
        if found:
            return found
    return None


def extract_outcome(
    params: CallbackParams,
    *,
    order_id_extractors: Sequence[Extractor] = ORDER_ID_EXTRACTORS,
    status_extractors: Sequence[Extractor] = STATUS_EXTRACTORS,
) -> CallbackOutcome:
    order_match = first_match(order_id_extractors, params)
    status_match = first_match(status_extractors, params)

    status = classify_status(status_match[0] if status_match else None)
    if order_match:
        source = order_match[1]
    elif status_match:
        source = status_match[1]
    else:
        source = CallbackSource.body if params.body and not params.query else CallbackSource.query
    return CallbackOutcome(
        extracted_order_id=order_match[0] if order_match else None,
        provisional_status=status,
        source=source,
    )


class ReturnCallbackHandler:
    def __init__(
        self,
        reconciler: VerificationReconciler,
        *,
        order_id_extractors: Sequence[Extractor] = ORDER_ID_EXTRACTORS,
        status_extractors: Sequence[Extractor] = STATUS_EXTRACTORS,
    ) -> None:
        self._reconciler = reconciler
        self._order_id_extractors = order_id_extractors
        self._status_extractors = status_extractors

    def extract(self, params: CallbackParams) -> CallbackOutcome:
        return extract_outcome(
            params,
            order_id_extractors=self._order_id_extractors,
            status_extractors=self._status_extractors,
        )

    def _decide(self, outcome: CallbackOutcome, client_url: str) -> FinalOutcome:
        if outcome.extracted_order_id:
            return self._reconciler.reconcile(outcome.extracted_order_id, client_url)
        if outcome.unverified_success:
            logger.warning(
                "Gateway reported success without an order reference",
                extra={"source": outcome.source.value},
            )
            return FinalOutcome(
                redirect_target=success_redirect(
                    client_url, None, verified=False, source=outcome.source.value
                ),
                verified=False,
            )
        raise CallbackAmbiguityError(
            f"No order reference in return callback (status {outcome.provisional_status.value})"
        )

    def handle(self, params: CallbackParams, client_url: str) -> FinalOutcome:
        logger.info(
            "Payment return received",
            extra={"query": dict(params.query), "body": dict(params.body)},
        )
        try:
            outcome = self.extract(params)
            logger.info(
                "Payment return parsed",
                extra={
                    "order_id": outcome.extracted_order_id,
                    "provisional_status": outcome.provisional_status.value,
                    "source": outcome.source.value,
                },
            )
            return self._decide(outcome, client_url)
        except CallbackAmbiguityError as exc:
            logger.warning("Ambiguous payment return: %s", exc)
            return FinalOutcome(
                redirect_target=failure_redirect(client_url, ERROR_MISSING_ORDER_ID),
                verified=False,
                reason=ERROR_MISSING_ORDER_ID,
            )
        except Exception:
            logger.exception("Payment return handling failed")
            return FinalOutcome(
                redirect_target=failure_redirect(client_url, ERROR_VERIFICATION_FAILED),
                verified=False,
                reason=ERROR_VERIFICATION_FAILED,
            )


__all__ = [
    "ORDER_ID_ALIASES",
    "SESSION_ALIASES",
    "STATUS_ALIASES",
    "ProvisionalStatus",
    "CallbackSource",
    "CallbackParams",
    "CallbackOutcome",
    "alias_extractor",
    "nested_order_extractor",
    "nested_status_extractor",
    "ORDER_ID_EXTRACTORS",
    "STATUS_EXTRACTORS",
    "classify_status",
    "first_match",
    "extract_outcome",
    "ReturnCallbackHandler",
]
