"""Server-to-server payment notifications.

Every notification is acknowledged, whatever happens while handling it: a
non-2xx answer only makes the gateway retry the same body. Events are
stored once per body digest. Only events with a valid signature are ever
reconciled, and reconciliation re-reads the order from the gateway instead
of trusting the reported status.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...db import models
from .callbacks import (
    ORDER_ID_EXTRACTORS,
    STATUS_EXTRACTORS,
    CallbackParams,
    ProvisionalStatus,
    classify_status,
    first_match,
)
from .errors import ConfigurationError, TransportError
from .gateway import GatewayOk, GatewayOrderResult

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"
TIMESTAMP_HEADER = "x-webhook-timestamp"


@dataclass(frozen=True)
class WebhookAck:
    status: str = "ok"
    trusted: bool = False
    duplicate: bool = False


def compute_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    message = timestamp.encode("utf-8") + raw_body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(secret: str | None, timestamp: str | None, raw_body: bytes, signature: str | None) -> bool:
    if not secret or not timestamp or not signature:
        return False
    expected = compute_signature(secret, timestamp, raw_body)
    return hmac.compare_digest(expected, signature.strip())


def body_digest(raw_body: bytes) -> str:
    return hashlib.sha256(raw_body).hexdigest()


def _parse(raw_body: bytes) -> dict[str, Any] | None:
    try:
        data = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class WebhookIngestor:
    def __init__(self, db: Session, secret_provider: Callable[[], str | None]) -> None:
        self._db = db
        self._secret_provider = secret_provider

    def _secret(self) -> str | None:
        try:
            return self._secret_provider()
        except ConfigurationError as exc:
            logger.warning("No webhook secret available: %s", exc.message)
            return None

    def ingest(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookAck:
        try:
            return self._ingest(raw_body, {key.lower(): value for key, value in headers.items()})
        except Exception:
            self._db.rollback()
            logger.exception("Webhook processing failed, acknowledging anyway")
            return WebhookAck()

    def _ingest(self, raw_body: bytes, headers: dict[str, str]) -> WebhookAck:
        digest = body_digest(raw_body)
        existing = self._db.scalar(select(models.WebhookEvent).where(models.WebhookEvent.digest == digest))
        if existing is not None and existing.signature_valid:
            logger.info("Duplicate webhook ignored", extra={"digest": digest, "order_id": existing.order_id})
            return WebhookAck(trusted=True, duplicate=True)

        trusted = verify_signature(
            self._secret(),
            headers.get(TIMESTAMP_HEADER),
            raw_body,
            headers.get(SIGNATURE_HEADER),
        )
        if existing is not None:
            if trusted:
                return self._promote(existing, raw_body)
            logger.info("Duplicate webhook ignored", extra={"digest": digest, "order_id": existing.order_id})
            return WebhookAck(trusted=False, duplicate=True)

        payload = _parse(raw_body)
        params = CallbackParams(body=payload or {})
        order_match = first_match(ORDER_ID_EXTRACTORS, params)
        status_match = first_match(STATUS_EXTRACTORS, params)

        event = models.WebhookEvent(
            digest=digest,
            order_id=order_match[0][:64] if order_match else None,
            event_type=str(payload.get("type"))[:64] if payload and payload.get("type") else None,
            reported_status=status_match[0].upper()[:32] if status_match else None,
            signature_valid=trusted,
            payload=payload if payload is not None else {"raw": raw_body.decode("utf-8", "replace")},
        )
        if not trusted:
            event.state = models.WebhookEventState.rejected
            event.error = "invalid signature"
            logger.warning("Webhook signature rejected", extra={"digest": digest, "order_id": event.order_id})
        elif payload is None:
            event.state = models.WebhookEventState.failed
            event.error = "body is not a JSON object"
        elif not event.order_id:
            event.state = models.WebhookEventState.failed
            event.error = "no order reference"
        else:
            event.state = models.WebhookEventState.received

        self._db.add(event)
        try:
            self._db.commit()
        except IntegrityError:
            # Same body delivered concurrently
            self._db.rollback()
            return WebhookAck(trusted=trusted, duplicate=True)

        logger.info(
            "Webhook recorded",
            extra={
                "order_id": event.order_id,
                "event_type": event.event_type,
                "reported_status": event.reported_status,
                "state": event.state.value,
            },
        )
        return WebhookAck(trusted=trusted)

    def _promote(self, event: models.WebhookEvent, raw_body: bytes) -> WebhookAck:
        """A correctly signed copy of a body first stored as rejected."""

        event.signature_valid = True
        if _parse(raw_body) is None:
            event.state = models.WebhookEventState.failed
            event.error = "body is not a JSON object"
        elif not event.order_id:
            event.state = models.WebhookEventState.failed
            event.error = "no order reference"
        else:
            event.state = models.WebhookEventState.received
            event.error = None
        self._db.commit()
        logger.info(
            "Rejected webhook now verified",
            extra={"digest": event.digest, "order_id": event.order_id, "state": event.state.value},
        )
        return WebhookAck(trusted=True, duplicate=True)


def reconcile_pending_events(
    db: Session,
    fetch_status: Callable[[str], GatewayOrderResult],
    *,
    limit: int = 50,
) -> int:
    """Record the gateway's own status on trusted events that still lack it.

    Transport failures and rate limiting leave the event pending for the
    next run. Returns the number of events reconciled.
    """

    events = db.scalars(
        select(models.WebhookEvent)
        .where(
            models.WebhookEvent.state == models.WebhookEventState.received,
            models.WebhookEvent.signature_valid.is_(True),
        )
        .order_by(models.WebhookEvent.id)
        .limit(limit)
    ).all()

    reconciled = 0
    for event in events:
        try:
            result = fetch_status(event.order_id)
        except ConfigurationError as exc:
            logger.warning("Webhook reconciliation skipped: %s", exc.message)
            break

        if isinstance(result, GatewayOk):
            event.gateway_status = result.order_status[:32] or None
            event.state = models.WebhookEventState.reconciled
            event.error = None
            reconciled += 1
            reported = classify_status(event.reported_status)
            if reported is ProvisionalStatus.SUCCESS and event.gateway_status != "PAID":
                logger.warning(
                    "Webhook status disagrees with gateway",
                    extra={
                        "order_id": event.order_id,
                        "reported_status": event.reported_status,
                        "gateway_status": event.gateway_status,
                    },
                )
        elif isinstance(result, TransportError) or result.retryable:
            event.error = result.message[:255]
        else:
            event.state = models.WebhookEventState.failed
            event.error = f"{result.code}: {result.message}"[:255]
        db.commit()

    if events:
        logger.info("Webhook reconciliation run", extra={"pending": len(events), "reconciled": reconciled})
    return reconciled


__all__ = [
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "WebhookAck",
    "WebhookIngestor",
    "compute_signature",
    "verify_signature",
    "body_digest",
    "reconcile_pending_events",
]
