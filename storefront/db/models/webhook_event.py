from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Boolean, DateTime, Enum, Integer, JSON, String, func
from sqlalchemy.orm import Mapped, mapped_column
from ..session import Base


class WebhookEventState(str, PyEnum):
    received = "received"
    rejected = "rejected"
    reconciled = "reconciled"
    failed = "failed"


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    digest: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    order_id: Mapped[str | None] = mapped_column(String(64), index=True)
    event_type: Mapped[str | None] = mapped_column(String(64))
    reported_status: Mapped[str | None] = mapped_column(String(32))
    gateway_status: Mapped[str | None] = mapped_column(String(32))
    signature_valid: Mapped[bool] = mapped_column(Boolean, default=False)
    state: Mapped[WebhookEventState] = mapped_column(
        Enum(WebhookEventState), default=WebhookEventState.received
    )
    error: Mapped[str | None] = mapped_column(String(255))
    payload: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
