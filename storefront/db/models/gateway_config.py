from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..session import Base

DEFAULT_CONFIG_NAME = "default"


class GatewayConfig(Base):
    """Admin-managed gateway credentials, one row per configuration name."""

    __tablename__ = "gateway_configs"

    config_name: Mapped[str] = mapped_column(String(64), primary_key=True, default=DEFAULT_CONFIG_NAME)
    client_id: Mapped[str] = mapped_column(String(128), default="")
    client_secret: Mapped[str] = mapped_column(String(256), default="")
    environment: Mapped[str] = mapped_column(String(16), default="sandbox")
    enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
