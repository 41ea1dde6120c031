from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..db import models
from .payments.credentials import CredentialCache

logger = logging.getLogger(__name__)


def get_active_config(
    db: Session, config_name: str = models.DEFAULT_CONFIG_NAME
) -> models.GatewayConfig | None:
    return db.get(models.GatewayConfig, config_name)


def save_gateway_config(
    db: Session,
    *,
    client_id: str,
    client_secret: str,
    environment: str,
    enabled: bool,
    config_name: str = models.DEFAULT_CONFIG_NAME,
    cache: CredentialCache | None = None,
) -> models.GatewayConfig:
    config = db.get(models.GatewayConfig, config_name)
    if not config:
        config = models.GatewayConfig(config_name=config_name)
        db.add(config)
    config.client_id = client_id.strip()
    config.client_secret = client_secret.strip()
    config.environment = environment.strip().lower()
    config.enabled = enabled
    db.commit()
    db.refresh(config)
    # Rotated credentials must apply to the very next request
    if cache is not None:
        cache.invalidate()
    logger.info(
        "Gateway configuration saved",
        extra={"config_name": config_name, "environment": config.environment, "enabled": enabled},
    )
    return config


__all__ = [
    "get_active_config",
    "save_gateway_config",
]
