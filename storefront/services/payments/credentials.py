"""Gateway credential resolution.

Credentials come from the persisted ``gateway_configs`` record first and
from process settings second, so an admin can rotate keys without a
redeploy. Resolution fails closed: a disabled gateway or a blank key is an
error, never a silent fallback.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from ...config import Settings
from ...core.constants import LIVE_BASE_URL, SANDBOX_BASE_URL
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    sandbox = "sandbox"
    live = "live"

    @classmethod
    def parse(cls, value: str | None) -> "Environment":
        normalized = (value or "").strip().lower()
        if normalized in ("", "sandbox", "test", "testing"):
            return cls.sandbox
        if normalized in ("live", "production", "prod"):
            return cls.live
        raise ConfigurationError(f"Unknown gateway environment {value!r}")


@dataclass(frozen=True)
class GatewayCredentials:
    client_id: str
    client_secret: str
    environment: Environment
    enabled: bool

    @property
    def is_live(self) -> bool:
        return self.environment == Environment.live

    @property
    def base_url(self) -> str:
        return LIVE_BASE_URL if self.is_live else SANDBOX_BASE_URL

    @property
    def masked_client_id(self) -> str:
        return f"{self.client_id[:8]}..."


class StoredConfig(Protocol):
    client_id: str
    client_secret: str
    environment: str
    enabled: bool


class CredentialCache:
    """Holds the last resolved credentials until they expire or are invalidated.

    ``ttl`` of ``None`` keeps the entry until :meth:`invalidate` is called.
    """

    def __init__(self, ttl: float | None = 300, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._value: GatewayCredentials | None = None
        self._loaded_at = 0.0

    def _fresh(self) -> bool:
        if self._value is None:
            return False
        if self._ttl is None:
            return True
        return self._clock() - self._loaded_at < self._ttl

    def get_or_load(self, loader: Callable[[], GatewayCredentials]) -> GatewayCredentials:
        with self._lock:
            if self._fresh():
                return self._value  # type: ignore[return-value]
            value = loader()
            self._value = value
            self._loaded_at = self._clock()
            return value

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self._loaded_at = 0.0


def _pick(stored: Any, field: str, fallback: str) -> str:
    value = getattr(stored, field, None) if stored is not None else None
    value = str(value).strip() if value is not None else ""
    return value or fallback


class CredentialResolver:
    def __init__(
        self,
        config_provider: Callable[[], StoredConfig | None],
        settings: Settings,
        cache: CredentialCache | None = None,
    ) -> None:
        self._config_provider = config_provider
        self._settings = settings
        self._cache = cache

    def resolve(self) -> GatewayCredentials:
        if self._cache is None:
            return self._load()
        return self._cache.get_or_load(self._load)

    def _env_credential(self, canonical: str, deprecated: str, canonical_name: str, deprecated_name: str) -> str:
        if canonical.strip():
            return canonical.strip()
        if deprecated.strip():
            logger.warning(
                "Deprecated gateway setting in use",
                extra={"deprecated": deprecated_name, "replacement": canonical_name},
            )
            return deprecated.strip()
        return ""

    def _load(self) -> GatewayCredentials:
        settings = self._settings
        stored = self._config_provider()

        env_client_id = self._env_credential(
            settings.cashfree_client_id, settings.cashfree_app_id, "CASHFREE_CLIENT_ID", "CASHFREE_APP_ID"
        )
        env_client_secret = self._env_credential(
            settings.cashfree_client_secret,
            settings.cashfree_secret_key,
            "CASHFREE_CLIENT_SECRET",
            "CASHFREE_SECRET_KEY",
        )

        client_id = _pick(stored, "client_id", env_client_id)
        client_secret = _pick(stored, "client_secret", env_client_secret)
        environment = Environment.parse(_pick(stored, "environment", settings.cashfree_environment))
        enabled = bool(stored.enabled) if stored is not None else settings.cashfree_enabled

        source = "database" if stored is not None else "environment"
        if not enabled:
            logger.warning("Payment gateway is disabled", extra={"source": source})
            raise ConfigurationError("Payment gateway is disabled", reason=ConfigurationError.DISABLED)
        if not client_id or not client_secret:
            logger.error("Payment gateway credentials not configured", extra={"source": source})
            raise ConfigurationError("Payment gateway credentials not configured")

        credentials = GatewayCredentials(
            client_id=client_id,
            client_secret=client_secret,
            environment=environment,
            enabled=enabled,
        )
        logger.info(
            "Gateway credentials resolved",
            extra={
                "source": source,
                "environment": environment.value,
                "client_id": credentials.masked_client_id,
            },
        )
        return credentials


__all__ = [
    "Environment",
    "GatewayCredentials",
    "CredentialCache",
    "CredentialResolver",
]
