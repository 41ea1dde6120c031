import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import Settings, get_settings
from ..db.session import SessionLocal
from ..services import settings_service
from ..services.payments import (
    CredentialCache,
    CredentialResolver,
    GatewayClient,
    VerificationReconciler,
    reconcile_pending_events,
)

logger = logging.getLogger(__name__)


def reconcile_webhooks(cache: CredentialCache | None = None, session_factory=SessionLocal) -> int:
    settings = get_settings()
    with session_factory() as db:
        resolver = CredentialResolver(lambda: settings_service.get_active_config(db), settings, cache)
        reconciler = VerificationReconciler(
            GatewayClient(api_version=settings.cashfree_api_version),
            resolver.resolve,
            attempts=settings.gateway_status_attempts,
            backoff=settings.gateway_retry_backoff,
        )
        return reconcile_pending_events(db, reconciler.fetch_status)


def get_scheduler(settings: Settings, cache: CredentialCache | None = None) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        reconcile_webhooks,
        "interval",
        minutes=settings.webhook_reconcile_interval_min,
        kwargs={"cache": cache},
    )
    return scheduler
