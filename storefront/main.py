import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import payments
from .config import get_settings
from .db.session import Base, engine
from .services.payments import CredentialCache
from .workers.scheduler import get_scheduler

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Payments API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments.router, prefix="/api/v1")

app.state.credential_cache = CredentialCache(ttl=settings.credential_cache_ttl)


@app.on_event("startup")
async def startup_event() -> None:
    Base.metadata.create_all(bind=engine)
    if settings.webhook_reconcile_enabled:
        scheduler = get_scheduler(settings, app.state.credential_cache)
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info(
            "Webhook reconciliation scheduled",
            extra={"interval_min": settings.webhook_reconcile_interval_min},
        )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)
