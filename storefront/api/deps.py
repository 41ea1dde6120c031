from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..db.session import get_db
from ..services import payment_service, settings_service
from ..services.payments import (
    CredentialCache,
    CredentialResolver,
    GatewayClient,
    OrderPayloadBuilder,
    ReturnCallbackHandler,
    UrlResolver,
    VerificationReconciler,
    WebhookIngestor,
)


def get_credential_cache(request: Request) -> CredentialCache:
    cache = getattr(request.app.state, "credential_cache", None)
    if cache is None:
        cache = CredentialCache(ttl=get_settings().credential_cache_ttl)
        request.app.state.credential_cache = cache
    return cache


def get_credential_resolver(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    cache: Annotated[CredentialCache, Depends(get_credential_cache)],
) -> CredentialResolver:
    return CredentialResolver(lambda: settings_service.get_active_config(db), settings, cache)


def get_url_resolver(settings: Annotated[Settings, Depends(get_settings)]) -> UrlResolver:
    return UrlResolver(settings)


def get_gateway_client(settings: Annotated[Settings, Depends(get_settings)]) -> GatewayClient:
    return GatewayClient(api_version=settings.cashfree_api_version)


def get_payload_builder(settings: Annotated[Settings, Depends(get_settings)]) -> OrderPayloadBuilder:
    return OrderPayloadBuilder(
        max_amount=settings.payment_max_amount,
        order_prefix=settings.payment_order_prefix,
        payment_methods=settings.payment_methods,
    )


def get_reconciler(
    client: Annotated[GatewayClient, Depends(get_gateway_client)],
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> VerificationReconciler:
    return VerificationReconciler(
        client,
        resolver.resolve,
        attempts=settings.gateway_status_attempts,
        backoff=settings.gateway_retry_backoff,
    )


def get_return_handler(
    reconciler: Annotated[VerificationReconciler, Depends(get_reconciler)],
) -> ReturnCallbackHandler:
    return ReturnCallbackHandler(reconciler)


def get_webhook_ingestor(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
) -> WebhookIngestor:
    return WebhookIngestor(db, lambda: payment_service.webhook_secret(settings, resolver))
