import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from ...api import deps
from ...config import Settings, get_settings
from ...db import schemas
from ...services import payment_service
from ...services.payments import (
    CallbackParams,
    ConfigurationError,
    CredentialCache,
    CredentialResolver,
    FinalOutcome,
    GatewayClient,
    GatewayError,
    OrderPayloadBuilder,
    OrderStatus,
    PaymentError,
    RequestContext,
    ReturnCallbackHandler,
    TransportError,
    UrlResolver,
    ValidationError,
    WebhookIngestor,
    checkout_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

UNAVAILABLE_MESSAGE = "Online payments are currently unavailable"
UNREACHABLE_MESSAGE = "Payment gateway is unreachable, please retry"


def _http_error(exc: PaymentError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail={"code": exc.code, "message": UNAVAILABLE_MESSAGE})
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=422,
            detail={"code": exc.code, "message": exc.message, "errors": exc.errors},
        )
    if isinstance(exc, TransportError):
        return HTTPException(status_code=504, detail={"code": exc.code, "message": UNREACHABLE_MESSAGE})
    if isinstance(exc, GatewayError):
        status_code = exc.http_status if 400 <= exc.http_status < 500 else 502
        return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})
    return HTTPException(status_code=500, detail={"code": exc.code, "message": exc.message})


@router.get("/config", response_model=schemas.PaymentConfig)
def get_payment_config(
    resolver: CredentialResolver = Depends(deps.get_credential_resolver),
    settings: Settings = Depends(get_settings),
):
    return payment_service.public_config(resolver, settings)


@router.post("/config/refresh", status_code=204)
def refresh_payment_config(cache: CredentialCache = Depends(deps.get_credential_cache)):
    """Drop cached credentials after `gateway_configs` was edited outside this app."""
    cache.invalidate()
    logger.info("Gateway credential cache invalidated")


@router.post("/orders", response_model=schemas.OrderCreated)
def create_order_endpoint(
    payload: schemas.CheckoutRequest,
    request: Request,
    resolver: CredentialResolver = Depends(deps.get_credential_resolver),
    url_resolver: UrlResolver = Depends(deps.get_url_resolver),
    builder: OrderPayloadBuilder = Depends(deps.get_payload_builder),
    client: GatewayClient = Depends(deps.get_gateway_client),
    settings: Settings = Depends(get_settings),
):
    try:
        return payment_service.create_order(
            payment_service.to_checkout_input(payload),
            RequestContext.from_request(request),
            resolver=resolver,
            url_resolver=url_resolver,
            builder=builder,
            client=client,
            attempts=settings.gateway_create_attempts,
            backoff=settings.gateway_retry_backoff,
        )
    except PaymentError as exc:
        raise _http_error(exc) from exc


@router.get("/verify/{order_id}", response_model=schemas.OrderVerification)
def verify_order(
    order_id: str,
    resolver: CredentialResolver = Depends(deps.get_credential_resolver),
    client: GatewayClient = Depends(deps.get_gateway_client),
    settings: Settings = Depends(get_settings),
):
    try:
        _, body = payment_service.fetch_order(
            order_id,
            resolver=resolver,
            client=client,
            attempts=settings.gateway_status_attempts,
            backoff=settings.gateway_retry_backoff,
        )
    except PaymentError as exc:
        raise _http_error(exc) from exc
    return payment_service.verification_summary(order_id, body)


@router.get("/checkout/{order_id}")
def redirect_to_checkout(
    order_id: str,
    resolver: CredentialResolver = Depends(deps.get_credential_resolver),
    client: GatewayClient = Depends(deps.get_gateway_client),
    settings: Settings = Depends(get_settings),
):
    try:
        credentials, body = payment_service.fetch_order(
            order_id,
            resolver=resolver,
            client=client,
            attempts=settings.gateway_status_attempts,
            backoff=settings.gateway_retry_backoff,
        )
    except PaymentError as exc:
        raise _http_error(exc) from exc
    session_id = body.get("payment_session_id")
    status = str(body.get("order_status") or "").upper()
    if status != OrderStatus.ACTIVE.value or not session_id:
        raise HTTPException(status_code=409, detail="Order is not awaiting payment")
    return RedirectResponse(checkout_url(session_id, credentials), status_code=302)


async def _callback_body(request: Request) -> dict[str, Any]:
    if request.method != "POST":
        return {}
    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        data = await request.json()
        return data if isinstance(data, dict) else {}
    if "form" in content_type:
        form = await request.form()
        return {key: value for key, value in form.items()}
    return {}


def _complete_return(
    handler: ReturnCallbackHandler,
    params: CallbackParams,
    ctx: RequestContext,
    url_resolver: UrlResolver,
    resolver: CredentialResolver,
) -> FinalOutcome:
    try:
        client_url = payment_service.storefront_url(ctx, url_resolver, resolver)
    except Exception:
        logger.exception("Falling back to detected storefront URL")
        client_url = url_resolver.resolve_client_url(ctx)
    return handler.handle(params, client_url)


@router.api_route("/return", methods=["GET", "POST"])
async def payment_return(
    request: Request,
    handler: ReturnCallbackHandler = Depends(deps.get_return_handler),
    url_resolver: UrlResolver = Depends(deps.get_url_resolver),
    resolver: CredentialResolver = Depends(deps.get_credential_resolver),
):
    try:
        body = await _callback_body(request)
    except Exception:
        logger.exception("Unreadable payment return body")
        body = {}
    params = CallbackParams(query=dict(request.query_params), body=body)
    ctx = RequestContext.from_request(request)
    # Gateway status lookups block, keep them off the event loop
    outcome = await run_in_threadpool(_complete_return, handler, params, ctx, url_resolver, resolver)
    return RedirectResponse(outcome.redirect_target, status_code=302)


@router.post("/webhook", response_model=schemas.WebhookAck)
async def payments_webhook(
    request: Request,
    ingestor: WebhookIngestor = Depends(deps.get_webhook_ingestor),
):
    raw_body = await request.body()
    ack = await run_in_threadpool(ingestor.ingest, raw_body, dict(request.headers))
    return {"status": ack.status}
