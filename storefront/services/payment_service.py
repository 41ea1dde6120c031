import logging
from typing import Any, Callable

from ..config import Settings
from ..db import schemas
from .payments.builder import CheckoutInput, CustomerInput, OrderPayloadBuilder
from .payments.credentials import CredentialResolver, Environment, GatewayCredentials
from .payments.errors import ConfigurationError
from .payments.gateway import GatewayClient, GatewayOk, checkout_url, with_retries
from .payments.reconciler import OrderStatus
from .payments.urls import RequestContext, UrlResolver

logger = logging.getLogger(__name__)


def to_checkout_input(request: schemas.CheckoutRequest) -> CheckoutInput:
    customer = None
    if request.customer is not None:
        customer = CustomerInput(
            phone=request.customer.phone,
            email=request.customer.email,
            name=request.customer.name,
            customer_id=request.customer.customer_id,
        )
    return CheckoutInput(
        amount=request.amount,
        customer=customer,
        order_id=request.order_id,
        currency=request.order_currency,
        order_note=request.order_note,
        order_expiry_time=request.order_expiry_time,
        cart_details=request.cart_details,
        order_tags=request.order_tags,
    )


def create_order(
    checkout: CheckoutInput,
    ctx: RequestContext,
    *,
    resolver: CredentialResolver,
    url_resolver: UrlResolver,
    builder: OrderPayloadBuilder,
    client: GatewayClient,
    attempts: int = 1,
    backoff: float = 0.5,
    sleep: Callable[[float], None] | None = None,
) -> dict[str, Any]:
    """Create a gateway order for a checkout.

    Raises ``ConfigurationError`` before any network call when the gateway
    is disabled or unconfigured, ``ValidationError`` for bad input, and
    returns the gateway's order body otherwise. Gateway and transport
    failures are raised as the error values the client returned.
    """
    credentials = resolver.resolve()
    urls = url_resolver.callback_urls(ctx, credentials.environment)
    payload = builder.build(checkout, credentials, urls)

    retry_kwargs: dict[str, Any] = {"attempts": attempts, "backoff": backoff}
    if sleep is not None:
        retry_kwargs["sleep"] = sleep
    result = with_retries(lambda: client.create_order(payload, credentials), **retry_kwargs)
    if not isinstance(result, GatewayOk):
        raise result

    body = dict(result.body)
    session_id = body.get("payment_session_id")
    body.setdefault("order_id", payload["order_id"])
    body["environment"] = credentials.environment.value
    body["api_version"] = client.api_version
    body["checkout_url"] = checkout_url(session_id, credentials) if session_id else None
    logger.info(
        "Gateway order created",
        extra={
            "order_id": body["order_id"],
            "cf_order_id": body.get("cf_order_id"),
            "environment": credentials.environment.value,
        },
    )
    return body


def fetch_order(
    order_id: str,
    *,
    resolver: CredentialResolver,
    client: GatewayClient,
    attempts: int = 1,
    backoff: float = 0.5,
    sleep: Callable[[float], None] | None = None,
) -> tuple[GatewayCredentials, dict[str, Any]]:
    credentials = resolver.resolve()
    retry_kwargs: dict[str, Any] = {"attempts": attempts, "backoff": backoff}
    if sleep is not None:
        retry_kwargs["sleep"] = sleep
    result = with_retries(lambda: client.get_order_status(order_id, credentials), **retry_kwargs)
    if not isinstance(result, GatewayOk):
        raise result
    return credentials, result.body


def verification_summary(order_id: str, body: dict[str, Any]) -> dict[str, Any]:
    status = str(body.get("order_status") or "").upper()
    return {
        "order_id": str(body.get("order_id") or order_id),
        "order_status": status,
        "is_paid": status == OrderStatus.PAID.value,
        "is_active": status == OrderStatus.ACTIVE.value,
        "is_expired": status == OrderStatus.EXPIRED.value,
        "is_terminated": status == OrderStatus.TERMINATED.value,
        "order_amount": body.get("order_amount"),
        "order_currency": body.get("order_currency"),
    }


def public_config(resolver: CredentialResolver, settings: Settings) -> dict[str, Any]:
    """Non-sensitive gateway state for the checkout page. Never raises."""
    try:
        credentials = resolver.resolve()
    except ConfigurationError as exc:
        try:
            environment = Environment.parse(settings.cashfree_environment).value
        except ConfigurationError:
            environment = Environment.sandbox.value
        return {
            "enabled": exc.reason != ConfigurationError.DISABLED,
            "is_configured": False,
            "environment": environment,
            "api_version": settings.cashfree_api_version,
        }
    except Exception:
        logger.exception("Failed to read payment configuration")
        return {
            "enabled": False,
            "is_configured": False,
            "environment": Environment.sandbox.value,
            "api_version": settings.cashfree_api_version,
        }
    return {
        "enabled": credentials.enabled,
        "is_configured": True,
        "environment": credentials.environment.value,
        "api_version": settings.cashfree_api_version,
    }


def storefront_url(ctx: RequestContext, url_resolver: UrlResolver, resolver: CredentialResolver) -> str:
    try:
        environment = resolver.resolve().environment
    except ConfigurationError:
        environment = None
    return url_resolver.resolve_client_url(ctx, environment)


def webhook_secret(settings: Settings, resolver: CredentialResolver) -> str | None:
    if settings.payment_webhook_secret.strip():
        return settings.payment_webhook_secret.strip()
    return resolver.resolve().client_secret


__all__ = [
    "to_checkout_input",
    "create_order",
    "fetch_order",
    "verification_summary",
    "public_config",
    "storefront_url",
    "webhook_secret",
]
