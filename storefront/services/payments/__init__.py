from .builder import CheckoutInput, CustomerInput, OrderPayloadBuilder
from .callbacks import CallbackOutcome, CallbackParams, ReturnCallbackHandler
from .credentials import CredentialCache, CredentialResolver, Environment, GatewayCredentials
from .errors import (
    CallbackAmbiguityError,
    ConfigurationError,
    GatewayError,
    PaymentError,
    TransportError,
    ValidationError,
)
from .gateway import GatewayClient, GatewayOk, GatewayOrderResult, checkout_url, with_retries
from .reconciler import FinalOutcome, OrderStatus, VerificationReconciler
from .urls import CallbackUrls, RequestContext, UrlResolver
from .webhooks import WebhookAck, WebhookIngestor, reconcile_pending_events

__all__ = [
    "CheckoutInput",
    "CustomerInput",
    "OrderPayloadBuilder",
    "CallbackOutcome",
    "CallbackParams",
    "ReturnCallbackHandler",
    "CredentialCache",
    "CredentialResolver",
    "Environment",
    "GatewayCredentials",
    "CallbackAmbiguityError",
    "ConfigurationError",
    "GatewayError",
    "PaymentError",
    "TransportError",
    "ValidationError",
    "GatewayClient",
    "GatewayOk",
    "GatewayOrderResult",
    "checkout_url",
    "with_retries",
    "FinalOutcome",
    "OrderStatus",
    "VerificationReconciler",
    "CallbackUrls",
    "RequestContext",
    "UrlResolver",
    "WebhookAck",
    "WebhookIngestor",
    "reconcile_pending_events",
]
