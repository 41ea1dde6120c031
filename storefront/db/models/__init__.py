from .gateway_config import GatewayConfig, DEFAULT_CONFIG_NAME
from .webhook_event import WebhookEvent, WebhookEventState
