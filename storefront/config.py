from functools import lru_cache
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="storefront", alias="POSTGRES_DB")
    postgres_user: str = Field(default="storefront", alias="POSTGRES_USER")
    postgres_password: str = Field(default="storefront", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    cashfree_enabled: bool = Field(default=False, alias="CASHFREE_ENABLED")
    cashfree_client_id: str = Field(default="", alias="CASHFREE_CLIENT_ID")
    cashfree_client_secret: str = Field(default="", alias="CASHFREE_CLIENT_SECRET")
    cashfree_environment: str = Field(default="sandbox", alias="CASHFREE_ENVIRONMENT")
    cashfree_api_version: str = Field(default="2025-01-01", alias="CASHFREE_API_VERSION")
    # Deprecated names still found in older deployments
    cashfree_app_id: str = Field(default="", alias="CASHFREE_APP_ID")
    cashfree_secret_key: str = Field(default="", alias="CASHFREE_SECRET_KEY")

    payment_webhook_secret: str = Field(default="", alias="PAYMENT_WEBHOOK_SECRET")
    payment_max_amount: float = Field(default=999999, alias="PAYMENT_MAX_AMOUNT")
    payment_order_prefix: str = Field(default="order", alias="PAYMENT_ORDER_PREFIX")
    payment_methods: str = Field(default="cc,dc,nb,upi", alias="PAYMENT_METHODS")
    payment_return_path: str = Field(default="/api/v1/payments/return", alias="PAYMENT_RETURN_PATH")
    payment_webhook_path: str = Field(default="/api/v1/payments/webhook", alias="PAYMENT_WEBHOOK_PATH")

    client_url: str = Field(default="auto", alias="CLIENT_URL")
    server_url: str = Field(default="auto", alias="SERVER_URL")
    client_dev_port: int = Field(default=3000, alias="CLIENT_DEV_PORT")
    server_dev_port: int = Field(default=5001, alias="SERVER_DEV_PORT")

    credential_cache_ttl: float = Field(default=300, alias="CREDENTIAL_CACHE_TTL")
    gateway_create_attempts: int = Field(default=1, alias="GATEWAY_CREATE_ATTEMPTS")
    gateway_status_attempts: int = Field(default=2, alias="GATEWAY_STATUS_ATTEMPTS")
    gateway_retry_backoff: float = Field(default=0.5, alias="GATEWAY_RETRY_BACKOFF")

    webhook_reconcile_enabled: bool = Field(default=False, alias="WEBHOOK_RECONCILE_ENABLED")
    webhook_reconcile_interval_min: int = Field(default=10, alias="WEBHOOK_RECONCILE_INTERVAL_MIN")

    class Config:
        populate_by_name = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
