from storefront.config import Settings
from storefront.db.session import database_url


def test_settings_read_environment_names():
    settings = Settings(
        **{
            "CASHFREE_ENABLED": "true",
            "CASHFREE_CLIENT_ID": "ENVCLIENT",
            "CASHFREE_ENVIRONMENT": "live",
            "PAYMENT_MAX_AMOUNT": "5000",
            "GATEWAY_STATUS_ATTEMPTS": "3",
            "UNRELATED_VARIABLE": "ignored",
        }
    )
    assert settings.cashfree_enabled is True
    assert settings.cashfree_client_id == "ENVCLIENT"
    assert settings.cashfree_environment == "live"
    assert settings.payment_max_amount == 5000
    assert settings.gateway_status_attempts == 3


def test_defaults():
    settings = Settings()
    assert settings.cashfree_enabled is False
    assert settings.cashfree_api_version == "2025-01-01"
    assert settings.client_url == "auto"
    assert settings.payment_return_path == "/api/v1/payments/return"


def test_database_url_prefers_explicit_value():
    assert database_url(Settings(database_url="sqlite:///./shop.db")) == "sqlite:///./shop.db"
    composed = database_url(Settings(postgres_host="db", postgres_port=5433))
    assert composed == "postgresql+psycopg2://storefront:storefront@db:5433/storefront"
