"""Common application-wide constants."""

from datetime import timedelta

SANDBOX_BASE_URL = "https://sandbox.cashfree.com/pg"
LIVE_BASE_URL = "https://api.cashfree.com/pg"
SANDBOX_CHECKOUT_URL = "https://sandbox.cashfree.com/pg/view/sessions/checkout/web"
LIVE_CHECKOUT_URL = "https://api.cashfree.com/pg/view/sessions/checkout/web"

CREATE_ORDER_TIMEOUT = 15.0
ORDER_STATUS_TIMEOUT = 10.0

# Orders left unpaid expire on the gateway side after this window
DEFAULT_ORDER_EXPIRY = timedelta(hours=24)

SUPPORTED_CURRENCIES = ("INR", "USD", "EUR")
DEFAULT_CURRENCY = "INR"
DEFAULT_ORDER_NOTE = "Payment for order"

ORDER_ID_MIN_LENGTH = 3
ORDER_ID_MAX_LENGTH = 45
CUSTOMER_NAME_MIN_LENGTH = 2
CUSTOMER_NAME_MAX_LENGTH = 100

LOOPBACK_HOSTS = ("localhost", "127.0.0.1", "[::1]")

# Storefront destinations the return flow redirects to
SUCCESS_PATH = "/thankyou"
FAILURE_PATH = "/cart"

# Machine-readable reasons carried in the failure redirect
ERROR_MISSING_ORDER_ID = "missing_order_id"
ERROR_PAYMENT_FAILED = "payment_failed"
ERROR_VERIFICATION_FAILED = "payment_verification_failed"


__all__ = [
    "SANDBOX_BASE_URL",
    "LIVE_BASE_URL",
    "SANDBOX_CHECKOUT_URL",
    "LIVE_CHECKOUT_URL",
    "CREATE_ORDER_TIMEOUT",
    "ORDER_STATUS_TIMEOUT",
    "DEFAULT_ORDER_EXPIRY",
    "SUPPORTED_CURRENCIES",
    "DEFAULT_CURRENCY",
    "DEFAULT_ORDER_NOTE",
    "ORDER_ID_MIN_LENGTH",
    "ORDER_ID_MAX_LENGTH",
    "CUSTOMER_NAME_MIN_LENGTH",
    "CUSTOMER_NAME_MAX_LENGTH",
    "LOOPBACK_HOSTS",
    "SUCCESS_PATH",
    "FAILURE_PATH",
    "ERROR_MISSING_ORDER_ID",
    "ERROR_PAYMENT_FAILED",
    "ERROR_VERIFICATION_FAILED",
]
