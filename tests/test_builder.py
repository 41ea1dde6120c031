from datetime import datetime, timezone
import re

import pytest

from storefront.services.payments import (
    CallbackUrls,
    CheckoutInput,
    CustomerInput,
    Environment,
    GatewayCredentials,
    OrderPayloadBuilder,
    ValidationError,
)

NOW = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone.utc)
SANDBOX = GatewayCredentials("CLIENT", "SECRET", Environment.sandbox, True)
LIVE = GatewayCredentials("CLIENT", "SECRET", Environment.live, True)
URLS = CallbackUrls(
    return_url="http://localhost:5001/api/v1/payments/return",
    notify_url="http://localhost:5001/api/v1/payments/webhook",
)


def make_builder(**kwargs):
    kwargs.setdefault("clock", lambda: NOW)
    kwargs.setdefault("token", lambda size: "x" * size)
    return OrderPayloadBuilder(**kwargs)


def checkout(**overrides):
    values = {
        "amount": 499,
        "customer": CustomerInput(phone="9876543210", email="asha@example.com", name="Asha"),
    }
    values.update(overrides)
    return CheckoutInput(**values)


def fields(errors):
    return [error["field"] for error in errors]


def test_valid_payload_shape():
    payload = make_builder().build(checkout(order_note="Two mugs"), SANDBOX, URLS)

    assert payload["order_id"] == f"order_{int(NOW.timestamp() * 1000)}_xxxxxxxxx"
    assert payload["order_amount"] == 499.0
    assert payload["order_currency"] == "INR"
    assert payload["order_note"] == "Two mugs"
    assert payload["order_expiry_time"] == "2026-10-17T12:00:00+00:00"
    assert payload["customer_details"]["customer_phone"] == "9876543210"
    assert payload["customer_details"]["customer_email"] == "asha@example.com"
    assert payload["customer_details"]["customer_name"] == "Asha"
    assert re.fullmatch(r"CUST_[0-9a-f]{8}_\d+", payload["customer_details"]["customer_id"])
    assert payload["order_meta"] == {
        "return_url": URLS.return_url,
        "notify_url": URLS.notify_url,
        "payment_methods": "cc,dc,nb,upi",
    }
    assert "cart_details" not in payload


def test_amount_rounded_to_two_decimals():
    payload = make_builder().build(checkout(amount="10.005"), SANDBOX, URLS)
    assert payload["order_amount"] == 10.01


def test_defaults_for_optional_fields():
    payload = make_builder().build(checkout(customer=CustomerInput(phone="6123456789")), SANDBOX, URLS)
    assert payload["order_note"] == "Payment for order"
    assert set(payload["customer_details"]) == {"customer_id", "customer_phone"}


def test_live_forces_https_callbacks():
    payload = make_builder().build(checkout(), LIVE, URLS)
    assert payload["order_meta"]["return_url"] == "https://localhost:5001/api/v1/payments/return"
    assert payload["order_meta"]["notify_url"] == "https://localhost:5001/api/v1/payments/webhook"


@pytest.mark.parametrize("amount", [0, -5, "0.00", None, "abc", "NaN", True])
def test_invalid_amount(amount):
    errors = make_builder().validate(checkout(amount=amount))
    assert fields(errors) == ["amount"]


def test_amount_above_maximum():
    builder = make_builder(max_amount=1000)
    assert fields(builder.validate(checkout(amount=1000))) == []
    errors = builder.validate(checkout(amount=1000.01))
    assert errors == [{"field": "amount", "message": "Amount exceeds maximum limit"}]


def test_customer_required():
    assert fields(make_builder().validate(checkout(customer=None))) == ["customer"]


@pytest.mark.parametrize("phone", ["", "12345", "5123456789", "98765432101", "+919876543210", "98765-43210"])
def test_invalid_phone(phone):
    errors = make_builder().validate(checkout(customer=CustomerInput(phone=phone)))
    assert fields(errors) == ["customer.phone"]


@pytest.mark.parametrize("phone", ["6000000000", "7123456789", "8123456789", "9876543210"])
def test_valid_phone(phone):
    assert make_builder().validate(checkout(customer=CustomerInput(phone=phone))) == []


def test_invalid_email_and_name():
    customer = CustomerInput(phone="9876543210", email="not-an-email", name="A")
    assert fields(make_builder().validate(checkout(customer=customer))) == ["customer.email", "customer.name"]


@pytest.mark.parametrize("order_id", ["ab", "x" * 46, "order#1", "order 1"])
def test_invalid_order_id(order_id):
    assert "order_id" in fields(make_builder().validate(checkout(order_id=order_id)))


def test_unsupported_currency():
    assert fields(make_builder().validate(checkout(currency="GBP"))) == ["order_currency"]
    assert make_builder().validate(checkout(currency="usd")) == []


def test_errors_are_collected_together():
    errors = make_builder().validate(checkout(amount=0, customer=CustomerInput(phone="1"), currency="XYZ"))
    assert fields(errors) == ["amount", "customer.phone", "order_currency"]


def test_build_raises_validation_error():
    with pytest.raises(ValidationError) as excinfo:
        make_builder().build(checkout(amount=-1), SANDBOX, URLS)
    assert excinfo.value.errors[0]["field"] == "amount"


def test_caller_customer_id_kept():
    customer = CustomerInput(phone="9876543210", customer_id="shopper_7")
    payload = make_builder().build(checkout(customer=customer), SANDBOX, URLS)
    assert payload["customer_details"]["customer_id"] == "shopper_7"


def test_order_prefix_sanitized():
    builder = make_builder(order_prefix="shop #1!")
    assert builder.generate_order_id(NOW).startswith("shop1_")


def test_cart_details_and_tags_passed_through():
    payload = make_builder().build(
        checkout(cart_details={"cart_name": "mugs"}, order_tags={"channel": "web"}), SANDBOX, URLS
    )
    assert payload["cart_details"] == {"cart_name": "mugs"}
    assert payload["order_tags"] == {"channel": "web"}


@pytest.mark.parametrize("first_digit", "0123456789")
def test_phone_leading_digit_rule(first_digit):
    errors = make_builder().validate(checkout(customer=CustomerInput(phone=f"{first_digit}123456789")))
    assert (errors == []) is (first_digit in "6789")


def test_generated_order_for_minimal_sandbox_checkout():
    builder = OrderPayloadBuilder()
    payload = builder.build(checkout(amount=100, customer=CustomerInput(phone="9999999999")), SANDBOX, URLS)
    assert re.fullmatch(r"[a-zA-Z0-9_-]{3,45}", payload["order_id"])
    assert payload["order_amount"] == 100


def test_identical_retries_differ_only_in_expiry():
    later = datetime(2026, 10, 16, 13, 0, 0, tzinfo=timezone.utc)
    first = make_builder(clock=lambda: NOW).build(checkout(order_id="cart_42"), SANDBOX, URLS)
    second = make_builder(clock=lambda: later).build(checkout(order_id="cart_42"), SANDBOX, URLS)
    first.pop("order_expiry_time")
    second.pop("order_expiry_time")
    assert first == second


def test_build_rejects_missing_customer_even_if_validation_passes():
    class LenientBuilder(OrderPayloadBuilder):
        def validate(self, checkout):
            return []

    with pytest.raises(ValidationError) as excinfo:
        LenientBuilder().build(checkout(customer=None), SANDBOX, URLS)
    assert fields(excinfo.value.errors) == ["customer"]
