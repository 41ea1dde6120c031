"""Order-creation payload assembly.

The builder only validates and shapes data; it performs no I/O so every rule
can be exercised without a gateway or a database. Time and randomness are
injectable for the same reason.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable

from ...core.constants import (
    CUSTOMER_NAME_MAX_LENGTH,
    CUSTOMER_NAME_MIN_LENGTH,
    DEFAULT_CURRENCY,
    DEFAULT_ORDER_EXPIRY,
    DEFAULT_ORDER_NOTE,
    ORDER_ID_MAX_LENGTH,
    ORDER_ID_MIN_LENGTH,
    SUPPORTED_CURRENCIES,
)
from .credentials import GatewayCredentials
from .errors import ValidationError
from .urls import CallbackUrls, force_https

PHONE_PATTERN = re.compile(r"[6-9]\d{9}", re.ASCII)
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
ORDER_ID_CHARSET = re.compile(r"[A-Za-z0-9_-]+")

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_PREFIX_MAX_LENGTH = 20


@dataclass
class CustomerInput:
    phone: str | None = None
    email: str | None = None
    name: str | None = None
    customer_id: str | None = None


@dataclass
class CheckoutInput:
    amount: Any
    customer: CustomerInput | None
    order_id: str | None = None
    currency: str | None = None
    order_note: str | None = None
    order_expiry_time: str | None = None
    payment_methods: str | None = None
    cart_details: dict[str, Any] | None = None
    order_tags: dict[str, str] | None = None


def _error(field_name: str, message: str) -> dict[str, str]:
    return {"field": field_name, "message": message}


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class OrderPayloadBuilder:
    def __init__(
        self,
        *,
        max_amount: float | Decimal = 999999,
        order_prefix: str = "order",
        payment_methods: str = "cc,dc,nb,upi",
        clock: Callable[[], datetime] | None = None,
        token: Callable[[int], str] | None = None,
    ) -> None:
        self.max_amount = Decimal(str(max_amount))
        prefix = re.sub(r"[^A-Za-z0-9_-]", "", order_prefix or "")[:_PREFIX_MAX_LENGTH]
        self.order_prefix = prefix or "order"
        self.payment_methods = payment_methods
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token = token or (
            lambda size: "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(size))
        )

    def validate(self, checkout: CheckoutInput) -> list[dict[str, str]]:
        errors: list[dict[str, str]] = []

        amount = _to_decimal(checkout.amount)
        if amount is None:
            errors.append(_error("amount", "Amount is required and must be a number"))
        elif amount <= 0:
            errors.append(_error("amount", "Amount must be greater than zero"))
        elif amount > self.max_amount:
            errors.append(_error("amount", "Amount exceeds maximum limit"))

        customer = checkout.customer
        if customer is None:
            errors.append(_error("customer", "Customer details are required"))
        else:
            phone = _clean(customer.phone)
            if not phone:
                errors.append(_error("customer.phone", "Customer phone number is required"))
            elif not PHONE_PATTERN.fullmatch(phone):
                errors.append(
                    _error("customer.phone", "Customer phone must be a valid 10-digit mobile number")
                )

            email = _clean(customer.email)
            if email and not EMAIL_PATTERN.fullmatch(email):
                errors.append(_error("customer.email", "Customer email format is invalid"))

            name = _clean(customer.name)
            if name and not CUSTOMER_NAME_MIN_LENGTH <= len(name) <= CUSTOMER_NAME_MAX_LENGTH:
                errors.append(
                    _error(
                        "customer.name",
                        f"Customer name must be between {CUSTOMER_NAME_MIN_LENGTH} "
                        f"and {CUSTOMER_NAME_MAX_LENGTH} characters",
                    )
                )

        order_id = _clean(checkout.order_id)
        if order_id:
            if not ORDER_ID_MIN_LENGTH <= len(order_id) <= ORDER_ID_MAX_LENGTH:
                errors.append(
                    _error(
                        "order_id",
                        f"Order ID must be between {ORDER_ID_MIN_LENGTH} "
                        f"and {ORDER_ID_MAX_LENGTH} characters",
                    )
                )
            if not ORDER_ID_CHARSET.fullmatch(order_id):
                errors.append(
                    _error("order_id", "Order ID can only contain letters, numbers, underscores, and hyphens")
                )

        currency = _clean(checkout.currency).upper()
        if currency and currency not in SUPPORTED_CURRENCIES:
            errors.append(_error("order_currency", f"Currency must be one of {', '.join(SUPPORTED_CURRENCIES)}"))

        return errors

    def generate_order_id(self, now: datetime) -> str:
        timestamp = int(now.timestamp() * 1000)
        return f"{self.order_prefix}_{timestamp}_{self._token(9)}"

    def generate_customer_id(self, phone_or_email: str, salt: str) -> str:
        digest = hashlib.sha1(phone_or_email.encode("utf-8")).hexdigest()[:8]
        return f"CUST_{digest}_{salt}"

    def build(
        self,
        checkout: CheckoutInput,
        credentials: GatewayCredentials,
        urls: CallbackUrls,
    ) -> dict[str, Any]:
        errors = self.validate(checkout)
        customer = checkout.customer
        if customer is None and not errors:
            errors = [_error("customer", "Customer details are required")]
        if errors or customer is None:
            raise ValidationError(errors)

        now = self._clock()

        supplied_order_id = _clean(checkout.order_id)
        order_id = supplied_order_id or self.generate_order_id(now)

        customer_id = _clean(customer.customer_id)
        if not customer_id:
            # A caller-supplied order id salts the hash so retries of the same
            # order produce the same customer id
            if supplied_order_id:
                salt = hashlib.sha1(supplied_order_id.encode("utf-8")).hexdigest()[:10]
            else:
                salt = str(int(now.timestamp() * 1000))
            customer_id = self.generate_customer_id(
                _clean(customer.phone) or _clean(customer.email), salt
            )

        customer_details: dict[str, str] = {
            "customer_id": customer_id,
            "customer_phone": _clean(customer.phone),
        }
        if _clean(customer.email):
            customer_details["customer_email"] = _clean(customer.email)
        if _clean(customer.name):
            customer_details["customer_name"] = _clean(customer.name)

        amount = _to_decimal(checkout.amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        expiry = _clean(checkout.order_expiry_time) or (now + DEFAULT_ORDER_EXPIRY).isoformat(
            timespec="seconds"
        )

        return_url = urls.return_url
        notify_url = urls.notify_url
        if credentials.is_live:
            return_url = force_https(return_url)
            notify_url = force_https(notify_url)

        payload: dict[str, Any] = {
            "order_id": order_id,
            "order_amount": float(amount),
            "order_currency": _clean(checkout.currency).upper() or DEFAULT_CURRENCY,
            "customer_details": customer_details,
            "order_note": _clean(checkout.order_note) or DEFAULT_ORDER_NOTE,
            "order_expiry_time": expiry,
            "order_meta": {
                "return_url": return_url,
                "notify_url": notify_url,
                "payment_methods": _clean(checkout.payment_methods) or self.payment_methods,
            },
        }
        if checkout.cart_details:
            payload["cart_details"] = checkout.cart_details
        if checkout.order_tags:
            payload["order_tags"] = checkout.order_tags
        return payload


__all__ = [
    "CustomerInput",
    "CheckoutInput",
    "OrderPayloadBuilder",
    "PHONE_PATTERN",
    "EMAIL_PATTERN",
]
