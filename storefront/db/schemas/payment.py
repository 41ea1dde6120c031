from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


class CustomerDetails(BaseModel):
    phone: str | None = Field(
        default=None, validation_alias=AliasChoices("customer_phone", "phone", "mobile")
    )
    email: str | None = Field(default=None, validation_alias=AliasChoices("customer_email", "email"))
    name: str | None = Field(default=None, validation_alias=AliasChoices("customer_name", "name"))
    customer_id: str | None = Field(default=None, validation_alias=AliasChoices("customer_id", "id"))

    @field_validator("phone", "email", "name", "customer_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Phone numbers regularly arrive as JSON numbers
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class CheckoutRequest(BaseModel):
    # Amount rules live in the payload builder, which reports field errors
    amount: float | str | None = Field(default=None, validation_alias=AliasChoices("amount", "order_amount"))
    customer: CustomerDetails | None = Field(
        default=None, validation_alias=AliasChoices("customer", "customer_details")
    )
    order_id: str | None = None
    order_note: str | None = None
    order_currency: str | None = Field(
        default=None, validation_alias=AliasChoices("order_currency", "currency")
    )
    order_expiry_time: str | None = None
    cart_details: dict[str, Any] | None = None
    order_tags: dict[str, str] | None = None


class OrderCreated(BaseModel):
    order_id: str
    cf_order_id: str | int | None = None
    payment_session_id: str | None = None
    order_status: str | None = None
    order_amount: float | None = None
    order_currency: str | None = None
    order_expiry_time: str | None = None
    environment: str
    api_version: str
    checkout_url: str | None = None


class PaymentConfig(BaseModel):
    enabled: bool
    is_configured: bool
    environment: str
    api_version: str


class OrderVerification(BaseModel):
    order_id: str
    order_status: str
    is_paid: bool
    is_active: bool
    is_expired: bool
    is_terminated: bool
    order_amount: float | None = None
    order_currency: str | None = None


class WebhookAck(BaseModel):
    status: str = "ok"
