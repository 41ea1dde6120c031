from .payment import (
    CheckoutRequest,
    CustomerDetails,
    OrderCreated,
    OrderVerification,
    PaymentConfig,
    WebhookAck,
)
