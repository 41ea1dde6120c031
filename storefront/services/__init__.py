from . import (
    payment_service,
    settings_service,
)
__all__ = [
    "payment_service",
    "settings_service",
]
