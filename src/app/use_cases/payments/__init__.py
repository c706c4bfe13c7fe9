"""Payment order use cases"""
from .create_payment_order import CreatePaymentOrder
from .handle_payment_notification import HandlePaymentNotification
from .get_payment_order_status import GetPaymentOrderStatus
from .close_payment_order import ClosePaymentOrder
from .expire_payment_orders import ExpirePaymentOrders
from .dtos import (
    CreatePaymentOrderCommandDTO,
    PaymentOrderDTO,
    NotificationResultDTO,
    ExpiryResultDTO,
)

__all__ = [
    "CreatePaymentOrder",
    "HandlePaymentNotification",
    "GetPaymentOrderStatus",
    "ClosePaymentOrder",
    "ExpirePaymentOrders",
    "CreatePaymentOrderCommandDTO",
    "PaymentOrderDTO",
    "NotificationResultDTO",
    "ExpiryResultDTO",
]
