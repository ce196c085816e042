"""Notification gateways for voucher dispatch."""

from voucher_batch.notify.base import NotificationGateway, SmsSender
from voucher_batch.notify.fake import FakeSmsSender, LoggingSmsSender
from voucher_batch.notify.sms import DEFAULT_TEMPLATE, SmsNotifier

__all__ = [
    "DEFAULT_TEMPLATE",
    "FakeSmsSender",
    "LoggingSmsSender",
    "NotificationGateway",
    "SmsNotifier",
    "SmsSender",
]
