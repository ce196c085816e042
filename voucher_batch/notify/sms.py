"""SmsNotifier -- NotificationGateway that texts the voucher code."""

from __future__ import annotations

from voucher_kernel.domain.types import Voucher

from voucher_batch.domain.types import DispatchOutcome
from voucher_batch.notify.base import SmsSender

DEFAULT_TEMPLATE = "Hi {name}, your voucher code is {code}."
DEFAULT_COUNTRY_CODE = "+91"


class SmsNotifier:
    """Renders the voucher message and hands it to an SmsSender."""

    def __init__(
        self,
        sender: SmsSender,
        template: str = DEFAULT_TEMPLATE,
        country_code: str = DEFAULT_COUNTRY_CODE,
    ):
        self._sender = sender
        self._template = template
        self._country_code = country_code

    def render(self, voucher: Voucher) -> str:
        return self._template.format(name=voucher.recipient_name, code=voucher.code)

    def recipient(self, voucher: Voucher) -> str:
        return f"{self._country_code}{voucher.recipient_mobile}"

    def send(self, voucher: Voucher) -> DispatchOutcome:
        response = self._sender.send(self.recipient(voucher), self.render(voucher))
        if response.get("status") == "sent":
            return DispatchOutcome.success()

        error = response.get("error") or "Failed to send sms"
        if response.get("permanent"):
            return DispatchOutcome.permanent(error)
        return DispatchOutcome.transient(error)
