"""
Notification ports.

``NotificationGateway`` is what the dispatch engine calls once per voucher.
It returns ``True`` (sent), ``False`` (not sent, retry later), or a
``DispatchOutcome`` when it can tell a permanent failure apart; it may also
raise, which the engine treats as a transient failure.

``SmsSender`` is the lower-level channel used by ``SmsNotifier``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from voucher_kernel.domain.types import Voucher

from voucher_batch.domain.types import DispatchOutcome


@runtime_checkable
class NotificationGateway(Protocol):
    def send(self, voucher: Voucher) -> bool | DispatchOutcome:
        ...


@runtime_checkable
class SmsSender(Protocol):
    def send(self, to: str, body: str) -> dict:
        """Send one SMS.

        Returns a dict with ``status`` ("sent" or "failed") and optionally
        ``message_id``, ``error`` and ``permanent`` (bool).
        """
        ...
