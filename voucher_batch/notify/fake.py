"""In-process SMS senders for tests and local runs."""

from __future__ import annotations

import threading
from uuid import uuid4

from voucher_kernel.logging_config import get_logger

logger = get_logger("batch.notify")


class FakeSmsSender:
    """Records messages in memory for test assertions."""

    def __init__(self):
        self._lock = threading.Lock()
        self.sent_messages: list[dict] = []
        self.should_succeed = True
        self.permanent = False
        self.failure_reason = "SMS delivery failed"

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "SMS delivery failed",
        permanent: bool = False,
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.permanent = permanent

    def send(self, to: str, body: str) -> dict:
        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
                "permanent": self.permanent,
            }

        message_id = f"sms-{uuid4().hex[:12]}"
        with self._lock:
            self.sent_messages.append({"message_id": message_id, "to": to, "body": body})
        return {"message_id": message_id, "status": "sent"}

    def reset(self) -> None:
        with self._lock:
            self.sent_messages.clear()
        self.configure()


class LoggingSmsSender:
    """Writes each message to the log instead of sending it."""

    def send(self, to: str, body: str) -> dict:
        message_id = f"sms-{uuid4().hex[:12]}"
        logger.info("sms_logged", extra={"to": to, "body": body, "message_id": message_id})
        return {"message_id": message_id, "status": "sent"}
