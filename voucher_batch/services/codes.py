"""
Voucher code generation.

Codes are 8 symbols drawn from A-Z0-9 with ``secrets``.  ``CodeBook`` keeps
the codes handed out during one materialization run so concurrent workers
never reuse a code among themselves; clashes with codes already persisted
are caught by the repository's uniqueness check.
"""

from __future__ import annotations

import secrets
import string
import threading

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


def generate_voucher_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class CodeBook:
    """Thread-safe set of codes reserved within one run."""

    def __init__(self, length: int = CODE_LENGTH):
        self._length = length
        self._lock = threading.Lock()
        self._reserved: set[str] = set()

    def reserve(self) -> str:
        with self._lock:
            while True:
                code = generate_voucher_code(self._length)
                if code not in self._reserved:
                    self._reserved.add(code)
                    return code

    def __len__(self) -> int:
        with self._lock:
            return len(self._reserved)
