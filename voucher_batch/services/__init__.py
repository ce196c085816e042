"""Pipeline phase services: materialization and dispatch."""

from voucher_batch.services.codes import CodeBook, generate_voucher_code
from voucher_batch.services.dispatch import DispatchEngine, normalize_outcome
from voucher_batch.services.materializer import VoucherMaterializer
from voucher_batch.services.pool import TaskOutcome, run_bounded

__all__ = [
    "CodeBook",
    "DispatchEngine",
    "TaskOutcome",
    "VoucherMaterializer",
    "generate_voucher_code",
    "normalize_outcome",
    "run_bounded",
]
