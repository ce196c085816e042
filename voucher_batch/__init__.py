"""
voucher_batch -- materialization and dispatch phases of the voucher pipeline.

``OrderService`` (voucher_batch.orchestrator) is the entry point; the phase
services live in ``voucher_batch.services`` and the notification ports in
``voucher_batch.notify``.
"""

from voucher_batch.orchestrator import OrderService

__all__ = ["OrderService"]
