"""Batch file adapters."""

from voucher_ingestion.adapters.csv_adapter import parse_batch, read_payload, read_rows

__all__ = ["parse_batch", "read_payload", "read_rows"]
