"""Batch intake services."""

from voucher_ingestion.services.ingestor import BatchIngestor

__all__ = ["BatchIngestor"]
