"""
voucher_ingestion -- Batch file intake for voucher orders.

Provides row parsing, per-row validation and the BatchIngestor that accepts
or rejects an uploaded recipient list as a whole.  The same validation
module is used again by the materializer when the stored artifact is
re-read.
"""
