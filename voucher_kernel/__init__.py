"""
Voucher Kernel

Shared core for the voucher order pipeline:
- Order / Voucher domain types and status state machines
- Typed exception hierarchy
- Structured JSON logging
- Persistence (SQLAlchemy + in-memory) and artifact storage ports
"""

__version__ = "0.1.0"
