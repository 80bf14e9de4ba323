"""SQLAlchemy models for the P&L ledger tables."""

from .ledger import Base, PnlCategory, PnlTransformedRecord

__all__ = [
    "Base",
    "PnlCategory",
    "PnlTransformedRecord",
]
