"""Depreciation and capital gains ledger for Australian investment properties."""

__version__ = "0.1.0"
