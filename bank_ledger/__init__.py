"""
Bank Ledger

A small file-backed bank ledger: customers, current and savings accounts,
and an append-only transaction log, with a transfer engine that settles
savings interest before moving funds. All money uses Decimal.
"""

__version__ = "1.0.0"
