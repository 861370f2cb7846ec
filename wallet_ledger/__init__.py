"""
Wallet Ledger - personal finance record-keeper

An append-only ledger of transfers between wallets with:
- Monotonic sequencing of every transfer
- Derived (never stored) balances and budget status
- Reversals as linked compensating transfers
- Recurring scheduled transfers materialized on every invocation
- Forecasts and reports computed from the same transfer set
"""

__version__ = "0.1.0"
