"""
Services for the wallet ledger (write side).

Services flush inside the caller's transaction and never commit.  Import
them from their modules; this package deliberately re-exports nothing so
that ``wallet_ledger.models`` can import the sequence counter table without
pulling in every service.
"""
