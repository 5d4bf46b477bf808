"""
Ledgerflow - statement ingestion and reconciliation pipeline.

Turns statement documents and aggregator feeds into a canonical,
deduplicated, categorized and currency-normalized transaction ledger,
reconciled against the statement's declared balances.
"""

__version__ = "0.1.0"
