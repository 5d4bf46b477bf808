"""Models package."""
from ledgerflow.models.entities import (
    Account,
    AccountType,
    Statement,
    StatementSource,
    Transaction,
    TransactionType,
    VerificationStatus,
)

__all__ = [
    "Account", "AccountType", "Statement", "StatementSource",
    "Transaction", "TransactionType", "VerificationStatus",
]
