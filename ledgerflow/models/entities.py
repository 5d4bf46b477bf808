"""
Ledger entities for Ledgerflow.

Accounts, statements and transactions as they are persisted by any
storage backend. Amounts are signed Decimals: positive is an inflow
(credit), negative an outflow (debit).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class AccountType(str, Enum):
    """Canonical account types."""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CREDIT = "CREDIT"
    BROKERAGE = "BROKERAGE"
    RETIREMENT = "RETIREMENT"
    LOAN = "LOAN"
    OTHER = "OTHER"


class TransactionType(str, Enum):
    """Direction of money movement."""
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class StatementSource(str, Enum):
    """Where a statement came from."""
    DOCUMENT = "DOCUMENT"
    AGGREGATOR = "AGGREGATOR"


class VerificationStatus(str, Enum):
    """Outcome of statement verification."""
    PENDING = "PENDING"
    PASS = "PASS"
    FAIL = "FAIL"
    REVIEW = "REVIEW"


# Institution type strings (statement headers, Plaid types) → canonical type
ACCOUNT_TYPE_LOOKUP: Dict[str, AccountType] = {
    "CHECKING": AccountType.CHECKING,
    "DEPOSITORY": AccountType.CHECKING,
    "SAVINGS": AccountType.SAVINGS,
    "CREDIT": AccountType.CREDIT,
    "BROKERAGE": AccountType.BROKERAGE,
    "INVESTMENT": AccountType.BROKERAGE,
    "IRA": AccountType.RETIREMENT,
    "LOAN": AccountType.LOAN,
}


def resolve_account_type(value: Optional[str]) -> AccountType:
    """Map an institution-specific type string to an AccountType."""
    if not value:
        return AccountType.OTHER
    return ACCOUNT_TYPE_LOOKUP.get(value.strip().upper(), AccountType.OTHER)


def resolve_transaction_type(
    amount: Decimal,
    provided: Optional[TransactionType] = None,
) -> TransactionType:
    """Use the provided type, otherwise derive it from the amount's sign."""
    if provided is not None:
        return TransactionType(provided)
    return TransactionType.CREDIT if amount >= 0 else TransactionType.DEBIT


@dataclass
class Account:
    """A financial account owned by a user at an institution."""
    id: str
    institution_id: str
    name: str
    type: AccountType
    currency: str
    balance: Decimal
    as_of: datetime
    mask: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[str]:
        return self.metadata.get("userId")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "institutionId": self.institution_id,
            "name": self.name,
            "mask": self.mask,
            "type": self.type.value,
            "currency": self.currency,
            "balance": str(self.balance),
            "asOf": self.as_of.isoformat(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=data["id"],
            institution_id=data["institutionId"],
            name=data["name"],
            mask=data.get("mask"),
            type=AccountType(data["type"]),
            currency=data["currency"],
            balance=Decimal(str(data["balance"])),
            as_of=datetime.fromisoformat(data["asOf"]),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class Transaction:
    """A single ledger entry, identified by its dedupe hash."""
    id: str
    account_id: str
    posted_date: date
    description: str
    amount: Decimal
    currency: str
    type: TransactionType
    dedupe_hash: str
    original_description: Optional[str] = None
    normalized_description: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "postedDate": self.posted_date.isoformat(),
            "description": self.description,
            "originalDescription": self.original_description,
            "amount": str(self.amount),
            "currency": self.currency,
            "type": self.type.value,
            "category": self.category,
            "subCategory": self.subcategory,
            "normalizedDescription": self.normalized_description,
            "dedupeHash": self.dedupe_hash,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=data["id"],
            account_id=data["accountId"],
            posted_date=date.fromisoformat(data["postedDate"]),
            description=data["description"],
            original_description=data.get("originalDescription"),
            amount=Decimal(str(data["amount"])),
            currency=data["currency"],
            type=TransactionType(data["type"]),
            category=data.get("category"),
            subcategory=data.get("subCategory"),
            normalized_description=data.get("normalizedDescription"),
            dedupe_hash=data["dedupeHash"],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class Statement:
    """One ingested document or aggregator pull for a single account."""
    id: str
    account: Account
    period_start: date
    period_end: date
    opening_balance: Decimal
    closing_balance: Decimal
    currency: str
    source: StatementSource
    ingested_at: datetime
    transactions: List[Transaction] = field(default_factory=list)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    raw_statement_uri: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[str]:
        return self.metadata.get("userId")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account": self.account.to_dict(),
            "statementPeriodStart": self.period_start.isoformat(),
            "statementPeriodEnd": self.period_end.isoformat(),
            "openingBalance": str(self.opening_balance),
            "closingBalance": str(self.closing_balance),
            "currency": self.currency,
            "transactions": [txn.to_dict() for txn in self.transactions],
            "rawStatementUri": self.raw_statement_uri,
            "source": self.source.value,
            "ingestedAt": self.ingested_at.isoformat(),
            "verificationStatus": self.verification_status.value,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Statement":
        return cls(
            id=data["id"],
            account=Account.from_dict(data["account"]),
            period_start=date.fromisoformat(data["statementPeriodStart"]),
            period_end=date.fromisoformat(data["statementPeriodEnd"]),
            opening_balance=Decimal(str(data["openingBalance"])),
            closing_balance=Decimal(str(data["closingBalance"])),
            currency=data["currency"],
            transactions=[Transaction.from_dict(t) for t in data.get("transactions", [])],
            raw_statement_uri=data.get("rawStatementUri"),
            source=StatementSource(data["source"]),
            ingested_at=datetime.fromisoformat(data["ingestedAt"]),
            verification_status=VerificationStatus(data["verificationStatus"]),
            metadata=dict(data.get("metadata") or {}),
        )
