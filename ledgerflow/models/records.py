"""
ORM tables backing SqlStorage.

Transactions are keyed by dedupe hash. Statements keep a JSON snapshot
of the full entity; verification reports are append-only.
"""
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)

from ledgerflow.database import Base
from ledgerflow.models.entities import (
    AccountType,
    StatementSource,
    TransactionType,
    VerificationStatus,
)

AMOUNT = Numeric(20, 6)


class AccountRecord(Base):
    """Financial account."""

    __tablename__ = "accounts"

    id = Column(String(255), primary_key=True)
    institution_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    mask = Column(String(16), nullable=True)
    type = Column(SQLEnum(AccountType), nullable=False)
    currency = Column(String(3), nullable=False)
    balance = Column(AMOUNT, nullable=False)
    as_of = Column(DateTime(timezone=True), nullable=False)
    user_id = Column(String(255), nullable=True, index=True)
    extra_data = Column(JSON, nullable=True)  # entity metadata

    def __repr__(self) -> str:
        return f"<AccountRecord(id={self.id}, institution={self.institution_id})>"


class TransactionRecord(Base):
    """Ledger entry, one row per dedupe hash."""

    __tablename__ = "transactions"

    dedupe_hash = Column(String(64), primary_key=True)
    id = Column(String(255), nullable=False)
    account_id = Column(String(255), nullable=False, index=True)
    posted_date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=False)
    original_description = Column(Text, nullable=True)
    normalized_description = Column(Text, nullable=True)
    amount = Column(AMOUNT, nullable=False)
    currency = Column(String(3), nullable=False)
    type = Column(SQLEnum(TransactionType), nullable=False)
    category = Column(String(100), nullable=True)
    subcategory = Column(String(100), nullable=True)
    extra_data = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<TransactionRecord(hash={self.dedupe_hash[:12]}, amount={self.amount})>"


class StatementRecord(Base):
    """Ingested statement with its full snapshot."""

    __tablename__ = "statements"

    id = Column(String(255), primary_key=True)
    account_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    source = Column(SQLEnum(StatementSource), nullable=False)
    verification_status = Column(SQLEnum(VerificationStatus), nullable=False)
    ingested_at = Column(DateTime(timezone=True), nullable=False, index=True)
    snapshot = Column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<StatementRecord(id={self.id}, status={self.verification_status})>"


class VerificationReportRecord(Base):
    """Verification report; rows are never updated."""

    __tablename__ = "verification_reports"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    report_id = Column(String(36), nullable=False, index=True)
    statement_id = Column(String(255), nullable=False, index=True)
    status = Column(SQLEnum(VerificationStatus), nullable=False)
    confidence = Column(Float, nullable=False)
    source = Column(String(100), nullable=False)
    executed_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<VerificationReportRecord(statement={self.statement_id}, status={self.status})>"
