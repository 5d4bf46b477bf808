"""
SQLAlchemy storage backend.

Implements the StorageBackend contract over the tables in
ledgerflow.models.records. Database errors surface as StorageError.
Sessions are synchronous, so every operation runs in the default
thread pool to keep the event loop free.
"""
import asyncio
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterator, List, Optional, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ledgerflow.exceptions import StatementNotFoundError, StorageError
from ledgerflow.models.entities import Account, Statement, Transaction
from ledgerflow.models.records import (
    AccountRecord,
    StatementRecord,
    TransactionRecord,
    VerificationReportRecord,
)
from ledgerflow.schemas.verification import VerificationReport
from ledgerflow.services.storage.base import StorageBackend

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class SqlStorage(StorageBackend):
    """StorageBackend on a relational database."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("storage_operation_failed", error=str(e))
            raise StorageError(f"Storage operation failed: {e}") from e
        finally:
            session.close()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        # to_thread carries the structlog context into the worker
        return await asyncio.to_thread(func, *args)

    # Accounts

    async def upsert_account(self, account: Account) -> None:
        await self._run(self._upsert_account, account)

    def _upsert_account(self, account: Account) -> None:
        with self._session() as session:
            session.merge(self._account_record(account))

    async def load_account(self, account_id: str) -> Optional[Account]:
        return await self._run(self._load_account, account_id)

    def _load_account(self, account_id: str) -> Optional[Account]:
        with self._session() as session:
            record = session.get(AccountRecord, account_id)
            return self._account_entity(record) if record else None

    # Transactions

    async def bulk_upsert_transactions(self, transactions: List[Transaction]) -> None:
        await self._run(self._bulk_upsert_transactions, transactions)

    def _bulk_upsert_transactions(self, transactions: List[Transaction]) -> None:
        # Pending rows are invisible to merge without autoflush; last one per hash wins
        unique = {txn.dedupe_hash: txn for txn in transactions}
        with self._session() as session:
            for txn in unique.values():
                session.merge(self._transaction_record(txn))

    async def load_transactions(
        self,
        account_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        return await self._run(self._load_transactions, account_id, start_date, end_date)

    def _load_transactions(
        self,
        account_id: str,
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> List[Transaction]:
        query = select(TransactionRecord).where(TransactionRecord.account_id == account_id)
        if start_date is not None:
            query = query.where(TransactionRecord.posted_date >= start_date)
        if end_date is not None:
            query = query.where(TransactionRecord.posted_date <= end_date)
        query = query.order_by(TransactionRecord.posted_date, TransactionRecord.id)

        with self._session() as session:
            return [self._transaction_entity(r) for r in session.scalars(query)]

    # Statements

    async def save_statement(self, statement: Statement) -> None:
        await self._run(self._save_statement, statement)

    def _save_statement(self, statement: Statement) -> None:
        record = StatementRecord(
            id=statement.id,
            account_id=statement.account.id,
            user_id=statement.user_id,
            period_start=statement.period_start,
            period_end=statement.period_end,
            source=statement.source,
            verification_status=statement.verification_status,
            ingested_at=statement.ingested_at,
            snapshot=statement.to_dict(),
        )
        with self._session() as session:
            session.merge(record)

    async def load_statement(self, statement_id: str) -> Optional[Statement]:
        return await self._run(self._load_statement, statement_id)

    def _load_statement(self, statement_id: str) -> Optional[Statement]:
        with self._session() as session:
            record = session.get(StatementRecord, statement_id)
            return Statement.from_dict(record.snapshot) if record else None

    async def list_statements(self, user_id: str) -> List[Statement]:
        return await self._run(self._list_statements, user_id)

    def _list_statements(self, user_id: str) -> List[Statement]:
        query = (
            select(StatementRecord)
            .where(StatementRecord.user_id == user_id)
            .order_by(StatementRecord.ingested_at.desc())
        )
        with self._session() as session:
            return [Statement.from_dict(r.snapshot) for r in session.scalars(query)]

    async def delete_statement(self, statement_id: str) -> None:
        await self._run(self._delete_statement, statement_id)

    def _delete_statement(self, statement_id: str) -> None:
        with self._session() as session:
            record = session.get(StatementRecord, statement_id)
            if record is None:
                raise StatementNotFoundError(statement_id)

            account_id = record.account_id
            session.delete(record)
            removed = (
                session.query(TransactionRecord)
                .filter(TransactionRecord.account_id == account_id)
                .delete(synchronize_session=False)
            )
            session.query(VerificationReportRecord).filter(
                VerificationReportRecord.statement_id == statement_id
            ).delete(synchronize_session=False)
            session.flush()

            remaining = (
                session.query(StatementRecord)
                .filter(StatementRecord.account_id == account_id)
                .count()
            )
            if remaining == 0:
                session.query(AccountRecord).filter(AccountRecord.id == account_id).delete(
                    synchronize_session=False
                )

        logger.info(
            "statement_deleted",
            statement_id=statement_id,
            account_id=account_id,
            transactions_removed=removed,
            account_removed=remaining == 0,
        )

    # Verification reports

    async def save_verification_report(self, report: VerificationReport) -> None:
        await self._run(self._save_verification_report, report)

    def _save_verification_report(self, report: VerificationReport) -> None:
        record = VerificationReportRecord(
            report_id=report.id,
            statement_id=report.statement_id,
            status=report.status,
            confidence=report.confidence,
            source=report.source,
            executed_at=report.executed_at,
            payload=report.model_dump(mode="json", by_alias=True),
        )
        with self._session() as session:
            session.add(record)

    async def load_verification_report(self, statement_id: str) -> Optional[VerificationReport]:
        return await self._run(self._load_verification_report, statement_id)

    def _load_verification_report(self, statement_id: str) -> Optional[VerificationReport]:
        query = (
            select(VerificationReportRecord)
            .where(VerificationReportRecord.statement_id == statement_id)
            .order_by(VerificationReportRecord.seq.desc())
            .limit(1)
        )
        with self._session() as session:
            record = session.scalars(query).first()
            return VerificationReport.model_validate(record.payload) if record else None

    async def list_verification_reports(self, statement_id: str) -> List[VerificationReport]:
        return await self._run(self._list_verification_reports, statement_id)

    def _list_verification_reports(self, statement_id: str) -> List[VerificationReport]:
        query = (
            select(VerificationReportRecord)
            .where(VerificationReportRecord.statement_id == statement_id)
            .order_by(VerificationReportRecord.seq)
        )
        with self._session() as session:
            return [VerificationReport.model_validate(r.payload) for r in session.scalars(query)]

    # Mapping helpers

    @staticmethod
    def _account_record(account: Account) -> AccountRecord:
        return AccountRecord(
            id=account.id,
            institution_id=account.institution_id,
            name=account.name,
            mask=account.mask,
            type=account.type,
            currency=account.currency,
            balance=account.balance,
            as_of=account.as_of,
            user_id=account.user_id,
            extra_data=account.metadata,
        )

    @staticmethod
    def _account_entity(record: AccountRecord) -> Account:
        return Account(
            id=record.id,
            institution_id=record.institution_id,
            name=record.name,
            mask=record.mask,
            type=record.type,
            currency=record.currency,
            balance=_decimal(record.balance),
            as_of=record.as_of,
            metadata=dict(record.extra_data or {}),
        )

    @staticmethod
    def _transaction_record(txn: Transaction) -> TransactionRecord:
        return TransactionRecord(
            dedupe_hash=txn.dedupe_hash,
            id=txn.id,
            account_id=txn.account_id,
            posted_date=txn.posted_date,
            description=txn.description,
            original_description=txn.original_description,
            normalized_description=txn.normalized_description,
            amount=txn.amount,
            currency=txn.currency,
            type=txn.type,
            category=txn.category,
            subcategory=txn.subcategory,
            extra_data=txn.metadata,
        )

    @staticmethod
    def _transaction_entity(record: TransactionRecord) -> Transaction:
        return Transaction(
            id=record.id,
            account_id=record.account_id,
            posted_date=record.posted_date,
            description=record.description,
            original_description=record.original_description,
            normalized_description=record.normalized_description,
            amount=_decimal(record.amount),
            currency=record.currency,
            type=record.type,
            category=record.category,
            subcategory=record.subcategory,
            dedupe_hash=record.dedupe_hash,
            metadata=dict(record.extra_data or {}),
        )
