"""
Statement ingestion orchestrator.

Extractor → verification gate (may abort before any ledger write) →
canonical account → ledger assembly → persistence.
"""
import asyncio
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

import structlog

from ledgerflow.core.logging import ingestion_context
from ledgerflow.exceptions import PipelineTimeoutError
from ledgerflow.models.entities import (
    Account,
    Statement,
    Transaction,
    VerificationStatus,
    resolve_account_type,
)
from ledgerflow.schemas.statement import ParsedStatement
from ledgerflow.schemas.verification import VerificationReport
from ledgerflow.services.account_locks import AccountLockRegistry
from ledgerflow.services.extraction import ExtractionOptions, StatementExtractor
from ledgerflow.services.ledger_builder import LedgerBuilder, LedgerLine
from ledgerflow.services.storage.base import StorageBackend
from ledgerflow.services.verification import VerificationGate

logger = structlog.get_logger(__name__)


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion."""

    statement: Statement
    verification_status: VerificationStatus
    report: VerificationReport


class IngestionService:
    """
    Ingests statement documents into the ledger.

    Re-ingesting the same document is idempotent: transactions are
    keyed by dedupe hash and the statement by its id.
    """

    def __init__(
        self,
        extractor: StatementExtractor,
        gate: VerificationGate,
        ledger_builder: LedgerBuilder,
        storage: StorageBackend,
        base_currency: str = "USD",
        locks: Optional[AccountLockRegistry] = None,
    ):
        self.extractor = extractor
        self.gate = gate
        self.ledger_builder = ledger_builder
        self.storage = storage
        self.base_currency = base_currency
        self.locks = locks if locks is not None else AccountLockRegistry()

    async def ingest_statement(
        self,
        statement_id: str,
        raw_statement: bytes,
        parser_options: Optional[Dict[str, Any]] = None,
        base_currency: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> IngestionResult:
        """
        Ingest one statement.

        Args:
            statement_id: Caller-assigned statement id.
            raw_statement: Uploaded bytes.
            parser_options: account_id_hint, institution_id, password, metadata.
            base_currency: Ledger currency; defaults to the service's.
            timeout: Overall deadline in seconds.

        Returns:
            IngestionResult with the persisted statement and its report.

        Raises:
            ExtractionFailure: Unreadable input.
            ValidationFailure: Structured data does not fit the schema.
            VerificationFailure: Statement failed verification; nothing was written
                to the ledger.
            PipelineTimeoutError: The deadline passed.
        """
        options = ExtractionOptions(statement_id=statement_id, **(parser_options or {}))
        work = self._ingest(statement_id, raw_statement, options, base_currency or self.base_currency)

        if timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("ingestion_timeout", statement_id=statement_id, timeout=timeout)
            raise PipelineTimeoutError("ingest_statement", timeout) from None

    async def _ingest(
        self,
        statement_id: str,
        raw_statement: bytes,
        options: ExtractionOptions,
        base_currency: str,
    ) -> IngestionResult:
        with ingestion_context(statement_id=statement_id):
            parsed = await self.extractor.extract(raw_statement, options)
            account_id = parsed.account.account_id

            async with self.locks.lock_for(account_id):
                report = await self.gate.validate(parsed, statement_id)

                account = self._map_account(parsed)
                transactions = await self.ledger_builder.build(
                    [self._ledger_line(txn) for txn in parsed.transactions],
                    account,
                    base_currency=base_currency,
                )
                statement = Statement(
                    id=statement_id,
                    account=account,
                    period_start=parsed.period.start,
                    period_end=parsed.period.end,
                    opening_balance=parsed.opening_balance,
                    closing_balance=parsed.closing_balance,
                    currency=parsed.currency,
                    source=parsed.source,
                    ingested_at=datetime.now(timezone.utc),
                    transactions=transactions,
                    verification_status=report.status,
                    raw_statement_uri=parsed.raw_statement_uri,
                    metadata=dict(parsed.metadata),
                )

                await self.storage.upsert_account(account)
                await self.storage.bulk_upsert_transactions(transactions)
                await self.storage.save_statement(statement)

            logger.info(
                "statement_ingested",
                account_id=account_id,
                transactions=len(transactions),
                verification_status=report.status.value,
                verification_source=report.source,
            )
            return IngestionResult(
                statement=statement,
                verification_status=report.status,
                report=report,
            )

    @staticmethod
    def _map_account(parsed: ParsedStatement) -> Account:
        return Account(
            id=parsed.account.account_id,
            institution_id=parsed.account.institution_id,
            name=parsed.account.name,
            mask=parsed.account.mask,
            type=resolve_account_type(parsed.account.type),
            currency=parsed.account.currency,
            balance=parsed.closing_balance,
            as_of=datetime.combine(parsed.period.end, time.min, tzinfo=timezone.utc),
            metadata=dict(parsed.metadata),
        )

    @staticmethod
    def _ledger_line(txn) -> LedgerLine:
        return LedgerLine(
            posted_date=txn.posted_date,
            description=txn.description,
            amount=txn.amount,
            currency=txn.currency,
            external_id=txn.external_id,
            type=txn.type,
            balance_after=txn.balance_after,
            metadata=dict(txn.metadata),
        )

    async def get_ledger(
        self,
        account_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        """Stored transactions of an account, ordered by posted date."""
        return await self.storage.load_transactions(account_id, start_date, end_date)

    async def get_verification_report(self, statement_id: str) -> Optional[VerificationReport]:
        """Current (latest) verification report of a statement."""
        return await self.storage.load_verification_report(statement_id)

    async def list_statements(self, user_id: str) -> List[Statement]:
        return await self.storage.list_statements(user_id)

    async def delete_statement(self, statement_id: str) -> None:
        await self.storage.delete_statement(statement_id)
