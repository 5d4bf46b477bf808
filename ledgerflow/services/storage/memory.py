"""
In-memory storage backend.

Dict-backed and lock-protected; used by tests and single-process runs.
"""
import copy
import threading
from datetime import date
from typing import Dict, List, Optional

import structlog

from ledgerflow.exceptions import StatementNotFoundError
from ledgerflow.models.entities import Account, Statement, Transaction
from ledgerflow.schemas.verification import VerificationReport
from ledgerflow.services.storage.base import StorageBackend

logger = structlog.get_logger(__name__)


class InMemoryStorage(StorageBackend):
    """StorageBackend holding everything in process memory."""

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._statements: Dict[str, Statement] = {}
        self._reports: Dict[str, List[VerificationReport]] = {}
        self._lock = threading.RLock()

    async def upsert_account(self, account: Account) -> None:
        with self._lock:
            self._accounts[account.id] = copy.deepcopy(account)

    async def load_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            return copy.deepcopy(account) if account else None

    async def bulk_upsert_transactions(self, transactions: List[Transaction]) -> None:
        with self._lock:
            for txn in transactions:
                self._transactions[txn.dedupe_hash] = copy.deepcopy(txn)

    async def load_transactions(
        self,
        account_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        with self._lock:
            matches = [
                copy.deepcopy(txn)
                for txn in self._transactions.values()
                if txn.account_id == account_id
                and (start_date is None or txn.posted_date >= start_date)
                and (end_date is None or txn.posted_date <= end_date)
            ]
        return sorted(matches, key=lambda txn: txn.posted_date)

    async def save_statement(self, statement: Statement) -> None:
        with self._lock:
            self._statements[statement.id] = copy.deepcopy(statement)

    async def load_statement(self, statement_id: str) -> Optional[Statement]:
        with self._lock:
            statement = self._statements.get(statement_id)
            return copy.deepcopy(statement) if statement else None

    async def list_statements(self, user_id: str) -> List[Statement]:
        with self._lock:
            owned = [
                copy.deepcopy(statement)
                for statement in self._statements.values()
                if statement.user_id == user_id
            ]
        return sorted(owned, key=lambda statement: statement.ingested_at, reverse=True)

    async def delete_statement(self, statement_id: str) -> None:
        with self._lock:
            statement = self._statements.pop(statement_id, None)
            if statement is None:
                raise StatementNotFoundError(statement_id)

            account_id = statement.account.id
            removed = [h for h, txn in self._transactions.items() if txn.account_id == account_id]
            for dedupe_hash in removed:
                del self._transactions[dedupe_hash]

            still_referenced = any(s.account.id == account_id for s in self._statements.values())
            if not still_referenced:
                self._accounts.pop(account_id, None)

            self._reports.pop(statement_id, None)

        logger.info(
            "statement_deleted",
            statement_id=statement_id,
            account_id=account_id,
            transactions_removed=len(removed),
            account_removed=not still_referenced,
        )

    async def save_verification_report(self, report: VerificationReport) -> None:
        with self._lock:
            self._reports.setdefault(report.statement_id, []).append(report.model_copy(deep=True))

    async def load_verification_report(self, statement_id: str) -> Optional[VerificationReport]:
        with self._lock:
            reports = self._reports.get(statement_id)
            return reports[-1].model_copy(deep=True) if reports else None

    async def list_verification_reports(self, statement_id: str) -> List[VerificationReport]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._reports.get(statement_id, [])]
