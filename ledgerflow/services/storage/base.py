"""
Storage backend interface.

Backends persist accounts, transactions (keyed by dedupe hash),
statements and append-only verification reports.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from ledgerflow.models.entities import Account, Statement, Transaction
from ledgerflow.schemas.verification import VerificationReport


class StorageBackend(ABC):
    """Abstract persistence contract shared by all adapters."""

    @abstractmethod
    async def upsert_account(self, account: Account) -> None:
        """Insert or replace an account by id."""
        pass

    @abstractmethod
    async def load_account(self, account_id: str) -> Optional[Account]:
        """Load an account by id."""
        pass

    @abstractmethod
    async def bulk_upsert_transactions(self, transactions: List[Transaction]) -> None:
        """Insert or replace transactions by dedupe hash, in the given order."""
        pass

    @abstractmethod
    async def load_transactions(
        self,
        account_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        """
        Load an account's transactions, optionally within [start_date, end_date].

        Returns:
            Transactions ordered by posted date.
        """
        pass

    @abstractmethod
    async def save_statement(self, statement: Statement) -> None:
        """Insert or replace a statement by id."""
        pass

    @abstractmethod
    async def load_statement(self, statement_id: str) -> Optional[Statement]:
        """Load a statement by id."""
        pass

    @abstractmethod
    async def list_statements(self, user_id: str) -> List[Statement]:
        """Statements whose metadata.userId matches, newest first."""
        pass

    @abstractmethod
    async def delete_statement(self, statement_id: str) -> None:
        """
        Delete a statement with cascade.

        Removes the statement, the transactions of its account, the
        account when no other statement references it, and every
        verification report of the statement.

        Raises:
            StatementNotFoundError: If the statement does not exist.
        """
        pass

    @abstractmethod
    async def save_verification_report(self, report: VerificationReport) -> None:
        """Append a verification report."""
        pass

    @abstractmethod
    async def load_verification_report(self, statement_id: str) -> Optional[VerificationReport]:
        """Latest report for a statement."""
        pass

    @abstractmethod
    async def list_verification_reports(self, statement_id: str) -> List[VerificationReport]:
        """All reports for a statement, oldest first."""
        pass
