"""
Aggregator sync orchestrator.

For each linked account: upsert the canonical account, fetch its
transactions in the window, assemble and persist them. Sync skips
verification; aggregator feeds carry no declared balances to reconcile.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import structlog

from ledgerflow.core.logging import ingestion_context
from ledgerflow.exceptions import PipelineTimeoutError
from ledgerflow.models.entities import Account, Transaction, resolve_account_type
from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction, LinkToken, TokenExchange
from ledgerflow.services.account_locks import AccountLockRegistry
from ledgerflow.services.aggregators.base import BankAggregator
from ledgerflow.services.ledger_builder import LedgerBuilder, LedgerLine
from ledgerflow.services.storage.base import StorageBackend

logger = structlog.get_logger(__name__)


@dataclass
class SyncResult:
    """Accounts and transactions written by one sync."""

    accounts: List[Account] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)


class SyncService:
    """Pulls accounts and transactions from a bank aggregator into the ledger."""

    def __init__(
        self,
        aggregator: BankAggregator,
        ledger_builder: LedgerBuilder,
        storage: StorageBackend,
        base_currency: str = "USD",
        locks: Optional[AccountLockRegistry] = None,
    ):
        self.aggregator = aggregator
        self.ledger_builder = ledger_builder
        self.storage = storage
        self.base_currency = base_currency
        self.locks = locks if locks is not None else AccountLockRegistry()

    async def create_link_token(self, user_id: str, client_name: str, **kwargs) -> LinkToken:
        return await self.aggregator.create_link_token(user_id, client_name, **kwargs)

    async def exchange_public_token(self, public_token: str) -> TokenExchange:
        return await self.aggregator.exchange_public_token(public_token)

    async def sync(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        user_id: str,
        base_currency: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SyncResult:
        """
        Sync every account behind an access token.

        Raises:
            AggregatorError: The aggregator failed or is not configured.
            PipelineTimeoutError: The deadline passed.
        """
        work = self._sync(access_token, start_date, end_date, user_id, base_currency or self.base_currency)
        if timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("sync_timeout", user_id=user_id, timeout=timeout)
            raise PipelineTimeoutError("sync", timeout) from None

    async def _sync(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
        user_id: str,
        base_currency: str,
    ) -> SyncResult:
        with ingestion_context(user_id=user_id, aggregator=self.aggregator.aggregator_type):
            result = SyncResult()
            external_accounts = await self.aggregator.fetch_accounts(access_token)

            for external in external_accounts:
                account = self._map_account(external, user_id)
                async with self.locks.lock_for(account.id):
                    await self.storage.upsert_account(account)
                    external_transactions = await self.aggregator.fetch_transactions(
                        access_token, external.id, start_date, end_date
                    )
                    transactions = await self.ledger_builder.build(
                        [self._ledger_line(txn) for txn in external_transactions],
                        account,
                        base_currency=base_currency,
                        extra_metadata={"userId": user_id},
                    )
                    if transactions:
                        await self.storage.bulk_upsert_transactions(transactions)

                result.accounts.append(account)
                result.transactions.extend(transactions)

            logger.info(
                "aggregator_sync_complete",
                accounts=len(result.accounts),
                transactions=len(result.transactions),
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )
            return result

    @staticmethod
    def _map_account(external: ExternalAccount, user_id: str) -> Account:
        return Account(
            id=external.id,
            institution_id=external.institution_id,
            name=external.name,
            mask=external.mask,
            type=resolve_account_type(external.type),
            currency=external.currency,
            balance=external.balance,
            as_of=external.as_of,
            metadata={**external.metadata, "userId": user_id},
        )

    @staticmethod
    def _ledger_line(txn: ExternalTransaction) -> LedgerLine:
        return LedgerLine(
            posted_date=txn.posted_at,
            description=txn.description,
            amount=txn.amount,
            currency=txn.currency,
            external_id=txn.id,
            category_hint=txn.category,
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
