"""
Offline aggregator serving fixed data.

Selected when Plaid credentials are absent.
"""
from datetime import date
from typing import List, Optional

import structlog

from ledgerflow.exceptions import AggregatorError
from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction, LinkToken, TokenExchange
from ledgerflow.services.aggregators.base import BankAggregator

logger = structlog.get_logger(__name__)


class MockBankAggregator(BankAggregator):
    """Serves configured accounts and transactions without network access."""

    def __init__(
        self,
        accounts: Optional[List[ExternalAccount]] = None,
        transactions: Optional[List[ExternalTransaction]] = None,
    ):
        self.accounts = accounts
        self.transactions = transactions

    @property
    def aggregator_type(self) -> str:
        return "mock"

    @property
    def has_data(self) -> bool:
        return self.accounts is not None

    async def create_link_token(
        self,
        user_id: str,
        client_name: str,
        products: Optional[List[str]] = None,
        webhook: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> LinkToken:
        raise AggregatorError(
            "Plaid client not configured. Set PLAID credentials to enable link tokens."
        )

    async def exchange_public_token(self, public_token: str) -> TokenExchange:
        self._require_data()
        return TokenExchange(access_token="mock-access-token", item_id="mock-item-id")

    async def fetch_accounts(self, access_token: str) -> List[ExternalAccount]:
        self._require_data()
        return list(self.accounts)

    async def fetch_transactions(
        self,
        access_token: str,
        account_id: str,
        start_date: date,
        end_date: date,
    ) -> List[ExternalTransaction]:
        self._require_data()
        return [
            txn
            for txn in self.transactions or []
            if txn.account_id == account_id and start_date <= txn.posted_at <= end_date
        ]

    def _require_data(self) -> None:
        if not self.has_data:
            raise AggregatorError(
                "Plaid client not configured. Provide mock data for offline mode."
            )
