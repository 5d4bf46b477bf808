"""
Bank aggregator interface.

Aggregators link bank accounts through a token exchange and then serve
account and transaction feeds. Amounts are returned in the ledger sign
convention (positive = inflow).
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction, LinkToken, TokenExchange


class BankAggregator(ABC):
    """Abstract base class for bank data aggregators."""

    @property
    @abstractmethod
    def aggregator_type(self) -> str:
        """Return the aggregator type identifier."""
        pass

    @property
    def is_live(self) -> bool:
        """True when backed by a real provider."""
        return False

    @abstractmethod
    async def create_link_token(
        self,
        user_id: str,
        client_name: str,
        products: Optional[List[str]] = None,
        webhook: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> LinkToken:
        """
        Create a link token for the client-side linking flow.

        Raises:
            AggregatorError: If the provider rejects the request.
        """
        pass

    @abstractmethod
    async def exchange_public_token(self, public_token: str) -> TokenExchange:
        """Exchange a public token for a long-lived access token."""
        pass

    @abstractmethod
    async def fetch_accounts(self, access_token: str) -> List[ExternalAccount]:
        """Accounts visible through the access token."""
        pass

    @abstractmethod
    async def fetch_transactions(
        self,
        access_token: str,
        account_id: str,
        start_date: date,
        end_date: date,
    ) -> List[ExternalTransaction]:
        """Transactions of one account posted within [start_date, end_date]."""
        pass
