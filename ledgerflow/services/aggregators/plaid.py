"""
Plaid aggregator client.

Talks to the Plaid REST API over httpx. Client credentials travel in
the request body, as Plaid expects.

Configuration:
   - PLAID_CLIENT_ID
   - PLAID_SECRET
   - PLAID_ENVIRONMENT (sandbox, development or production)
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ledgerflow.exceptions import AggregatorError
from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction, LinkToken, TokenExchange
from ledgerflow.services.aggregators.base import BankAggregator

logger = structlog.get_logger(__name__)

PLAID_URLS = {
    "sandbox": "https://sandbox.plaid.com",
    "development": "https://development.plaid.com",
    "production": "https://production.plaid.com",
}

PLAID_PRODUCTS = {"transactions", "auth", "liabilities", "investments", "assets"}


class PlaidAggregator(BankAggregator):
    """Live Plaid client."""

    PAGE_SIZE = 500

    def __init__(
        self,
        client_id: str,
        secret: str,
        environment: str = "sandbox",
        institution_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.secret = secret
        self.environment = environment
        self.institution_id = institution_id
        self.timeout = timeout
        self._transport = transport

    @property
    def aggregator_type(self) -> str:
        return "plaid"

    @property
    def is_live(self) -> bool:
        return True

    @property
    def api_base_url(self) -> str:
        return PLAID_URLS.get(self.environment, PLAID_URLS["sandbox"])

    async def create_link_token(
        self,
        user_id: str,
        client_name: str,
        products: Optional[List[str]] = None,
        webhook: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> LinkToken:
        requested = [
            product.lower() if product.lower() in PLAID_PRODUCTS else "transactions"
            for product in (products or ["transactions"])
        ]
        body: Dict[str, Any] = {
            "user": {"client_user_id": user_id},
            "client_name": client_name,
            "products": requested,
            "language": "en",
            "country_codes": ["US"],
        }
        if webhook:
            body["webhook"] = webhook
        if redirect_uri:
            body["redirect_uri"] = redirect_uri

        data = await self._post("link/token/create", body)
        return LinkToken(link_token=data["link_token"], expiration=data.get("expiration"))

    async def exchange_public_token(self, public_token: str) -> TokenExchange:
        data = await self._post("item/public_token/exchange", {"public_token": public_token})
        return TokenExchange(access_token=data["access_token"], item_id=data["item_id"])

    async def fetch_accounts(self, access_token: str) -> List[ExternalAccount]:
        data = await self._post("accounts/get", {"access_token": access_token})
        item_institution = (data.get("item") or {}).get("institution_id")

        accounts = []
        for account in data.get("accounts", []):
            balances = account.get("balances") or {}
            available = balances.get("available")
            accounts.append(
                ExternalAccount(
                    id=account["account_id"],
                    institution_id=item_institution or self.institution_id or "plaid",
                    name=account.get("official_name") or account.get("name") or "Plaid Account",
                    mask=account.get("mask"),
                    type=account.get("type") or "other",
                    subtype=account.get("subtype"),
                    currency=balances.get("iso_currency_code") or "USD",
                    balance=Decimal(str(balances.get("current") or 0)),
                    available_balance=Decimal(str(available)) if available is not None else None,
                    as_of=balances.get("last_updated_datetime") or datetime.now(timezone.utc),
                )
            )

        logger.info("plaid_accounts_fetched", account_count=len(accounts))
        return accounts

    async def fetch_transactions(
        self,
        access_token: str,
        account_id: str,
        start_date: date,
        end_date: date,
    ) -> List[ExternalTransaction]:
        transactions: List[ExternalTransaction] = []
        offset = 0

        while True:
            data = await self._post(
                "transactions/get",
                {
                    "access_token": access_token,
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "options": {
                        "account_ids": [account_id],
                        "count": self.PAGE_SIZE,
                        "offset": offset,
                    },
                },
            )
            page = data.get("transactions", [])
            transactions.extend(self._map_transaction(txn) for txn in page)
            offset += len(page)

            if not page or offset >= data.get("total_transactions", 0):
                break

        logger.info(
            "plaid_transactions_fetched",
            account_id=account_id,
            transaction_count=len(transactions),
        )
        return transactions

    @staticmethod
    def _map_transaction(txn: Dict[str, Any]) -> ExternalTransaction:
        category = txn.get("category") or []
        return ExternalTransaction(
            id=txn["transaction_id"],
            account_id=txn["account_id"],
            description=txn.get("name") or "",
            merchant_name=txn.get("merchant_name"),
            # Plaid reports outflows as positive
            amount=-Decimal(str(txn["amount"])),
            currency=txn.get("iso_currency_code") or "USD",
            posted_at=txn["date"],
            category=category[0] if category else None,
            metadata={"plaidCategory": category},
        )

    async def _post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make an authenticated Plaid API request.

        Raises:
            AggregatorError: On transport errors and non-2xx responses.
        """
        url = f"{self.api_base_url}/{endpoint}"
        payload = {"client_id": self.client_id, "secret": self.secret, **body}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("plaid_request_failed", endpoint=endpoint, error=str(e))
            raise AggregatorError(f"Plaid request to {endpoint} failed: {e}") from e

        if response.status_code >= 400:
            error: Dict[str, Any] = {}
            try:
                error = response.json()
            except ValueError:
                pass
            logger.error(
                "plaid_api_error",
                endpoint=endpoint,
                status_code=response.status_code,
                error_code=error.get("error_code"),
            )
            raise AggregatorError(
                f"Plaid {endpoint} returned {response.status_code}: "
                f"{error.get('error_message') or response.text[:200]}",
                details={"status_code": response.status_code, "plaid_error": error.get("error_code")},
            )

        return response.json()
