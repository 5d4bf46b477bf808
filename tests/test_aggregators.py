"""
Tests for bank aggregator clients.
"""
import json
from datetime import date, datetime, timezone
from decimal import Decimal

import httpx
import pytest

from ledgerflow.exceptions import AggregatorError
from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction
from ledgerflow.services.aggregators import MockBankAggregator, PlaidAggregator


def plaid_transaction(txn_id: str, amount: float, day: str = "2024-01-05") -> dict:
    return {
        "transaction_id": txn_id,
        "account_id": "plaid-acc-1",
        "name": f"Merchant {txn_id}",
        "merchant_name": "Merchant",
        "amount": amount,
        "iso_currency_code": "USD",
        "date": day,
        "category": ["Food and Drink", "Restaurants"],
    }


class PlaidStub:
    """Records requests and answers like the Plaid API."""

    def __init__(self, transactions=None, status_code: int = 200):
        self.requests = []
        self.transactions = transactions or []
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        endpoint = request.url.path.lstrip("/")
        self.requests.append((endpoint, body))

        if self.status_code >= 400:
            return httpx.Response(
                self.status_code,
                json={"error_code": "ITEM_LOGIN_REQUIRED", "error_message": "login required"},
            )
        if endpoint == "link/token/create":
            return httpx.Response(200, json={"link_token": "link-sandbox-1", "expiration": "2024-02-01T00:00:00Z"})
        if endpoint == "item/public_token/exchange":
            return httpx.Response(200, json={"access_token": "access-1", "item_id": "item-1"})
        if endpoint == "accounts/get":
            return httpx.Response(200, json={
                "item": {"institution_id": "ins_3"},
                "accounts": [{
                    "account_id": "plaid-acc-1",
                    "name": "Plaid Checking",
                    "official_name": "Plaid Gold Standard Checking",
                    "mask": "0000",
                    "type": "depository",
                    "subtype": "checking",
                    "balances": {"current": 110.5, "available": 100, "iso_currency_code": "USD"},
                }],
            })
        if endpoint == "transactions/get":
            options = body["options"]
            page = self.transactions[options["offset"]:options["offset"] + options["count"]]
            return httpx.Response(200, json={
                "transactions": page,
                "total_transactions": len(self.transactions),
            })
        return httpx.Response(404)


def make_plaid(stub: PlaidStub) -> PlaidAggregator:
    return PlaidAggregator(
        client_id="client-1",
        secret="secret-1",
        environment="sandbox",
        transport=httpx.MockTransport(stub),
    )


class TestPlaidAggregator:
    """Tests for the Plaid client."""

    @pytest.mark.asyncio
    async def test_link_token(self):
        stub = PlaidStub()

        token = await make_plaid(stub).create_link_token("user-1", "Ledgerflow", products=["TRANSACTIONS", "bogus"])

        assert token.link_token == "link-sandbox-1"
        endpoint, body = stub.requests[0]
        assert endpoint == "link/token/create"
        assert body["client_id"] == "client-1"
        assert body["secret"] == "secret-1"
        assert body["user"] == {"client_user_id": "user-1"}
        assert body["products"] == ["transactions", "transactions"]

    @pytest.mark.asyncio
    async def test_exchange_public_token(self):
        exchange = await make_plaid(PlaidStub()).exchange_public_token("public-1")

        assert exchange.access_token == "access-1"
        assert exchange.item_id == "item-1"

    @pytest.mark.asyncio
    async def test_fetch_accounts(self):
        accounts = await make_plaid(PlaidStub()).fetch_accounts("access-1")

        assert len(accounts) == 1
        account = accounts[0]
        assert account.id == "plaid-acc-1"
        assert account.institution_id == "ins_3"
        assert account.name == "Plaid Gold Standard Checking"
        assert account.type == "depository"
        assert account.balance == Decimal("110.5")
        assert account.available_balance == Decimal("100")

    @pytest.mark.asyncio
    async def test_outflows_become_negative(self):
        stub = PlaidStub([plaid_transaction("t1", 12.5), plaid_transaction("t2", -500)])

        transactions = await make_plaid(stub).fetch_transactions(
            "access-1", "plaid-acc-1", date(2024, 1, 1), date(2024, 1, 31)
        )

        assert [t.amount for t in transactions] == [Decimal("-12.5"), Decimal("500")]
        assert transactions[0].category == "Food and Drink"
        assert transactions[0].metadata["plaidCategory"] == ["Food and Drink", "Restaurants"]
        assert transactions[0].posted_at == date(2024, 1, 5)

    @pytest.mark.asyncio
    async def test_pagination(self, monkeypatch):
        monkeypatch.setattr(PlaidAggregator, "PAGE_SIZE", 2)
        stub = PlaidStub([plaid_transaction(f"t{i}", 1) for i in range(5)])

        transactions = await make_plaid(stub).fetch_transactions(
            "access-1", "plaid-acc-1", date(2024, 1, 1), date(2024, 1, 31)
        )

        assert [t.id for t in transactions] == ["t0", "t1", "t2", "t3", "t4"]
        offsets = [body["options"]["offset"] for _, body in stub.requests]
        assert offsets == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_api_error_raises(self):
        with pytest.raises(AggregatorError) as exc_info:
            await make_plaid(PlaidStub(status_code=400)).fetch_accounts("access-1")

        assert exc_info.value.details["plaid_error"] == "ITEM_LOGIN_REQUIRED"
        assert exc_info.value.details["service"] == "aggregator"

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        aggregator = PlaidAggregator("c", "s", transport=httpx.MockTransport(handler))

        with pytest.raises(AggregatorError):
            await aggregator.fetch_accounts("access-1")

    def test_environment_urls(self):
        assert PlaidAggregator("c", "s", environment="production").api_base_url == "https://production.plaid.com"
        assert PlaidAggregator("c", "s", environment="nope").api_base_url == "https://sandbox.plaid.com"
        assert PlaidAggregator("c", "s").is_live


class TestMockBankAggregator:
    """Tests for the offline aggregator."""

    @pytest.fixture
    def aggregator(self) -> MockBankAggregator:
        account = ExternalAccount(
            id="mock-acc",
            institution_id="mock-bank",
            name="Mock Checking",
            type="depository",
            currency="USD",
            balance=Decimal("100"),
            as_of=datetime(2024, 1, 31, tzinfo=timezone.utc),
        )
        transactions = [
            ExternalTransaction(
                id=f"m{day}",
                account_id="mock-acc",
                posted_at=date(2024, 1, day),
                description="Coffee",
                amount=Decimal("-3"),
                currency="USD",
            )
            for day in (1, 15, 31)
        ]
        return MockBankAggregator(accounts=[account], transactions=transactions)

    @pytest.mark.asyncio
    async def test_link_token_always_fails(self, aggregator):
        with pytest.raises(AggregatorError):
            await aggregator.create_link_token("user-1", "Ledgerflow")

    @pytest.mark.asyncio
    async def test_serves_configured_data(self, aggregator):
        exchange = await aggregator.exchange_public_token("public")
        accounts = await aggregator.fetch_accounts(exchange.access_token)

        assert exchange.access_token == "mock-access-token"
        assert [a.id for a in accounts] == ["mock-acc"]
        assert not aggregator.is_live

    @pytest.mark.asyncio
    async def test_transactions_filtered_by_window(self, aggregator):
        transactions = await aggregator.fetch_transactions(
            "token", "mock-acc", date(2024, 1, 2), date(2024, 1, 31)
        )
        assert [t.id for t in transactions] == ["m15", "m31"]

    @pytest.mark.asyncio
    async def test_without_data_raises(self):
        aggregator = MockBankAggregator()

        with pytest.raises(AggregatorError):
            await aggregator.fetch_accounts("token")
        with pytest.raises(AggregatorError):
            await aggregator.exchange_public_token("public")
