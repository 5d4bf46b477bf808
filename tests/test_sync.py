"""
Tests for aggregator sync.
"""
import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List

import pytest

from ledgerflow.exceptions import AggregatorError, PipelineTimeoutError
from ledgerflow.models.entities import AccountType
from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction
from ledgerflow.services.aggregators import MockBankAggregator
from ledgerflow.services.categorizer import RuleBasedCategorizer
from ledgerflow.services.fx_converter import CachedFxConverter
from ledgerflow.services.ledger_builder import LedgerBuilder
from ledgerflow.services.sync import SyncService

START = date(2024, 1, 1)
END = date(2024, 1, 31)


def external_account(account_id: str = "ext-acc-1", currency: str = "USD") -> ExternalAccount:
    return ExternalAccount(
        id=account_id,
        institution_id="ins_3",
        name="Linked Checking",
        mask="1111",
        type="depository",
        subtype="checking",
        currency=currency,
        balance=Decimal("250.00"),
        as_of=datetime(2024, 1, 31, tzinfo=timezone.utc),
    )


def external_transactions(account_id: str = "ext-acc-1", currency: str = "USD") -> List[ExternalTransaction]:
    return [
        ExternalTransaction(
            id="ext-t1",
            account_id=account_id,
            posted_at=date(2024, 1, 3),
            description="NETFLIX.COM",
            amount=Decimal("-15.99"),
            currency=currency,
            category="Service",
        ),
        ExternalTransaction(
            id="ext-t2",
            account_id=account_id,
            posted_at=date(2024, 1, 20),
            description="XYZZY 42",
            amount=Decimal("-20.00"),
            currency=currency,
            category="Travel",
        ),
        ExternalTransaction(
            id="ext-t3",
            account_id=account_id,
            posted_at=date(2024, 2, 10),
            description="Outside the window",
            amount=Decimal("-1.00"),
            currency=currency,
        ),
    ]


def make_sync(storage, aggregator, fx_converter=None) -> SyncService:
    return SyncService(
        aggregator=aggregator,
        ledger_builder=LedgerBuilder(RuleBasedCategorizer(), fx_converter or CachedFxConverter()),
        storage=storage,
        base_currency="USD",
    )


class SlowAggregator(MockBankAggregator):
    """Aggregator whose account listing never returns in time."""

    async def fetch_accounts(self, access_token: str):
        await asyncio.sleep(5)
        return await super().fetch_accounts(access_token)


class TestSyncService:
    """Tests for SyncService."""

    @pytest.mark.asyncio
    async def test_sync_writes_accounts_and_transactions(self, storage):
        aggregator = MockBankAggregator([external_account()], external_transactions())
        service = make_sync(storage, aggregator)

        result = await service.sync("token", START, END, user_id="user-1")

        assert [a.id for a in result.accounts] == ["ext-acc-1"]
        assert [t.id for t in result.transactions] == ["ext-t1", "ext-t2"]

        account = await storage.load_account("ext-acc-1")
        assert account.type == AccountType.CHECKING
        assert account.user_id == "user-1"
        assert account.balance == Decimal("250.00")

        ledger = await service.get_ledger("ext-acc-1")
        assert [t.id for t in ledger] == ["ext-t1", "ext-t2"]
        assert all(t.metadata["userId"] == "user-1" for t in ledger)

    @pytest.mark.asyncio
    async def test_rule_category_beats_aggregator_hint(self, memory_storage):
        aggregator = MockBankAggregator([external_account()], external_transactions())

        result = await make_sync(memory_storage, aggregator).sync("token", START, END, user_id="user-1")

        netflix = result.transactions[0]
        assert netflix.category == "Entertainment"
        assert netflix.subcategory == "Streaming Services"

    @pytest.mark.asyncio
    async def test_repeat_sync_is_idempotent(self, storage):
        aggregator = MockBankAggregator([external_account()], external_transactions())
        service = make_sync(storage, aggregator)

        await service.sync("token", START, END, user_id="user-1")
        await service.sync("token", START, END, user_id="user-1")

        assert len(await service.get_ledger("ext-acc-1")) == 2

    @pytest.mark.asyncio
    async def test_foreign_transactions_are_converted(self, memory_storage):
        aggregator = MockBankAggregator(
            [external_account(currency="CAD")], external_transactions(currency="CAD")
        )
        fx = CachedFxConverter(initial_rates=[("CAD", "USD", Decimal("0.75"), END)])

        result = await make_sync(memory_storage, aggregator, fx).sync("token", START, END, user_id="user-1")

        converted = result.transactions[1]
        assert converted.amount == Decimal("-15.0000")
        assert converted.currency == "USD"
        assert converted.metadata["originalCurrency"] == "CAD"
        assert converted.metadata["originalAmount"] == "-20.00"

    @pytest.mark.asyncio
    async def test_account_without_transactions(self, memory_storage):
        aggregator = MockBankAggregator([external_account()], [])

        result = await make_sync(memory_storage, aggregator).sync("token", START, END, user_id="user-1")

        assert len(result.accounts) == 1
        assert result.transactions == []
        assert await memory_storage.load_account("ext-acc-1") is not None

    @pytest.mark.asyncio
    async def test_unconfigured_aggregator_raises(self, memory_storage):
        service = make_sync(memory_storage, MockBankAggregator())

        with pytest.raises(AggregatorError):
            await service.sync("token", START, END, user_id="user-1")
        with pytest.raises(AggregatorError):
            await service.create_link_token("user-1", "Ledgerflow")

    @pytest.mark.asyncio
    async def test_timeout(self, memory_storage):
        service = make_sync(memory_storage, SlowAggregator([external_account()], []))

        with pytest.raises(PipelineTimeoutError) as exc_info:
            await service.sync("token", START, END, user_id="user-1", timeout=0.05)

        assert exc_info.value.operation == "sync"
