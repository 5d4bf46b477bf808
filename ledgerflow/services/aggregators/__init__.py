"""Bank aggregator clients."""
from ledgerflow.services.aggregators.base import BankAggregator
from ledgerflow.services.aggregators.mock import MockBankAggregator
from ledgerflow.services.aggregators.plaid import PlaidAggregator

__all__ = ["BankAggregator", "MockBankAggregator", "PlaidAggregator"]
