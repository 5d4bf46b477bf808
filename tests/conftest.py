"""
Pytest configuration and fixtures.
"""
import copy
from typing import Any, Dict, Generator

import pytest
from sqlalchemy.engine import Engine

from ledgerflow.config import Settings
from ledgerflow.database import Base, build_engine, get_session_factory, init_db
from ledgerflow.services.storage import InMemoryStorage, SqlStorage

STRUCTURED_STATEMENT: Dict[str, Any] = {
    "account": {
        "accountId": "acc-checking-001",
        "institutionId": "first-bank",
        "name": "Everyday Checking",
        "mask": "0001",
        "type": "CHECKING",
        "currency": "USD",
    },
    "period": {"start": "2024-01-01", "end": "2024-01-31"},
    "openingBalance": 1500,
    "closingBalance": 3810,
    "transactions": [
        {
            "accountId": "acc-checking-001",
            "postedDate": "2024-01-05",
            "description": "Payroll ACME Corp",
            "amount": 2500,
            "currency": "USD",
        },
        {
            "accountId": "acc-checking-001",
            "postedDate": "2024-01-12",
            "description": "Grocery Store",
            "amount": -190,
            "currency": "USD",
        },
    ],
    "currency": "USD",
    "source": "DOCUMENT",
    "metadata": {"userId": "user-1"},
}

TEXT_STATEMENT = b"""FIRST NATIONAL CHASE BANK
Checking Account
Account Number: 123456789
Statement Period: 01/01/2024 - 01/31/2024
Opening Balance: $1,500.00
Date Description Amount Balance
01/05/2024 Payroll ACME Corp 2,500.00 4,000.00
01/12/2024 Grocery Store -190.00 3,810.00
Closing Balance: $3,810.00
"""


@pytest.fixture
def structured_statement() -> Dict[str, Any]:
    """The 1500 → 3810 statement as a structured payload."""
    return copy.deepcopy(STRUCTURED_STATEMENT)


@pytest.fixture
def text_statement() -> bytes:
    """The same statement as plain text."""
    return TEXT_STATEMENT


@pytest.fixture
def settings() -> Settings:
    """Settings with every external collaborator switched off."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        json_logs=False,
        openrouter_api_key=None,
        verifier_api_key="",
        plaid_client_id=None,
        plaid_secret=None,
    )


@pytest.fixture
def sql_engine() -> Generator[Engine, None, None]:
    """Fresh in-memory SQLite engine with all tables."""
    engine = build_engine("sqlite://")
    init_db(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def sql_storage(sql_engine: Engine) -> SqlStorage:
    return SqlStorage(get_session_factory(sql_engine))


@pytest.fixture(params=["memory", "sql"])
def storage(request, sql_engine: Engine):
    """Each storage backend in turn."""
    if request.param == "memory":
        return InMemoryStorage()
    return SqlStorage(get_session_factory(sql_engine))
