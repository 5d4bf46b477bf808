"""
Pydantic schemas for extracted statements.

A ParsedStatement is the extractor's output and the verifier's input.
Field aliases are camelCase so that structured payloads supplied by
integrations validate as-is.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ledgerflow.models.entities import StatementSource, TransactionType


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParsedTransaction(CamelModel):
    """A transaction line as extracted from a statement."""

    external_id: Optional[str] = Field(None, description="Identifier assigned by the source")
    account_id: str = Field(..., description="Account the line belongs to")
    posted_date: date = Field(..., description="Posting date")
    description: str = Field(..., description="Description as extracted")
    amount: Decimal = Field(..., description="Signed amount, positive = inflow")
    currency: str = Field(..., description="ISO currency code")
    type: Optional[TransactionType] = Field(None, description="Explicit credit/debit flag")
    balance_after: Optional[Decimal] = Field(None, description="Running balance printed on the line")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Extraction provenance")


class ParsedAccount(CamelModel):
    """Account header of an extracted statement."""

    external_id: Optional[str] = None
    account_id: str
    institution_id: str
    name: str
    mask: Optional[str] = None
    type: str
    currency: str


class StatementPeriod(CamelModel):
    """Declared statement period. Ordering is checked by the verifier, not here."""

    start: date
    end: date


class ParsedStatement(CamelModel):
    """Structured statement produced by the extractor."""

    account: ParsedAccount
    period: StatementPeriod
    opening_balance: Decimal
    closing_balance: Decimal
    transactions: List[ParsedTransaction]
    currency: str
    source: StatementSource
    raw_statement_uri: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("source", mode="before")
    @classmethod
    def _legacy_source(cls, value: Any) -> Any:
        # Older payloads tag document statements as "PDF"
        if isinstance(value, str) and value.upper() == "PDF":
            return StatementSource.DOCUMENT
        return value

    @property
    def user_id(self) -> Optional[str]:
        return self.metadata.get("userId")
