"""
Pydantic schemas for bank aggregator payloads.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import Field

from ledgerflow.schemas.statement import CamelModel


class ExternalAccount(CamelModel):
    """An account as reported by the aggregator."""

    id: str
    institution_id: str
    name: str
    mask: Optional[str] = None
    type: str
    subtype: Optional[str] = None
    currency: str
    balance: Decimal
    available_balance: Optional[Decimal] = None
    as_of: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ExternalTransaction(CamelModel):
    """A transaction as reported by the aggregator, already signed (positive = inflow)."""

    id: str
    account_id: str
    posted_at: date
    description: str
    amount: Decimal
    currency: str
    category: Optional[str] = None
    merchant_name: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class LinkToken(CamelModel):
    """Link token used by a client to start the aggregator's account linking flow."""

    link_token: str
    expiration: Optional[datetime] = None


class TokenExchange(CamelModel):
    """Result of exchanging a public token for an access token."""

    access_token: str
    item_id: str
