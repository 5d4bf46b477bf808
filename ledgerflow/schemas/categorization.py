"""
Pydantic schemas for categorization input and output.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from ledgerflow.schemas.statement import CamelModel


class CategorizationItem(CamelModel):
    """One transaction handed to the categorizer."""

    dedupe_hash: str
    description: str
    amount: Decimal
    currency: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CategorizationContext(CamelModel):
    """Account context of a categorization batch."""

    account_id: str
    institution_id: Optional[str] = None


class CategoryAssignment(CamelModel):
    """Category chosen for one transaction."""

    dedupe_hash: str
    category: str
    subcategory: Optional[str] = Field(None, alias="subCategory")
    confidence: float = Field(..., ge=0.0, le=1.0)
    match_type: str = Field("rule", description="rule or default")
    risk_flags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
