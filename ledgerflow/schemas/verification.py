"""
Pydantic schemas for verification reports.

Reports come either from the remote verifier (validated from its JSON
response) or from the local fallback checks.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from ledgerflow.models.entities import VerificationStatus
from ledgerflow.schemas.statement import CamelModel


class IssueSeverity(str, Enum):
    """Severity of a verification issue."""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class VerificationIssue(CamelModel):
    """A single finding raised during verification."""

    code: str = Field(..., description="Stable issue code, e.g. balance_mismatch")
    message: str = Field(..., description="Human-readable explanation")
    field: Optional[str] = Field(None, description="Statement field the issue refers to")
    severity: IssueSeverity = Field(IssueSeverity.ERROR, description="INFO, WARNING or ERROR")
    remediation: Optional[str] = Field(None, description="Suggested fix")


class VerificationReport(CamelModel):
    """Verification outcome for one statement. Never mutated after creation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    statement_id: str
    status: VerificationStatus
    confidence: float = Field(..., ge=0.0, le=1.0)
    issues: List[VerificationIssue] = Field(default_factory=list)
    source: str
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == IssueSeverity.ERROR for issue in self.issues)

    @property
    def issue_codes(self) -> List[str]:
        return [issue.code for issue in self.issues]

    @property
    def is_fatal(self) -> bool:
        """FAIL with at least one ERROR issue aborts ingestion."""
        return self.status == VerificationStatus.FAIL and self.has_errors
