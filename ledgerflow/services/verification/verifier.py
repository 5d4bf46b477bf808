"""
Ingestion verifier.

Remote verification first; on any unavailability the local reconciler
runs, or, with fallback checks disabled, a PENDING report is issued.
"""
import asyncio
from typing import Optional

import structlog

from ledgerflow.exceptions import VerificationFailure
from ledgerflow.models.entities import VerificationStatus
from ledgerflow.schemas.statement import ParsedStatement
from ledgerflow.schemas.verification import VerificationReport
from ledgerflow.services.storage.base import StorageBackend
from ledgerflow.services.verification.local_checks import FALLBACK_SOURCE, StatementReconciler
from ledgerflow.services.verification.remote import RemoteVerifier

logger = structlog.get_logger(__name__)


class IngestionVerifier:
    """Produces exactly one VerificationReport per statement."""

    def __init__(
        self,
        remote: Optional[RemoteVerifier] = None,
        fallback_checks: bool = True,
        reconciler: Optional[StatementReconciler] = None,
        timeout: float = 10.0,
    ):
        self.remote = remote
        self.fallback_checks = fallback_checks
        self.reconciler = reconciler or StatementReconciler()
        self.timeout = timeout

    async def verify(self, statement: ParsedStatement, statement_id: str) -> VerificationReport:
        """
        Verify a statement.

        Args:
            statement: Extracted statement.
            statement_id: Id the report is filed under.

        Returns:
            Remote report, local fallback report or a PENDING report.
        """
        if self.remote is not None:
            report = await self._remote_report(statement, statement_id)
            if report is not None:
                return report

        if self.fallback_checks:
            return self.reconciler.check(statement, statement_id)

        logger.warning("verification_pending_verifier_unavailable", statement_id=statement_id)
        return VerificationReport(
            statement_id=statement_id,
            status=VerificationStatus.PENDING,
            confidence=0.0,
            issues=[],
            source=FALLBACK_SOURCE,
            metadata={"reason": "verifier_unavailable"},
        )

    async def _remote_report(
        self, statement: ParsedStatement, statement_id: str
    ) -> Optional[VerificationReport]:
        try:
            return await asyncio.wait_for(
                self.remote.verify(
                    statement,
                    statement_id=statement_id,
                    source=statement.source.value,
                    metadata=statement.metadata,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("remote_verifier_timeout", statement_id=statement_id, timeout=self.timeout)
            return None


class VerificationGate:
    """
    Verifies, persists the report, and stops ingestion on fatal reports.

    Every report is saved, including the one that aborts.
    """

    def __init__(self, verifier: IngestionVerifier, storage: StorageBackend):
        self.verifier = verifier
        self.storage = storage

    async def validate(self, statement: ParsedStatement, statement_id: str) -> VerificationReport:
        """
        Raises:
            VerificationFailure: If the report is FAIL with an ERROR issue.
        """
        report = await self.verifier.verify(statement, statement_id)
        await self.storage.save_verification_report(report)

        if report.is_fatal:
            logger.warning(
                "statement_verification_failed",
                statement_id=statement_id,
                issue_codes=report.issue_codes,
                source=report.source,
            )
            raise VerificationFailure(statement_id, report.issue_codes)

        return report
