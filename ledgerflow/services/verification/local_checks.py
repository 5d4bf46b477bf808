"""
Local reconciliation checks.

Used when the remote verifier is disabled or unavailable:
1. Period ordering: start must not be after end
2. Reconciliation: Σ amounts = closing - opening, within TOLERANCE
3. Duplicate rows: identical account/date/amount/currency/description
"""
from decimal import Decimal
from typing import List, Set, Tuple

import structlog

from ledgerflow.models.entities import VerificationStatus
from ledgerflow.schemas.statement import ParsedStatement
from ledgerflow.schemas.verification import IssueSeverity, VerificationIssue, VerificationReport

logger = structlog.get_logger(__name__)

FALLBACK_SOURCE = "local-fallback"

STATUS_CONFIDENCE = {
    VerificationStatus.PASS: 0.9,
    VerificationStatus.REVIEW: 0.6,
    VerificationStatus.FAIL: 0.1,
}


class StatementReconciler:
    """Runs the fallback checks and derives a status from the issues found."""

    # Statements are printed to the cent; 1.00 absorbs rounding in extracted totals
    TOLERANCE = Decimal("1")

    def check(self, statement: ParsedStatement, statement_id: str) -> VerificationReport:
        """
        Reconcile a statement.

        Args:
            statement: Extracted statement.
            statement_id: Id the report is filed under.

        Returns:
            Report tagged local-fallback.
        """
        issues: List[VerificationIssue] = []
        issues.extend(self._check_period(statement))
        issues.extend(self._check_balances(statement))
        issues.extend(self._check_duplicates(statement))

        status = self.derive_status(issues)
        report = VerificationReport(
            statement_id=statement_id,
            status=status,
            confidence=STATUS_CONFIDENCE[status],
            issues=issues,
            source=FALLBACK_SOURCE,
            metadata={"fallback": True},
        )

        logger.info(
            "local_reconciliation_complete",
            statement_id=statement_id,
            status=status.value,
            issue_codes=report.issue_codes,
        )
        return report

    @staticmethod
    def derive_status(issues: List[VerificationIssue]) -> VerificationStatus:
        """Any ERROR fails, any other issue needs review, none passes."""
        if any(issue.severity == IssueSeverity.ERROR for issue in issues):
            return VerificationStatus.FAIL
        if issues:
            return VerificationStatus.REVIEW
        return VerificationStatus.PASS

    def _check_period(self, statement: ParsedStatement) -> List[VerificationIssue]:
        if statement.period.start <= statement.period.end:
            return []
        return [
            VerificationIssue(
                code="period_invalid",
                message="Statement period start date is after the end date.",
                field="period",
                severity=IssueSeverity.ERROR,
            )
        ]

    def _check_balances(self, statement: ParsedStatement) -> List[VerificationIssue]:
        total_activity = sum((txn.amount for txn in statement.transactions), Decimal("0"))
        balance_delta = statement.closing_balance - statement.opening_balance
        difference = abs(total_activity - balance_delta)

        if difference <= self.TOLERANCE:
            return []

        logger.debug(
            "balance_mismatch",
            total_activity=str(total_activity),
            balance_delta=str(balance_delta),
            difference=str(difference),
        )
        return [
            VerificationIssue(
                code="balance_mismatch",
                message="Transaction totals do not reconcile with balance delta.",
                field="closingBalance",
                severity=IssueSeverity.ERROR,
                remediation=(
                    "Verify transactions list contains all entries and amounts are signed correctly."
                ),
            )
        ]

    def _check_duplicates(self, statement: ParsedStatement) -> List[VerificationIssue]:
        issues: List[VerificationIssue] = []
        seen: Set[Tuple] = set()

        for txn in statement.transactions:
            signature = (txn.account_id, txn.posted_date, txn.amount, txn.currency, txn.description)
            if signature in seen:
                issues.append(
                    VerificationIssue(
                        code="duplicate_transaction",
                        message="Duplicate transaction detected with identical details.",
                        field="transactions",
                        severity=IssueSeverity.WARNING,
                        remediation="Confirm whether the statement includes repeated rows.",
                    )
                )
            else:
                seen.add(signature)

        return issues
