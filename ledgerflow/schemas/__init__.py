"""Schemas package."""
from ledgerflow.schemas.aggregator import ExternalAccount, ExternalTransaction, LinkToken, TokenExchange
from ledgerflow.schemas.categorization import CategorizationContext, CategorizationItem, CategoryAssignment
from ledgerflow.schemas.statement import ParsedAccount, ParsedStatement, ParsedTransaction, StatementPeriod
from ledgerflow.schemas.verification import IssueSeverity, VerificationIssue, VerificationReport

__all__ = [
    "ExternalAccount", "ExternalTransaction", "LinkToken", "TokenExchange",
    "CategorizationContext", "CategorizationItem", "CategoryAssignment",
    "ParsedAccount", "ParsedStatement", "ParsedTransaction", "StatementPeriod",
    "IssueSeverity", "VerificationIssue", "VerificationReport",
]
