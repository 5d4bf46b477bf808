"""
Custom exceptions for Ledgerflow.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Any, Dict, List, Optional


class LedgerflowError(Exception):
    """
    Base exception for all Ledgerflow errors.

    Attributes:
        error_code: Unique error code (e.g., LGF-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "LGF-000"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for callers."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Extraction Errors (LGF-1XX)
class ExtractionFailure(LedgerflowError):
    """Statement content could not be read or decoded."""
    error_code = "LGF-100"

    def __init__(self, message: str = "Failed to extract statement", **kwargs):
        super().__init__(message, **kwargs)


class ValidationFailure(LedgerflowError):
    """Structured statement payload does not match the expected schema."""
    error_code = "LGF-101"

    def __init__(self, message: str = "Validation failed", errors: Optional[list] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)


# Verification Errors (LGF-2XX)
class VerificationFailure(LedgerflowError):
    """Statement failed verification with at least one error-severity issue."""
    error_code = "LGF-200"

    def __init__(self, statement_id: str, issue_codes: List[str], **kwargs):
        self.statement_id = statement_id
        self.issue_codes = list(issue_codes)
        message = f"Statement {statement_id} failed verification: {', '.join(self.issue_codes)}"
        super().__init__(
            message,
            details={"statement_id": statement_id, "issue_codes": self.issue_codes},
            **kwargs,
        )


# Conversion Errors (LGF-3XX)
class ConversionFailure(LedgerflowError):
    """Currency conversion could not be performed."""
    error_code = "LGF-300"

    def __init__(self, from_currency: str, to_currency: str, message: Optional[str] = None, **kwargs):
        msg = message or f"No exchange rate available for {from_currency} -> {to_currency}"
        super().__init__(msg, details={"from": from_currency, "to": to_currency}, **kwargs)


# Storage Errors (LGF-4XX)
class StorageError(LedgerflowError):
    """Storage operation failed."""
    error_code = "LGF-400"

    def __init__(self, message: str = "Storage operation failed", **kwargs):
        super().__init__(message, **kwargs)


class StatementNotFoundError(StorageError):
    """Statement not found in storage."""
    error_code = "LGF-401"

    def __init__(self, statement_id: str, **kwargs):
        message = f"Statement {statement_id} not found"
        super().__init__(message, details={"statement_id": statement_id}, **kwargs)


# External Service Errors (LGF-9XX)
class ExternalServiceError(LedgerflowError):
    """External service call failed."""
    error_code = "LGF-900"

    def __init__(self, service_name: str, message: Optional[str] = None, **kwargs):
        msg = message or f"External service '{service_name}' is unavailable"
        details = kwargs.pop("details", {})
        details["service"] = service_name
        super().__init__(msg, details=details, **kwargs)


class AggregatorError(ExternalServiceError):
    """Bank aggregator call failed or the aggregator is not configured."""
    error_code = "LGF-901"

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__("aggregator", message, **kwargs)


class PipelineTimeoutError(ExternalServiceError):
    """Pipeline exceeded the caller's deadline."""
    error_code = "LGF-902"

    def __init__(self, operation: str, timeout: float, **kwargs):
        self.operation = operation
        self.timeout = timeout
        message = f"{operation} did not complete within {timeout}s"
        super().__init__(operation, message, details={"timeout": timeout}, **kwargs)
