"""
Layered statement extractor.

Strategies, each short-circuiting on success:
1. Structured passthrough of metadata["structuredData"]
2. Text extraction (pdfplumber or UTF-8)
3. Header, period and balance inference
4. Transaction lines: assisted extraction, falling back to patterns
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from ledgerflow.exceptions import ValidationFailure
from ledgerflow.models.entities import StatementSource, resolve_transaction_type
from ledgerflow.schemas.statement import ParsedStatement
from ledgerflow.services.extraction.assisted import (
    AssistedExtractor,
    relevant_transaction_window,
)
from ledgerflow.services.extraction.patterns import (
    extract_pattern_transactions,
    infer_account_header,
    infer_balances,
    infer_period,
)
from ledgerflow.services.extraction.text_extractor import TextExtractor

logger = structlog.get_logger(__name__)


@dataclass
class ExtractionOptions:
    """Per-upload extraction hints."""

    statement_id: str
    account_id_hint: Optional[str] = None
    institution_id: Optional[str] = None
    password: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class AssistedLine(BaseModel):
    """One entry of an assist reply."""

    posted: date = Field(..., alias="date")
    description: str = Field(..., min_length=1)
    amount: Decimal
    balance: Optional[Decimal] = None


class StatementExtractor:
    """
    Turns raw statement bytes into a ParsedStatement.

    The assist capability is optional; without it, or when it fails,
    transactions come from the deterministic line patterns.
    """

    def __init__(
        self,
        text_extractor: Optional[TextExtractor] = None,
        assistant: Optional[AssistedExtractor] = None,
        allow_structured_passthrough: bool = True,
        assist_timeout: float = 25.0,
        assist_max_chars: int = 20000,
    ):
        self.text_extractor = text_extractor or TextExtractor()
        self.assistant = assistant
        self.allow_structured_passthrough = allow_structured_passthrough
        self.assist_timeout = assist_timeout
        self.assist_max_chars = assist_max_chars

    async def extract(self, raw: bytes, options: ExtractionOptions) -> ParsedStatement:
        """
        Extract a statement.

        Raises:
            ValidationFailure: If structured data does not fit the schema.
            ExtractionFailure: If no text can be read from the payload.
        """
        metadata = dict(options.metadata or {})

        if self.allow_structured_passthrough and metadata.get("structuredData"):
            return self._passthrough(metadata["structuredData"], options.statement_id)

        # pdfplumber parsing is blocking
        text = await asyncio.to_thread(
            self.text_extractor.extract_text, raw, password=options.password
        )
        lines = [line.strip() for line in text.split("\n")]

        header = infer_account_header(lines, options.account_id_hint, options.institution_id)
        currency = header.currency or "USD"
        period_start, period_end = infer_period(lines)
        opening_balance, closing_balance = infer_balances(lines)

        transactions = None
        method = "pattern"
        if self.assistant is not None:
            transactions = await self._assisted_transactions(text, header.account_id, currency)
            if transactions is not None:
                method = "assisted"
        if transactions is None:
            transactions = extract_pattern_transactions(lines, header.account_id, currency)

        metadata.pop("structuredData", None)
        metadata.update({
            "extractionMethod": method,
            "extractedLines": len(lines),
            "transactionsFound": len(transactions),
        })

        payload = {
            "account": {
                "accountId": header.account_id,
                "institutionId": header.institution_id,
                "name": header.name,
                "mask": header.mask,
                "type": header.type,
                "currency": currency,
            },
            "period": {"start": period_start, "end": period_end},
            "openingBalance": opening_balance,
            "closingBalance": closing_balance,
            "transactions": transactions,
            "currency": currency,
            "source": StatementSource.DOCUMENT,
            "metadata": metadata,
        }
        try:
            statement = ParsedStatement.model_validate(payload)
        except ValidationError as e:
            raise ValidationFailure(
                "Extracted statement failed schema validation",
                errors=e.errors(include_url=False),
            ) from e

        logger.info(
            "statement_extracted",
            statement_id=options.statement_id,
            account_id=header.account_id,
            institution=header.institution_id,
            method=method,
            transactions_found=len(transactions),
            period_start=period_start.isoformat(),
            period_end=period_end.isoformat(),
            text_length=len(text),
        )
        return statement

    def _passthrough(self, structured: Any, statement_id: str) -> ParsedStatement:
        try:
            statement = ParsedStatement.model_validate(structured)
        except ValidationError as e:
            logger.warning("structured_passthrough_invalid", statement_id=statement_id)
            raise ValidationFailure(
                "Structured statement data failed schema validation",
                errors=e.errors(include_url=False),
            ) from e

        logger.info(
            "structured_passthrough",
            statement_id=statement_id,
            transactions_found=len(statement.transactions),
        )
        return statement.model_copy(
            update={"metadata": {**statement.metadata, "extractionMethod": "passthrough"}}
        )

    async def _assisted_transactions(
        self, text: str, account_id: str, currency: str
    ) -> Optional[List[Dict[str, Any]]]:
        """Returns None whenever the assist result cannot be used."""
        window = relevant_transaction_window(text, self.assist_max_chars)
        logger.info("assisted_extraction_started", window_chars=len(window), text_chars=len(text))

        try:
            items = await asyncio.wait_for(
                self.assistant.extract_transactions(window), timeout=self.assist_timeout
            )
            if not isinstance(items, list):
                raise TypeError(f"Assist reply is a {type(items).__name__}, not a list")
            lines = [AssistedLine.model_validate(item) for item in items]
        except asyncio.TimeoutError:
            logger.warning("assisted_extraction_timeout", timeout=self.assist_timeout)
            return None
        except (ValueError, TypeError) as e:
            # pydantic's ValidationError is a ValueError
            logger.warning("assisted_extraction_unusable", error=str(e))
            return None
        except Exception as e:
            logger.error("assisted_extraction_failed", error=str(e))
            return None

        logger.info("assisted_extraction_complete", transactions_found=len(lines))
        return [
            {
                "accountId": account_id,
                "postedDate": line.posted,
                "description": line.description,
                "amount": line.amount,
                "currency": currency,
                "type": resolve_transaction_type(line.amount),
                "balanceAfter": line.balance,
                "metadata": {"extractedByLLM": True},
            }
            for line in lines
        ]
