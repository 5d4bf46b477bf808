"""
Ledger assembly shared by statement ingestion and aggregator sync.

For each source line: normalize the description, build the dedupe hash,
categorize the whole batch in one call, convert to the base currency
and assemble the Transaction entity. Lines keep their source order.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog

from ledgerflow.models.entities import Account, Transaction, TransactionType, resolve_transaction_type
from ledgerflow.schemas.categorization import CategorizationContext, CategorizationItem
from ledgerflow.services.categorizer import Categorizer
from ledgerflow.services.description_normalizer import NORMALIZER_VERSION, normalize_description
from ledgerflow.services.fx_converter import FxConverter
from ledgerflow.services.transaction_hasher import HASH_VERSION, build_transaction_hash

logger = structlog.get_logger(__name__)


@dataclass
class LedgerLine:
    """A source transaction before normalization."""

    posted_date: date
    description: str
    amount: Decimal
    currency: str
    external_id: Optional[str] = None
    type: Optional[TransactionType] = None
    balance_after: Optional[Decimal] = None
    category_hint: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class LedgerBuilder:
    """Turns LedgerLines into categorized, converted Transactions."""

    def __init__(self, categorizer: Categorizer, fx_converter: FxConverter):
        self.categorizer = categorizer
        self.fx_converter = fx_converter

    async def build(
        self,
        lines: List[LedgerLine],
        account: Account,
        base_currency: Optional[str] = None,
        extra_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[Transaction]:
        """
        Assemble transactions for one account.

        Args:
            lines: Source lines in document order.
            account: Owning account; its id seeds every hash.
            base_currency: Target currency; None keeps source currencies.
            extra_metadata: Values stamped on every transaction (e.g. userId).

        Returns:
            Transactions in the order of lines.
        """
        if not lines:
            return []

        normalized = [normalize_description(line.description) for line in lines]
        hashes = [
            build_transaction_hash(account.id, line.posted_date, line.amount, line.currency, norm)
            for line, norm in zip(lines, normalized)
        ]

        items = [
            CategorizationItem(
                dedupe_hash=dedupe_hash,
                description=line.description,
                amount=line.amount,
                currency=line.currency,
                metadata=line.metadata,
            )
            for line, dedupe_hash in zip(lines, hashes)
        ]
        assignments = await self.categorizer.categorize(
            items,
            CategorizationContext(account_id=account.id, institution_id=account.institution_id),
        )

        transactions = []
        for line, norm, dedupe_hash in zip(lines, normalized, hashes):
            transactions.append(
                await self._assemble(
                    line, norm, dedupe_hash, account, assignments.get(dedupe_hash),
                    base_currency, extra_metadata or {},
                )
            )

        logger.debug(
            "ledger_built",
            account_id=account.id,
            transactions=len(transactions),
            base_currency=base_currency,
        )
        return transactions

    async def _assemble(
        self,
        line: LedgerLine,
        normalized_description: str,
        dedupe_hash: str,
        account: Account,
        assignment,
        base_currency: Optional[str],
        extra_metadata: Dict[str, Any],
    ) -> Transaction:
        amount = line.amount
        currency = line.currency
        metadata: Dict[str, Any] = dict(line.metadata)

        needs_conversion = bool(base_currency) and currency.upper() != base_currency.upper()
        if needs_conversion:
            result = await self.fx_converter.convert(
                line.amount, line.currency, base_currency, line.posted_date
            )
            amount = result.converted_amount
            currency = base_currency.upper()
            metadata["convertedCurrency"] = currency
            metadata["conversionRate"] = str(result.rate)
            metadata["originalAmount"] = str(line.amount)

        # Stored metadata stays JSON-safe
        metadata["originalCurrency"] = line.currency
        if line.balance_after is not None:
            metadata["balanceAfter"] = str(line.balance_after)
        metadata["hashVersion"] = HASH_VERSION
        metadata["normalizerVersion"] = NORMALIZER_VERSION
        metadata.update(extra_metadata)

        category = (assignment.category if assignment else None) or line.category_hint
        return Transaction(
            id=line.external_id or dedupe_hash,
            account_id=account.id,
            posted_date=line.posted_date,
            description=line.description,
            original_description=line.metadata.get("originalDescription"),
            amount=amount,
            currency=currency,
            type=resolve_transaction_type(line.amount, line.type),
            category=category,
            subcategory=assignment.subcategory if assignment else None,
            normalized_description=normalized_description,
            dedupe_hash=dedupe_hash,
            metadata=metadata,
        )
