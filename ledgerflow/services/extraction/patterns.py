"""
Deterministic statement heuristics.

Header, period and balance inference plus line-by-line transaction
matching. Each rule table is ordered; the first matching template wins.
"""
import re
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import structlog

from ledgerflow.models.entities import resolve_transaction_type
from ledgerflow.services.date_parser import (
    DATE_PATTERN,
    SHORT_DATE_PATTERN,
    current_month_period,
    normalize_date,
)
from ledgerflow.services.numeric_parser import get_amount_parser

logger = structlog.get_logger(__name__)

ACCOUNT_NUMBER_PATTERN = re.compile(r"account\s*(?:number|#)?[:\s]+(\d+)", re.IGNORECASE)
CURRENCY_CODE_PATTERN = re.compile(r"\b(USD|EUR|GBP|CAD|AUD)\b")

ACCOUNT_TYPE_KEYWORDS = [
    (re.compile(r"checking", re.IGNORECASE), "CHECKING"),
    (re.compile(r"savings", re.IGNORECASE), "SAVINGS"),
    (re.compile(r"credit", re.IGNORECASE), "CREDIT"),
]

INSTITUTION_FRAGMENTS = [
    (re.compile(r"chase", re.IGNORECASE), "chase"),
    (re.compile(r"bank\s+of\s+america", re.IGNORECASE), "bofa"),
    (re.compile(r"wells\s+fargo", re.IGNORECASE), "wells"),
    (re.compile(r"citibank", re.IGNORECASE), "citi"),
]

PERIOD_RANGE_PATTERN = re.compile(
    rf"({DATE_PATTERN})\s*(?:to|-|through)\s*({DATE_PATTERN})", re.IGNORECASE
)
STATEMENT_PERIOD_PATTERN = re.compile(r"statement\s+period", re.IGNORECASE)

_BALANCE_AMOUNT = r"[:\s]+(\(?-?\$?\s*-?[\d,]+(?:\.\d+)?\)?)"
OPENING_BALANCE_PATTERN = re.compile(
    r"(?:opening|beginning|previous)\s+balance" + _BALANCE_AMOUNT, re.IGNORECASE
)
CLOSING_BALANCE_PATTERN = re.compile(
    r"(?:closing|ending|current|new)\s+balance" + _BALANCE_AMOUNT, re.IGNORECASE
)

TRANSACTION_PATTERNS = [
    # 01/15/2024  AMAZON.COM  -45.67  1,234.56
    re.compile(
        rf"({SHORT_DATE_PATTERN})\s+(.+?)\s+([-+]?\$?\s*[\d,]+\.?\d{{2}})\s*(\$?\s*[\d,]+\.?\d{{2}})?$"
    ),
    # 01/15  Coffee Shop  4.5
    re.compile(rf"^({SHORT_DATE_PATTERN})\s+(.{{3,50}}?)\s+([-+]?\$?\s*[\d,]+\.?\d{{0,2}})$"),
    # 01/15/2024  Card fee  (12.00)
    re.compile(rf"^({SHORT_DATE_PATTERN})\s+(.+?)\s+([-+]?\(?\$?\s*[\d,]+\.?\d{{0,2}}\)?)\s*$"),
]

HEADER_LABELS = re.compile(
    r"^(date|description|amount|balance|transaction|posting|reference)$", re.IGNORECASE
)
MIN_LINE_LENGTH = 10
MIN_DESCRIPTION_LENGTH = 3


@dataclass
class AccountHeader:
    """Account details inferred from statement text."""

    account_id: str
    institution_id: str
    name: str = "Imported Account"
    type: str = "CHECKING"
    mask: Optional[str] = None
    currency: Optional[str] = None


def infer_account_header(
    lines: List[str],
    account_id_hint: Optional[str] = None,
    institution_id: Optional[str] = None,
) -> AccountHeader:
    """Scan every line; later matches overwrite earlier ones."""
    header = AccountHeader(
        account_id=account_id_hint or f"acc-{int(time.time() * 1000)}",
        institution_id=institution_id or "unknown-bank",
    )

    for line in lines:
        account_match = ACCOUNT_NUMBER_PATTERN.search(line)
        if account_match:
            number = account_match.group(1)
            header.account_id = number
            header.mask = number[-4:]

        for pattern, account_type in ACCOUNT_TYPE_KEYWORDS:
            if pattern.search(line):
                header.type = account_type
                break

        currency_match = CURRENCY_CODE_PATTERN.search(line)
        if currency_match:
            header.currency = currency_match.group(1)

        if header.institution_id == "unknown-bank":
            for pattern, institution in INSTITUTION_FRAGMENTS:
                if pattern.search(line):
                    header.institution_id = institution
                    break

    return header


def infer_period(lines: List[str], today: Optional[date] = None) -> Tuple[date, date]:
    """Explicit date range first, then a "statement period" line, else the current month."""
    start: Optional[date] = None
    end: Optional[date] = None

    for line in lines:
        range_match = PERIOD_RANGE_PATTERN.search(line)
        if range_match:
            try:
                start = normalize_date(range_match.group(1), today)
                end = normalize_date(range_match.group(2), today)
                break
            except ValueError:
                start = end = None

        if STATEMENT_PERIOD_PATTERN.search(line):
            dates = re.findall(DATE_PATTERN, line)
            if len(dates) >= 2:
                try:
                    start = normalize_date(dates[0], today)
                    end = normalize_date(dates[-1], today)
                except ValueError:
                    start = end = None

    if start is None or end is None:
        return current_month_period(today)
    return start, end


def infer_balances(lines: List[str]) -> Tuple[Decimal, Decimal]:
    """Opening and closing balance; missing values are zero."""
    parser = get_amount_parser()
    opening = Decimal("0")
    closing = Decimal("0")

    for line in lines:
        opening_match = OPENING_BALANCE_PATTERN.search(line)
        if opening_match:
            value = parser.parse_value(opening_match.group(1))
            if value is not None:
                opening = value

        closing_match = CLOSING_BALANCE_PATTERN.search(line)
        if closing_match:
            value = parser.parse_value(closing_match.group(1))
            if value is not None:
                closing = value

    return opening, closing


def extract_pattern_transactions(
    lines: List[str],
    account_id: str,
    currency: str,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Match transaction lines against the ordered templates.

    Returns:
        Transaction payloads in document order, shaped for ParsedTransaction.
    """
    parser = get_amount_parser()
    transactions: List[Dict[str, Any]] = []
    attempted = 0

    for line in lines:
        trimmed = line.strip()
        if len(trimmed) < MIN_LINE_LENGTH:
            continue

        for pattern in TRANSACTION_PATTERNS:
            match = pattern.search(trimmed)
            if not match:
                continue
            attempted += 1

            description = (match.group(2) or "").strip()
            if len(description) < MIN_DESCRIPTION_LENGTH or HEADER_LABELS.match(description):
                continue

            try:
                posted_date = normalize_date(match.group(1), today)
            except ValueError:
                continue

            amount = parser.parse_value(match.group(3))
            if amount is None or amount == 0:
                continue

            balance_str = match.group(4) if pattern.groups >= 4 else None
            balance_after = parser.parse_value(balance_str) if balance_str else None

            transactions.append({
                "accountId": account_id,
                "postedDate": posted_date,
                "description": description,
                "amount": amount,
                "currency": currency,
                "type": resolve_transaction_type(amount),
                "balanceAfter": balance_after,
                "metadata": {"extractedFromLine": True, "rawLine": line},
            })
            break

    logger.info(
        "pattern_extraction_complete",
        lines=len(lines),
        attempted_matches=attempted,
        transactions_found=len(transactions),
    )
    return transactions
