"""
Content-addressed transaction hashing.

The hash is the sole deduplication key of the ledger: two transactions
with the same hash are the same transaction.
"""
import hashlib
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

HASH_VERSION = 1

_CENTS = Decimal("0.01")


def format_hash_amount(amount: Union[Decimal, int, str]) -> str:
    """Render an amount with exactly two decimals, rounding half up."""
    return str(Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def build_transaction_hash(
    account_id: str,
    posted_date: date,
    amount: Union[Decimal, int, str],
    currency: str,
    normalized_description: str,
) -> str:
    """
    Build the dedupe hash of a transaction.

    Args:
        account_id: Owning account id.
        posted_date: Posting date.
        amount: Signed amount.
        currency: ISO currency code, upper-cased before hashing.
        normalized_description: Output of normalize_description.

    Returns:
        SHA-256 hex digest.
    """
    payload = "|".join([
        account_id,
        posted_date.isoformat(),
        format_hash_amount(amount),
        currency.upper(),
        (normalized_description or "").strip().lower(),
    ])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
