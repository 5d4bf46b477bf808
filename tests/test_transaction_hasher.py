"""
Unit tests for description normalization and transaction hashing.
"""
from datetime import date
from decimal import Decimal

import pytest

from ledgerflow.services.description_normalizer import normalize_description
from ledgerflow.services.transaction_hasher import (
    build_transaction_hash,
    format_hash_amount,
)


class TestNormalizeDescription:
    """Tests for normalize_description."""

    def test_punctuation_becomes_space(self):
        """Punctuation is replaced and whitespace collapsed."""
        assert normalize_description("AMAZON.COM*MKTP  US") == "amazon com mktp us"

    def test_trims_and_lowercases(self):
        assert normalize_description("   Grocery   Store  ") == "grocery store"

    def test_compatibility_characters_decomposed(self):
        """NFKD turns full-width letters into ASCII."""
        assert normalize_description("ＣＡＦＥ") == "cafe"

    def test_accents_are_dropped(self):
        # Combining marks are neither word characters nor whitespace
        assert normalize_description("Café") == "cafe"

    def test_empty_input(self):
        assert normalize_description("") == ""
        assert normalize_description(None) == ""

    def test_idempotent(self):
        once = normalize_description("Payroll -- ACME, Corp.")
        assert normalize_description(once) == once


class TestBuildTransactionHash:
    """Tests for build_transaction_hash."""

    @pytest.fixture
    def base_args(self):
        return dict(
            account_id="acc-1",
            posted_date=date(2024, 1, 5),
            amount=Decimal("2500"),
            currency="USD",
            normalized_description="payroll acme corp",
        )

    def test_hash_is_sha256_hex(self, base_args):
        digest = build_transaction_hash(**base_args)
        assert len(digest) == 64
        int(digest, 16)

    def test_identical_inputs_hash_identically(self, base_args):
        """Hashing is deterministic."""
        assert build_transaction_hash(**base_args) == build_transaction_hash(**base_args)

    def test_amount_scale_does_not_matter(self, base_args):
        """2500, 2500.0 and 2500.00 are the same amount."""
        first = build_transaction_hash(**base_args)
        base_args["amount"] = Decimal("2500.000")
        assert build_transaction_hash(**base_args) == first

    def test_currency_case_does_not_matter(self, base_args):
        first = build_transaction_hash(**base_args)
        base_args["currency"] = "usd"
        assert build_transaction_hash(**base_args) == first

    def test_description_whitespace_and_case_do_not_matter(self, base_args):
        first = build_transaction_hash(**base_args)
        base_args["normalized_description"] = "  PAYROLL ACME CORP "
        assert build_transaction_hash(**base_args) == first

    @pytest.mark.parametrize(
        "field,value",
        [
            ("account_id", "acc-2"),
            ("posted_date", date(2024, 1, 6)),
            ("amount", Decimal("-2500")),
            ("currency", "EUR"),
            ("normalized_description", "payroll acme inc"),
        ],
    )
    def test_each_component_changes_hash(self, base_args, field, value):
        first = build_transaction_hash(**base_args)
        base_args[field] = value
        assert build_transaction_hash(**base_args) != first

    def test_amount_rounds_half_up(self):
        assert format_hash_amount(Decimal("1.005")) == "1.01"
        assert format_hash_amount(Decimal("-1.005")) == "-1.01"
        assert format_hash_amount(12) == "12.00"
