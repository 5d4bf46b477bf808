"""
Tests for the rule-based categorizer.
"""
from decimal import Decimal

import pytest

from ledgerflow.schemas.categorization import CategorizationContext, CategorizationItem
from ledgerflow.services.categorizer import CATEGORY_RULES, RuleBasedCategorizer


def _item(description: str, amount: str, dedupe_hash: str = "h1") -> CategorizationItem:
    return CategorizationItem(
        dedupe_hash=dedupe_hash,
        description=description,
        amount=Decimal(amount),
        currency="USD",
    )


class TestRuleBasedCategorizer:
    """Tests for RuleBasedCategorizer."""

    @pytest.fixture
    def categorizer(self) -> RuleBasedCategorizer:
        return RuleBasedCategorizer()

    @pytest.mark.parametrize(
        "description,amount,category,subcategory",
        [
            ("Payroll ACME Corp", "2500", "Income", "Salary"),
            ("Grocery Store", "-190", "Food & Dining", "Groceries"),
            ("STARBUCKS #1234", "-5.40", "Food & Dining", "Coffee Shops"),
            ("UBER EATS ORDER", "-23.10", "Food & Dining", "Food Delivery"),
            ("Uber trip", "-14.00", "Transportation", "Ride Share"),
            ("NETFLIX.COM", "-15.99", "Entertainment", "Streaming Services"),
            ("Monthly rent payment", "-1800", "Housing", "Rent"),
            ("ATM withdrawal", "-100", "Cash & ATM", "ATM Withdrawal"),
            ("State University tuition", "-3000", "Education", "Tuition & Fees"),
        ],
    )
    def test_rule_matches(self, categorizer, description, amount, category, subcategory):
        assignment = categorizer.categorize_one(_item(description, amount))
        assert assignment.category == category
        assert assignment.subcategory == subcategory
        assert assignment.confidence == 0.75
        assert assignment.match_type == "rule"

    def test_first_matching_rule_wins(self, categorizer):
        """'Uber Eats' is delivery, not ride share: the delivery rule comes first."""
        names = [(r.category, r.subcategory) for r in CATEGORY_RULES]
        assert names.index(("Food & Dining", "Food Delivery")) < names.index(("Transportation", "Ride Share"))

    def test_word_boundaries(self, categorizer):
        """'barn' must not trigger the bar rule."""
        assignment = categorizer.categorize_one(_item("Red Barn Hardware", "-30"))
        assert assignment.category != "Food & Dining"

    def test_default_income(self, categorizer):
        assignment = categorizer.categorize_one(_item("XYZZY 42", "12.00"))
        assert (assignment.category, assignment.subcategory) == ("Income", "Other Income")
        assert assignment.confidence == 0.4
        assert assignment.match_type == "default"

    def test_default_large_outflow(self, categorizer):
        assignment = categorizer.categorize_one(_item("XYZZY 42", "-500.01"))
        assert (assignment.category, assignment.subcategory) == ("Bills & Utilities", "Other Bills")
        assert assignment.confidence == 0.35

    def test_default_small_outflow(self, categorizer):
        assignment = categorizer.categorize_one(_item("XYZZY 42", "-500"))
        assert (assignment.category, assignment.subcategory) == ("Shopping", "General Merchandise")
        assert assignment.confidence == 0.35

    @pytest.mark.asyncio
    async def test_batch_keyed_by_hash(self, categorizer):
        items = [_item("Payroll ACME Corp", "2500", "a"), _item("Grocery Store", "-190", "b")]
        context = CategorizationContext(account_id="acc-1")

        result = await categorizer.categorize(items, context)

        assert set(result) == {"a", "b"}
        assert result["a"].category == "Income"
        assert result["b"].subcategory == "Groceries"

    @pytest.mark.asyncio
    async def test_deterministic(self, categorizer):
        items = [_item("Shell gas station", "-45", "a")]
        context = CategorizationContext(account_id="acc-1")

        first = await categorizer.categorize(items, context)
        second = await categorizer.categorize(items, context)

        assert first == second
