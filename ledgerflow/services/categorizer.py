"""
Rule-based transaction categorizer.

Categorization cascade:
1. First rule in CATEGORY_RULES whose pattern matches the description → confidence 0.75
2. Amount-based default → confidence 0.35-0.4
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

import structlog

from ledgerflow.schemas.categorization import (
    CategorizationContext,
    CategorizationItem,
    CategoryAssignment,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CategoryRule:
    """A matcher and the category it assigns."""

    pattern: re.Pattern
    category: str
    subcategory: Optional[str] = None

    def matches(self, description: str) -> bool:
        return bool(self.pattern.search(description))


def _rule(words: str, category: str, subcategory: str) -> CategoryRule:
    return CategoryRule(re.compile(rf"\b({words})\b", re.IGNORECASE), category, subcategory)


CATEGORY_RULES: List[CategoryRule] = [
    # Income & transfers
    _rule(r"payroll|salary|paycheck|wage|direct deposit", "Income", "Salary"),
    _rule(r"transfer from|received|payment received|refund", "Income", "Transfer"),
    _rule(r"interest|dividend", "Income", "Investment Income"),
    # Dining
    _rule(r"restaurant|restaurante|dining|diner|bistro|pizzeria|sushi|taqueria|burger",
          "Food & Dining", "Restaurants"),
    _rule(r"coffee|cafe|cafeteria|starbucks|dunkin|espresso|cappuccino", "Food & Dining", "Coffee Shops"),
    _rule(r"bar|pub|brewery|taproom|cantina", "Food & Dining", "Bars & Alcohol"),
    # Delivery & groceries
    _rule(r"rappi|uber eats|ubereats|doordash|grubhub|deliveroo|postmates|delivery",
          "Food & Dining", "Food Delivery"),
    _rule(r"grocery|groceries|supermarket|supermercado|market|whole foods|trader joe|safeway"
          r"|kroger|walmart|target|costco", "Food & Dining", "Groceries"),
    # Transportation
    _rule(r"uber|lyft|taxi|cab|rideshare|beat|didi|cabify", "Transportation", "Ride Share"),
    _rule(r"metro|subway|transit|bus|train|railway|mrt", "Transportation", "Public Transit"),
    _rule(r"gas|fuel|petrol|gasoline|shell|chevron|exxon|bp", "Transportation", "Gas & Fuel"),
    _rule(r"parking|park", "Transportation", "Parking"),
    _rule(r"flight|airline|airways|aviation", "Travel", "Flights"),
    # Shopping
    _rule(r"amazon|ebay|etsy|mercado libre", "Shopping", "Online Shopping"),
    _rule(r"tienda|store|shop|boutique|retail", "Shopping", "General Merchandise"),
    _rule(r"clothing|apparel|fashion|zara|h&m|uniqlo|nike|adidas", "Shopping", "Clothing"),
    _rule(r"electronics|apple|best buy|microsoft", "Shopping", "Electronics"),
    # Personal care & health
    _rule(r"shave|barber|salon|haircut|spa|beauty|cosmetic|nail", "Personal Care", "Hair & Beauty"),
    _rule(r"gym|fitness|yoga|pilates|workout|peloton", "Personal Care", "Fitness"),
    _rule(r"pharmacy|drug|cvs|walgreens|medicine|prescription", "Healthcare", "Pharmacy"),
    _rule(r"doctor|dentist|clinic|hospital|medical|health", "Healthcare", "Medical"),
    # Housing & utilities
    _rule(r"rent|lease|landlord", "Housing", "Rent"),
    _rule(r"mortgage|home loan", "Housing", "Mortgage"),
    _rule(r"electric|electricity|power|utility", "Bills & Utilities", "Electricity"),
    _rule(r"water|sewer", "Bills & Utilities", "Water"),
    _rule(r"internet|wifi|broadband|comcast|spectrum|at&t", "Bills & Utilities", "Internet"),
    _rule(r"phone|mobile|cell|verizon|t-mobile|sprint", "Bills & Utilities", "Phone"),
    # Entertainment
    _rule(r"netflix|hulu|disney|spotify|apple music|youtube premium|hbo|prime video",
          "Entertainment", "Streaming Services"),
    _rule(r"movie|cinema|theater|theatre", "Entertainment", "Movies"),
    _rule(r"concert|festival|event|ticket", "Entertainment", "Events"),
    _rule(r"subscription|membership", "Entertainment", "Subscriptions"),
    # Lodging & travel
    _rule(r"hotel|motel|inn|resort|airbnb|booking|expedia", "Travel", "Lodging"),
    _rule(r"vacation|trip|travel|tourism", "Travel", "General Travel"),
    # Financial
    _rule(r"investment|brokerage|etf|stock|mutual fund", "Investments", "Brokerage"),
    _rule(r"atm|withdrawal|cash", "Cash & ATM", "ATM Withdrawal"),
    _rule(r"fee|charge|service charge", "Fees & Charges", "Bank Fees"),
    _rule(r"insurance|policy", "Insurance", "Insurance Premium"),
    # Education
    _rule(r"tuition|school|university|college|education|course", "Education", "Tuition & Fees"),
    _rule(r"book|textbook|learning", "Education", "Books & Supplies"),
]

RULE_CONFIDENCE = 0.75
LARGE_OUTFLOW_THRESHOLD = Decimal("500")


class Categorizer(ABC):
    """Assigns categories to a batch of transactions."""

    @abstractmethod
    async def categorize(
        self,
        items: List[CategorizationItem],
        context: CategorizationContext,
    ) -> Dict[str, CategoryAssignment]:
        """Return one assignment per dedupe hash."""


class RuleBasedCategorizer(Categorizer):
    """Categorizer over an ordered rule table. Deterministic and infallible."""

    def __init__(self, rules: Optional[List[CategoryRule]] = None):
        self.rules = rules if rules is not None else CATEGORY_RULES

    async def categorize(
        self,
        items: List[CategorizationItem],
        context: CategorizationContext,
    ) -> Dict[str, CategoryAssignment]:
        assignments = {item.dedupe_hash: self.categorize_one(item) for item in items}

        defaulted = sum(1 for a in assignments.values() if a.match_type == "default")
        logger.debug(
            "categorization_complete",
            account_id=context.account_id,
            items=len(items),
            defaulted=defaulted,
        )
        return assignments

    def categorize_one(self, item: CategorizationItem) -> CategoryAssignment:
        """Categorize a single transaction."""
        for rule in self.rules:
            if rule.matches(item.description):
                return CategoryAssignment(
                    dedupe_hash=item.dedupe_hash,
                    category=rule.category,
                    subcategory=rule.subcategory,
                    confidence=RULE_CONFIDENCE,
                    match_type="rule",
                )
        return self._default_assignment(item)

    def _default_assignment(self, item: CategorizationItem) -> CategoryAssignment:
        if item.amount > 0:
            category, subcategory, confidence = "Income", "Other Income", 0.4
        elif abs(item.amount) > LARGE_OUTFLOW_THRESHOLD:
            category, subcategory, confidence = "Bills & Utilities", "Other Bills", 0.35
        else:
            category, subcategory, confidence = "Shopping", "General Merchandise", 0.35

        return CategoryAssignment(
            dedupe_hash=item.dedupe_hash,
            category=category,
            subcategory=subcategory,
            confidence=confidence,
            match_type="default",
        )
