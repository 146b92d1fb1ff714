"""Rule-based transaction categorization.

Deterministic and explainable: every result names the rule family that
produced it, so callers can show *why* a transaction got its category.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from txnflow.categorization.rules import INCOME, KEYWORD_PATTERNS, MERCHANT_PATTERNS, OTHERS
from txnflow.core.types import Direction


@dataclass(frozen=True)
class CategoryMatch:
    category: str
    confidence: float
    method: str


def category_override_key(merchant: str | None) -> str:
    """Key used to store and look up user category overrides."""
    return (merchant or "").strip().lower()


def categorize(
    merchant: str | None,
    amount: Decimal | int | float | None = None,
    direction: Direction | str | None = None,
    description: str | None = None,
    overrides: Mapping[str, str] | None = None,
) -> CategoryMatch:
    """Pick a category for a transaction; first matching rule wins.

    Args:
        merchant: Resolved merchant name (may be empty)
        amount: Transaction amount (not used by the current rules)
        direction: "debit" or "credit"
        description: Free-text description
        overrides: User overlay of lower-cased merchant -> category

    Returns:
        CategoryMatch; never raises
    """
    merchant_text = (merchant or "").strip()

    if overrides and merchant_text:
        category = overrides.get(category_override_key(merchant_text))
        if category:
            return CategoryMatch(category, 1.0, "user_override")

    if merchant_text:
        for category, pattern in MERCHANT_PATTERNS:
            if pattern.search(merchant_text):
                return CategoryMatch(category, 0.9, "merchant_match")

    search_text = f"{merchant_text} {description or ''}"
    for category, pattern in KEYWORD_PATTERNS:
        if pattern.search(search_text):
            return CategoryMatch(category, 0.7, "keyword_match")

    if str(getattr(direction, "value", direction) or "").lower() == Direction.CREDIT.value:
        return CategoryMatch(INCOME, 0.5, "default_credit")
    return CategoryMatch(OTHERS, 0.3, "default")
