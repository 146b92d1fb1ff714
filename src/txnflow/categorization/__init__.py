"""Transaction categorization.

Deterministic, local rule matching on merchant and description text, with
an optional per-user override overlay consulted first.
"""

from .engine import CategoryMatch, categorize, category_override_key
from .rules import CATEGORIES, CATEGORY_RULES, INCOME, OTHERS

__all__ = [
    "CATEGORIES",
    "CATEGORY_RULES",
    "CategoryMatch",
    "INCOME",
    "OTHERS",
    "categorize",
    "category_override_key",
]
