"""Category rule tables.

Rules are evaluated in declaration order and the first hit wins, so a
merchant listed under two categories (Netflix: Entertainment and
Subscriptions) lands in the earlier one. The tables are configuration;
user-specific corrections live in ``merchant_category_overrides``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

INCOME = "Income"
OTHERS = "Others"


@dataclass(frozen=True)
class CategoryRule:
    category: str
    merchants: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        "Food & Dining",
        merchants=(
            "swiggy", "zomato", "uber eats", "dominos", "pizza hut", "mcdonalds", "kfc",
            "starbucks", "cafe coffee day", "barista", "subway", "burger king",
        ),
        keywords=("restaurant", "food", "dining", "cafe", "pizza", "burger", "coffee"),
    ),
    CategoryRule(
        "Groceries",
        merchants=("bigbasket", "grofers", "blinkit", "dmart", "reliance fresh", "more", "spencer"),
        keywords=("grocery", "supermarket", "mart", "store"),
    ),
    CategoryRule(
        "Shopping",
        merchants=(
            "amazon", "flipkart", "myntra", "nykaa", "reliance digital", "croma", "vijay sales",
            "snapdeal", "meesho", "ajio",
        ),
        keywords=("shopping", "purchase", "buy", "order"),
    ),
    CategoryRule(
        "Transportation",
        merchants=("uber", "ola", "rapido", "zoomcar", "revv"),
        keywords=("cab", "taxi", "ride", "uber", "ola"),
    ),
    CategoryRule(
        "Entertainment",
        merchants=("netflix", "spotify", "prime video", "hotstar", "youtube", "bookmyshow", "insider"),
        keywords=("movie", "streaming", "subscription", "entertainment"),
    ),
    CategoryRule(
        "Bills & Utilities",
        merchants=(
            "airtel", "jio", "vodafone", "bsnl", "tata sky", "dish tv", "d2h",
            "bse", "nse", "electricity", "water",
        ),
        keywords=("bill", "recharge", "utility", "electricity", "water", "gas"),
    ),
    CategoryRule(
        "Insurance",
        merchants=("lic", "hdfc life", "icici prudential", "sbi life", "max life"),
        keywords=("insurance", "premium", "policy"),
    ),
    CategoryRule(
        "Healthcare",
        merchants=("apollo", "fortis", "max", "medplus", "1mg", "netmeds", "practo"),
        keywords=("hospital", "clinic", "pharmacy", "medicine", "doctor"),
    ),
    CategoryRule(
        "Education",
        merchants=("byju", "unacademy", "vedantu", "coursera", "udemy"),
        keywords=("education", "course", "tuition", "school", "college"),
    ),
    CategoryRule(
        "Personal Care",
        merchants=("nykaa", "lenskart", "titan", "fastrack"),
        keywords=("beauty", "salon", "spa", "gym", "fitness"),
    ),
    CategoryRule(
        "Travel",
        merchants=("makemytrip", "goibibo", "cleartrip", "irctc", "indigo", "spicejet", "air india"),
        keywords=("flight", "hotel", "travel", "booking"),
    ),
    CategoryRule(
        "Fuel",
        merchants=("hp", "ioc", "bpcl", "hpcl"),
        keywords=("petrol", "diesel", "fuel", "gas station"),
    ),
    CategoryRule(
        "Banking & Finance",
        merchants=("paytm", "phonepe", "google pay", "razorpay", "cashfree"),
        keywords=("bank", "transfer", "payment", "upi"),
    ),
    CategoryRule(
        "Subscriptions",
        merchants=("netflix", "spotify", "prime video", "hotstar", "youtube", "disney"),
        keywords=("subscription", "renewal", "premium"),
    ),
    CategoryRule(OTHERS),
)

# Public taxonomy: every category a transaction can carry.
CATEGORIES: frozenset[str] = frozenset({rule.category for rule in CATEGORY_RULES} | {INCOME})


def _compile(terms: Iterable[str]) -> re.Pattern[str] | None:
    """One case-insensitive whole-word alternation over ``terms``."""
    escaped = [re.escape(term) for term in terms]
    if not escaped:
        return None
    return re.compile(r"(?<![a-z0-9])(?:" + "|".join(escaped) + r")(?![a-z0-9])", re.IGNORECASE)


# Precompiled (category, pattern) pairs, in rule order.
MERCHANT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (rule.category, pattern) for rule in CATEGORY_RULES if (pattern := _compile(rule.merchants)) is not None
)
KEYWORD_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (rule.category, pattern) for rule in CATEGORY_RULES if (pattern := _compile(rule.keywords)) is not None
)
