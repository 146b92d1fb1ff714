"""Merchant identity resolution.

Turns free-form merchant text ("UPI-SWIGGY BLR", "AMZN Pay India") into a
canonical display name with a confidence score:

1. exact match of the cleaned text against the dictionary -> 1.0
2. best fuzzy match within ``merchant_fuzzy_max_distance`` -> 1 - distance
3. otherwise the cleaned text itself -> 0.3

Resolution is a pure function of the input and the dictionary.
"""

from __future__ import annotations

from dataclasses import dataclass

from rapidfuzz import fuzz, process

from txnflow.config import settings
from txnflow.merchants.dictionary import DEFAULT_DICTIONARY, MerchantDictionary, clean_merchant_text

UNMATCHED_CONFIDENCE = 0.3


@dataclass(frozen=True)
class MerchantMatch:
    """Result of resolving one merchant string."""

    normalized: str
    confidence: float
    original: str
    method: str  # "exact" | "fuzzy" | "unmatched" | "empty"

    @property
    def is_resolved(self) -> bool:
        return self.method in ("exact", "fuzzy")


def resolve(
    raw_text: str | None,
    dictionary: MerchantDictionary | None = None,
    max_distance: float | None = None,
) -> MerchantMatch:
    """Resolve raw merchant text to a canonical name.

    Args:
        raw_text: Merchant text as it appeared in the source
        dictionary: Dictionary to match against (defaults to the global one)
        max_distance: Fuzzy acceptance threshold; a match is accepted only
            when ``1 - similarity`` is strictly below it

    Returns:
        MerchantMatch; never raises
    """
    original = raw_text or ""
    dictionary = dictionary or DEFAULT_DICTIONARY
    if max_distance is None:
        max_distance = settings.merchant_fuzzy_max_distance

    cleaned = clean_merchant_text(original)
    if not cleaned:
        return MerchantMatch(normalized="", confidence=0.0, original=original, method="empty")

    name = dictionary.lookup(cleaned)
    if name is not None:
        return MerchantMatch(normalized=name, confidence=1.0, original=original, method="exact")

    best = process.extractOne(
        cleaned,
        dictionary.choices,
        scorer=fuzz.ratio,
        score_cutoff=(1.0 - max_distance) * 100,
    )
    if best is not None:
        alias, score, _ = best
        distance = 1.0 - score / 100.0
        if distance < max_distance:
            return MerchantMatch(
                normalized=dictionary.lookup(alias) or alias,
                confidence=round(1.0 - distance, 2),
                original=original,
                method="fuzzy",
            )

    return MerchantMatch(
        normalized=cleaned,
        confidence=UNMATCHED_CONFIDENCE,
        original=original,
        method="unmatched",
    )
