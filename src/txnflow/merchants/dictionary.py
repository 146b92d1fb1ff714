"""Curated merchant dictionary and merchant text cleaning.

The global dictionary maps a canonical display name to the spellings that
show up in statements, SMS and emails. It is configuration: nothing at
runtime mutates it. Per-user learned aliases are layered on top with
``MerchantDictionary.with_aliases``.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Iterable, Mapping

_NON_ALNUM = re.compile(r"[^A-Z0-9]+")
_PREFIX = re.compile(r"^(?:PAYMENT|TXN|TRANSACTION|DEBIT|CREDIT|UPI)\s+")
_SUFFIX = re.compile(r"\s+(?:PAYMENT|TXN|TRANSACTION|UPI)$")


def clean_merchant_text(text: str | None) -> str:
    """Normalize raw merchant text for matching.

    Uppercases, turns every non-alphanumeric run (underscore included) into a
    single space, then strips boilerplate prefixes/suffixes until none remain.

    Example:
        >>> clean_merchant_text("UPI-PAYMENT swiggy_food TXN")
        'SWIGGY FOOD'
    """
    if not text:
        return ""
    cleaned = _NON_ALNUM.sub(" ", text.upper()).strip()
    while True:
        stripped = _SUFFIX.sub("", _PREFIX.sub("", cleaned))
        if stripped == cleaned:
            return cleaned
        cleaned = stripped


# Display name -> known spellings. Ordering matters for shared aliases: the
# first entry that lists a spelling owns it.
MERCHANT_DICTIONARY: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        # Food & delivery
        "Swiggy": ("swiggy", "swiggy instamart", "swiggy instamart blr", "swiggy food"),
        "Zomato": ("zomato", "zomato gold", "zomato pro"),
        "Uber Eats": ("uber eats", "ubereats"),
        "Dominos": ("dominos", "dominos pizza", "domino's"),
        "Pizza Hut": ("pizza hut",),
        "McDonalds": ("mcdonalds", "mcd", "mcdonald's"),
        "KFC": ("kfc", "kentucky fried chicken"),
        # E-commerce
        "Amazon": ("amazon", "amzn", "amzn pay", "amazon pay", "amazon.in", "amazon pay india"),
        "Flipkart": ("flipkart", "flipkart.com"),
        "Myntra": ("myntra", "myntra.com"),
        "Nykaa": ("nykaa", "nykaa.com"),
        # Grocery
        "BigBasket": ("bigbasket", "big basket", "bb"),
        "Blinkit": ("blinkit", "grofers"),
        "DMart": ("dmart", "d mart"),
        # Transportation
        "Uber": ("uber", "uber india"),
        "Ola": ("ola", "ola cabs", "ola money"),
        "Rapido": ("rapido",),
        # Entertainment & subscriptions
        "Netflix": ("netflix", "netflix.com"),
        "Spotify": ("spotify", "spotify premium"),
        "Prime Video": ("prime video", "amazon prime"),
        "Hotstar": ("hotstar", "disney+ hotstar"),
        "YouTube": ("youtube", "youtube premium"),
        # Telecom
        "Airtel": ("airtel", "airtel payments", "airtel digital"),
        "Jio": ("jio", "reliance jio"),
        "Vodafone": ("vodafone", "vi", "vodafone idea"),
        "BSNL": ("bsnl",),
        # Insurance
        "LIC": ("lic", "life insurance corporation"),
        "HDFC Life": ("hdfc life", "hdfc life insurance"),
        "ICICI Prudential": ("icici prudential", "icici prudential life"),
        # Payments
        "Paytm": ("paytm", "paytm payments"),
        "PhonePe": ("phonepe", "phonepe payments"),
        "Google Pay": ("google pay", "gpay", "tez"),
        "Razorpay": ("razorpay",),
        "Cashfree": ("cashfree",),
        # Fuel
        "HP": ("hp", "hpcl", "hp petrol"),
        "IOC": ("ioc", "indian oil", "indian oil corporation"),
        "BPCL": ("bpcl", "bharat petroleum"),
        # Retail
        "Reliance": ("reliance", "reliance digital", "reliance fresh", "reliance trends"),
        "Croma": ("croma", "croma retail"),
        "Vijay Sales": ("vijay sales",),
    }
)


class MerchantDictionary:
    """Lookup tables over a set of merchant entries.

    Aliases are stored cleaned, so lookups compare cleaned text to cleaned
    text. Instances are immutable; ``with_aliases`` returns a new one.
    """

    def __init__(
        self,
        entries: Mapping[str, Iterable[str]] = MERCHANT_DICTIONARY,
        overrides: Mapping[str, str] | None = None,
    ) -> None:
        exact: dict[str, str] = {}
        for name, aliases in entries.items():
            for alias in aliases:
                key = clean_merchant_text(alias)
                if key:
                    exact.setdefault(key, name)

        # Learned aliases win over the curated table.
        user_aliases: dict[str, str] = {}
        for alias, name in (overrides or {}).items():
            key = clean_merchant_text(alias)
            if key and name:
                user_aliases[key] = name
        exact.update(user_aliases)

        self._entries = entries
        self._overrides = MappingProxyType(user_aliases)
        self._exact = MappingProxyType(exact)
        self._choices = tuple(self._exact.keys())

    @property
    def choices(self) -> tuple[str, ...]:
        """Every cleaned alias, in lookup order."""
        return self._choices

    @property
    def overrides(self) -> Mapping[str, str]:
        return self._overrides

    def lookup(self, cleaned: str) -> str | None:
        """Display name for an exactly matching cleaned alias."""
        return self._exact.get(cleaned)

    def with_aliases(self, aliases: Mapping[str, str]) -> MerchantDictionary:
        """Copy of this dictionary with extra alias -> display name entries."""
        if not aliases:
            return self
        merged = dict(self._overrides)
        merged.update(aliases)
        return MerchantDictionary(self._entries, merged)

    def __len__(self) -> int:
        return len(self._exact)


DEFAULT_DICTIONARY = MerchantDictionary()
