"""Merchant resolution: dictionary + fuzzy matching of merchant text."""

from .dictionary import DEFAULT_DICTIONARY, MERCHANT_DICTIONARY, MerchantDictionary, clean_merchant_text
from .resolver import MerchantMatch, resolve

__all__ = [
    "DEFAULT_DICTIONARY",
    "MERCHANT_DICTIONARY",
    "MerchantDictionary",
    "MerchantMatch",
    "clean_merchant_text",
    "resolve",
]
