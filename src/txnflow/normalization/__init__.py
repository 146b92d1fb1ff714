"""Source normalization: raw records from any source -> TransactionDraft."""

from .factory import NormalizerFactory, normalize

__all__ = ["NormalizerFactory", "normalize"]
