"""Normalizer registry: routes a raw record to its source's normalizer."""

from typing import Any, Mapping

from txnflow.core.types import Source
from txnflow.normalization.base import BaseNormalizer
from txnflow.normalization.sources import (
    AANormalizer,
    CsvNormalizer,
    EmailNormalizer,
    ManualNormalizer,
    SmsNormalizer,
)
from txnflow.schemas.draft import TransactionDraft


class NormalizerFactory:
    """Holds one normalizer per source.

    Example:
        >>> factory = NormalizerFactory()
        >>> draft = factory.normalize({"amount": 299, "type": "expense"}, Source.MANUAL)
        >>> draft.direction
        <Direction.DEBIT: 'debit'>
    """

    def __init__(self) -> None:
        self._normalizers: dict[Source, BaseNormalizer] = {
            Source.MANUAL: ManualNormalizer(),
            Source.CSV: CsvNormalizer(),
            Source.SMS: SmsNormalizer(),
            Source.EMAIL: EmailNormalizer(),
            Source.AA: AANormalizer(),
        }

    def register(self, source: Source, normalizer: BaseNormalizer) -> None:
        """Replace the normalizer used for ``source``."""
        self._normalizers[source] = normalizer

    def normalize(self, raw: Mapping[str, Any] | None, source: Source) -> TransactionDraft:
        return self._normalizers[Source(source)].normalize(raw)


_factory: NormalizerFactory | None = None


def get_normalizer_factory() -> NormalizerFactory:
    """Process-wide factory instance."""
    global _factory
    if _factory is None:
        _factory = NormalizerFactory()
    return _factory


def normalize(raw: Mapping[str, Any] | None, source: Source | str) -> TransactionDraft:
    """Normalize ``raw`` from ``source`` into a draft.

    Raises:
        ValueError: If ``source`` is not a known source tag
    """
    return get_normalizer_factory().normalize(raw, Source(source))
