"""Shared normalization logic for all transaction sources.

``BaseNormalizer`` holds the field parsers every source needs (dates,
amounts, last-4 digits, bank names). Source-specific normalizers inherit
from it and override only ``_build``.

Normalization never raises. A value that cannot be interpreted falls back
to a safe default (amount 0, date now, direction debit) and its field name
is recorded in ``TransactionDraft.issues``.
"""

import logging
import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from dateutil import parser as date_parser

from txnflow.core.types import AccountType, Source
from txnflow.schemas.draft import TransactionDraft

logger = logging.getLogger(__name__)

# Tried in order before falling back to the generic parser.
DATE_FORMATS = [
    "%d/%m/%Y",  # 01/05/2024
    "%Y-%m-%d",  # 2024-05-01
    "%d-%m-%Y",  # 01-05-2024
]

BANK_NAMES = ["SBI", "HDFC", "ICICI", "Axis", "Kotak", "PNB", "BOI", "Canara", "Union", "IDBI"]

_BANK_PATTERNS = [(name, re.compile(rf"\b{name}\b", re.IGNORECASE)) for name in BANK_NAMES]

_YEAR_FIRST = re.compile(r"^\d{4}[-/.]")

# Epoch values above this are milliseconds (year 5138 in seconds).
_EPOCH_MS_THRESHOLD = 100_000_000_000


class BaseNormalizer:
    """Maps one raw record shape into a ``TransactionDraft``.

    Subclasses implement ``_build`` and may override the ``_parse_*``
    helpers for source-specific quirks.
    """

    source: Source = Source.MANUAL

    def normalize(self, raw: Mapping[str, Any] | None) -> TransactionDraft:
        """Normalize a raw record; never raises.

        Args:
            raw: Source-specific record (missing/None is treated as empty)

        Returns:
            TransactionDraft with every field resolved
        """
        issues: list[str] = []
        try:
            record = dict(raw or {})
            fields = self._build(record, issues)
            fields["issues"] = issues
            return TransactionDraft(source=self.source, **fields)
        except Exception as e:
            # Last line of defence for shapes the field parsers did not anticipate.
            logger.warning(
                "Normalization fell back to defaults",
                extra={"source": self.source.value, "error_type": type(e).__name__},
            )
            return TransactionDraft(source=self.source, issues=["record"])

    def _build(self, record: dict[str, Any], issues: list[str]) -> dict[str, Any]:
        raise NotImplementedError

    # Field parsers

    def _parse_amount(self, value: Any) -> Decimal | None:
        """Parse a signed amount.

        Handles ``₹1,23,456.00``, ``Rs. 500``, ``INR 5000``, ``(1,234.56)``,
        ``-45`` and plain numbers.

        Returns:
            Signed Decimal, or None when the value is absent/blank

        Raises:
            ValueError: If a value is present but not numeric
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float, Decimal)):
            return Decimal(str(value))

        raw = str(value).strip()
        # Statements print "-" in the unused debit/credit column.
        if not raw or raw in ("-", "--"):
            return None

        negative = False
        if raw.startswith("(") and raw.endswith(")"):
            negative = True
            raw = raw[1:-1]
        raw = re.sub(r"(?i)^\s*(?:₹|rs\.?|inr)\s*", "", raw)
        raw = raw.replace(",", "").replace(" ", "")
        if raw.startswith("-"):
            negative = not negative
            raw = raw[1:]
        elif raw.endswith("-"):
            negative = not negative
            raw = raw[:-1]
        if raw.startswith("+"):
            raw = raw[1:]

        try:
            amount = Decimal(raw)
        except InvalidOperation as e:
            raise ValueError(f"Could not parse amount: {value!r}") from e
        if not amount.is_finite():
            raise ValueError(f"Could not parse amount: {value!r}")
        return -amount if negative else amount

    def _amount_or_issue(self, value: Any, issues: list[str]) -> Decimal | None:
        try:
            return self._parse_amount(value)
        except ValueError:
            issues.append("amount")
            return None

    def _parse_date(self, value: Any, issues: list[str]) -> datetime:
        """Parse a timestamp, falling back to now when it cannot be read.

        Tries DD/MM/YYYY, YYYY-MM-DD, DD-MM-YYYY, then ISO 8601 for
        year-first text, then a generic parse (day-first unless the text
        starts with a four-digit year). Epoch seconds/milliseconds and date/datetime objects are
        accepted as-is.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return datetime.now(timezone.utc)
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return self._from_epoch(value, issues)

        text = str(value).strip()
        if text.isdigit() and len(text) >= 10:
            return self._from_epoch(int(text), issues)

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue

        # ISO 8601 timestamps (SMS gateways, AA feeds) are year-month-day.
        year_first = bool(_YEAR_FIRST.match(text))
        if year_first:
            try:
                return date_parser.isoparse(text)
            except (ValueError, OverflowError):
                pass

        try:
            return date_parser.parse(text, dayfirst=not year_first, yearfirst=year_first)
        except (ValueError, OverflowError):
            issues.append("date")
            return datetime.now(timezone.utc)

    def _from_epoch(self, value: float, issues: list[str]) -> datetime:
        seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            issues.append("date")
            return datetime.now(timezone.utc)

    def _extract_last4(self, value: Any) -> str | None:
        """Last four digits of an account/card identifier, if it ends in them."""
        if not value:
            return None
        match = re.search(r"(\d{4})\s*$", str(value))
        return match.group(1) if match else None

    def _extract_bank_name(self, text: str | None) -> str | None:
        """First bank from the fixed bank list mentioned in ``text``."""
        if not text:
            return None
        for name, pattern in _BANK_PATTERNS:
            if pattern.search(text):
                return name
        return None

    def _account_type(self, value: str) -> AccountType:
        """Explicit account type when recognised, otherwise bank."""
        try:
            return AccountType(value)
        except ValueError:
            return AccountType.BANK

    def _infer_account_type(self, text: str | None) -> AccountType:
        lowered = (text or "").lower()
        if "credit card" in lowered or "card" in lowered:
            return AccountType.CREDIT_CARD
        if "wallet" in lowered:
            return AccountType.WALLET
        return AccountType.BANK

    @staticmethod
    def _text(record: Mapping[str, Any], *keys: str) -> str:
        """First non-empty value among ``keys``, stripped."""
        for key in keys:
            value = record.get(key)
            if value is not None and str(value).strip():
                return str(value).strip()
        return ""
