"""Source-specific normalizers.

Each class maps the raw shape one source produces into draft fields:
- ManualNormalizer: fields typed by a user
- CsvNormalizer: one statement row with pre-detected column values
- SmsNormalizer / EmailNormalizer: free text bank alerts
- AANormalizer: structured account-aggregator (AA) feed entries
"""

import re
from decimal import Decimal
from typing import Any

from txnflow.core.types import Direction, Source
from txnflow.normalization.base import BaseNormalizer


class ManualNormalizer(BaseNormalizer):
    """Direct mapping of a manual entry."""

    source = Source.MANUAL

    TYPE_MAP = {
        "expense": Direction.DEBIT,
        "income": Direction.CREDIT,
        "debit": Direction.DEBIT,
        "credit": Direction.CREDIT,
    }

    def _build(self, record: dict[str, Any], issues: list[str]) -> dict[str, Any]:
        amount = self._amount_or_issue(record.get("amount"), issues) or Decimal("0")
        kind = self._text(record, "type").lower()
        description = self._text(record, "description", "note")
        account_type = self._text(record, "accountType", "account_type").lower()
        return {
            "amount": abs(amount),
            "direction": self.TYPE_MAP.get(kind, Direction.DEBIT),
            "occurred_at": self._parse_date(record.get("date"), issues),
            "merchant_raw_text": self._text(record, "merchant", "description"),
            "description": description,
            "note": self._text(record, "note") or None,
            "account_type": self._account_type(account_type),
            "reference_id": self._text(record, "reference", "referenceId") or None,
        }


class CsvNormalizer(BaseNormalizer):
    """One CSV statement row whose columns were already detected."""

    source = Source.CSV

    def _build(self, record: dict[str, Any], issues: list[str]) -> dict[str, Any]:
        unreadable: list[str] = []
        unified = self._amount_or_issue(record.get("amount"), unreadable)
        debit = self._amount_or_issue(record.get("debit"), unreadable)
        credit = self._amount_or_issue(record.get("credit"), unreadable)

        amount = Decimal("0")
        for candidate in (unified, debit, credit):
            if candidate is not None and candidate != 0:
                amount = abs(candidate)
                break
        # A junk value in an unused column does not spoil a readable one.
        if unreadable and amount == 0:
            issues.append("amount")

        account = self._text(record, "account", "card")
        return {
            "amount": amount,
            "direction": self._direction(record, unified, debit, credit),
            "occurred_at": self._parse_date(
                record.get("date") or record.get("transactionDate") or record.get("transaction_date"),
                issues,
            ),
            "merchant_raw_text": self._text(record, "merchant", "description", "narration", "remarks"),
            "description": self._text(record, "description", "narration", "remarks"),
            "account_type": self._infer_account_type(
                " ".join([self._text(record, "accountType"), self._text(record, "card"), self._text(record, "wallet")])
            ),
            "account_last4": self._extract_last4(account),
            "bank_name": self._extract_bank_name(self._text(record, "bank", "bankName")),
            "reference_id": self._text(record, "reference", "refNo", "transactionId") or None,
        }

    def _direction(
        self,
        record: dict[str, Any],
        unified: Decimal | None,
        debit: Decimal | None,
        credit: Decimal | None,
    ) -> Direction:
        if debit is not None and debit != 0:
            return Direction.DEBIT
        if credit is not None and credit != 0:
            return Direction.CREDIT

        kind = self._text(record, "type").lower()
        if kind:
            words = set(re.findall(r"[a-z]+", kind))
            if "debit" in kind or "dr" in words:
                return Direction.DEBIT
            if "credit" in kind or "cr" in words:
                return Direction.CREDIT

        if unified is not None and unified > 0:
            return Direction.CREDIT
        return Direction.DEBIT


class SmsNormalizer(BaseNormalizer):
    """Bank alert SMS: everything is extracted from free text."""

    source = Source.SMS

    AMOUNT_PATTERNS = [
        re.compile(r"₹\s*([\d,]+(?:\.\d+)?)"),
        re.compile(r"\bINR\s*([\d,]+(?:\.\d+)?)", re.IGNORECASE),
        re.compile(r"\bRs\.?\s*([\d,]+(?:\.\d+)?)", re.IGNORECASE),
        re.compile(r"([\d,]+(?:\.\d+)?)\s*(?:rupees?)\b", re.IGNORECASE),
    ]

    DEBIT_KEYWORDS = ("debited", "spent", "paid", "withdrawn", "purchase", "sent")
    CREDIT_KEYWORDS = ("credited", "received", "refund", "deposited")

    MERCHANT_PATTERNS = [
        re.compile(r"\bVPA\s+([A-Za-z0-9.\-]+)@", re.IGNORECASE),
        re.compile(r"\b(?:at|to|towards)\s+([A-Za-z0-9][A-Za-z0-9&'. \-]*?)(?=\s+(?:on|via|using|ref|upi|avl|avbl|for)\b|[.,;]\s|[.,;]?$)", re.IGNORECASE),
        re.compile(r"\b(?:merchant|vendor|info)\s*[:\-]\s*([A-Za-z0-9][A-Za-z0-9&'. \-]*?)(?=\s+(?:on|via|ref)\b|[.,;]\s|[.,;]?$)", re.IGNORECASE),
    ]

    LAST4_PATTERNS = [
        re.compile(r"(?:[Xx*]{2,}|ending(?:\s+in)?|a/c(?:\s+no\.?)?|acct|account|card)\s*[:#\-]?\s*(?:no\.?\s*)?[Xx*]*(\d{4})\b", re.IGNORECASE),
    ]

    REFERENCE_PATTERNS = [
        re.compile(r"\b(?:ref(?:erence)?|txn|utr|rrn)(?:\s*(?:no|id|number|#))?[\s.:#\-]*([A-Z0-9]{6,})\b", re.IGNORECASE),
        re.compile(r"\b(?=[A-Z0-9]*\d)(?![X*]{2})([A-Z0-9]{10,})\b"),
    ]

    # Words the merchant pattern picks up that are not merchants.
    NON_MERCHANTS = {"your", "a/c", "ac", "account", "card", "you", "self"}

    def _build(self, record: dict[str, Any], issues: list[str]) -> dict[str, Any]:
        text = self._message_text(record)
        amount = self._amount_from_text(text, issues)
        return {
            "amount": amount,
            "direction": self._direction_from_text(text),
            "occurred_at": self._parse_date(self._message_date(record), issues),
            "merchant_raw_text": self._merchant_from_text(text),
            "description": text,
            "account_type": self._infer_account_type(text),
            "account_last4": self._first_group(self.LAST4_PATTERNS, text),
            "bank_name": self._extract_bank_name(text),
            "reference_id": self._first_group(self.REFERENCE_PATTERNS, text),
        }

    def _message_text(self, record: dict[str, Any]) -> str:
        return self._text(record, "text", "body", "message")

    def _message_date(self, record: dict[str, Any]) -> Any:
        return record.get("timestamp") or record.get("date")

    def _amount_from_text(self, text: str, issues: list[str]) -> Decimal:
        for pattern in self.AMOUNT_PATTERNS:
            match = pattern.search(text)
            if match:
                amount = self._amount_or_issue(match.group(1), issues)
                return abs(amount) if amount is not None else Decimal("0")
        return Decimal("0")

    def _direction_from_text(self, text: str) -> Direction:
        """Direction of the earliest debit/credit keyword; debit when none."""
        lowered = text.lower()
        best: tuple[int, Direction] | None = None
        for keywords, direction in (
            (self.DEBIT_KEYWORDS, Direction.DEBIT),
            (self.CREDIT_KEYWORDS, Direction.CREDIT),
        ):
            for keyword in keywords:
                match = re.search(rf"\b{keyword}\b", lowered)
                if match and (best is None or match.start() < best[0]):
                    best = (match.start(), direction)
        return best[1] if best else Direction.DEBIT

    def _merchant_from_text(self, text: str) -> str:
        for pattern in self.MERCHANT_PATTERNS:
            for match in pattern.finditer(text):
                candidate = match.group(1).strip(" .-")
                if candidate and candidate.lower() not in self.NON_MERCHANTS and not candidate.lower().startswith("your "):
                    return candidate
        return ""

    @staticmethod
    def _first_group(patterns: list[re.Pattern[str]], text: str) -> str | None:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None


class EmailNormalizer(SmsNormalizer):
    """Transaction alert email; subject and body are read as one text."""

    source = Source.EMAIL

    def _message_text(self, record: dict[str, Any]) -> str:
        return " ".join(part for part in (self._text(record, "subject"), self._text(record, "body")) if part)

    def _message_date(self, record: dict[str, Any]) -> Any:
        return record.get("date") or record.get("timestamp")


class AANormalizer(BaseNormalizer):
    """Account-aggregator feed entry (already structured)."""

    source = Source.AA

    def _build(self, record: dict[str, Any], issues: list[str]) -> dict[str, Any]:
        amount = self._amount_or_issue(record.get("amount"), issues) or Decimal("0")
        kind = self._text(record, "type").upper()
        masked = self._text(record, "maskedAccountNumber")
        account_type = self._text(record, "accountType").lower()
        return {
            "amount": abs(amount),
            "direction": Direction.CREDIT if kind == "CREDIT" else Direction.DEBIT,
            "occurred_at": self._parse_date(
                record.get("transactionDate") or record.get("transactionTimestamp") or record.get("valueDate"),
                issues,
            ),
            "merchant_raw_text": self._text(record, "merchant", "description", "narration"),
            "description": self._text(record, "description", "narration"),
            "account_type": self._account_type(account_type),
            "account_last4": masked[-4:] if len(masked) >= 4 and masked[-4:].isdigit() else None,
            "bank_name": self._text(record, "bankName") or None,
            "reference_id": self._text(record, "txnId", "transactionId", "referenceNumber") or None,
        }
