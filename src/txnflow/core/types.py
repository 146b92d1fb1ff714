"""Shared enumerations for transaction sources, directions and cadences."""

from enum import Enum


class Source(str, Enum):
    MANUAL = "manual"
    CSV = "csv"
    SMS = "sms"
    EMAIL = "email"
    AA = "aa"


class Direction(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class AccountType(str, Enum):
    BANK = "bank"
    CREDIT_CARD = "credit_card"
    WALLET = "wallet"


class Interval(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
