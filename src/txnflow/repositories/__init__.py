"""Repository layer for database operations."""
from txnflow.repositories.base import BaseRepository
from txnflow.repositories.overrides import (
    MerchantAliasOverrideRepository,
    MerchantCategoryOverrideRepository,
)
from txnflow.repositories.recurring_group import RecurringGroupRepository
from txnflow.repositories.transaction import TransactionFilters, TransactionRepository

__all__ = [
    "BaseRepository",
    "MerchantAliasOverrideRepository",
    "MerchantCategoryOverrideRepository",
    "RecurringGroupRepository",
    "TransactionFilters",
    "TransactionRepository",
]
