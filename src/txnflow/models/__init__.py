"""Database models."""
from txnflow.models.base import Base, BaseModel
from txnflow.models.transaction import Transaction
from txnflow.models.recurring_group import RecurringGroup
from txnflow.models.merchant_alias_override import MerchantAliasOverride
from txnflow.models.merchant_category_override import MerchantCategoryOverride

__all__ = [
    "Base",
    "BaseModel",
    "Transaction",
    "RecurringGroup",
    "MerchantAliasOverride",
    "MerchantCategoryOverride",
]
