"""User-specific merchant -> category overrides.

This is intentionally user-scoped (not global) so a correction made by one
user never changes how another user's transactions are categorized.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from txnflow.models.base import BaseModel


class MerchantCategoryOverride(BaseModel):
    """Override category for a merchant for a specific user."""

    __tablename__ = "merchant_category_overrides"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    merchant_key: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "merchant_key", name="uq_category_override_user_merchant_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<MerchantCategoryOverride(id={self.id}, user_id={self.user_id}, "
            f"merchant_key={self.merchant_key}, category={self.category})>"
        )
