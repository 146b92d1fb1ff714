"""User-specific merchant aliases learned from corrections."""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from txnflow.models.base import BaseModel


class MerchantAliasOverride(BaseModel):
    """Maps a user's cleaned raw merchant text to a canonical merchant name."""

    __tablename__ = "merchant_alias_overrides"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    alias_key: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant_name: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "alias_key", name="uq_alias_override_user_alias_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<MerchantAliasOverride(id={self.id}, user_id={self.user_id}, "
            f"alias_key={self.alias_key}, merchant_name={self.merchant_name})>"
        )
