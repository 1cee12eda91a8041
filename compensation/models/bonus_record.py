"""
BonusRecord model.

One row per referral bonus credited for an investment.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import BonusKind
from compensation.models.types import MoneyType, RateType


class BonusRecord(Base):
    """
    BonusRecord entity.

    The unique (investment_id, kind, level, recipient_id) tuple is the
    idempotency tag: reprocessing an investment never credits twice.

    Attributes:
        id: Primary key
        investment_id: Investment that triggered the bonus
        kind: Direct bonus or level ROI
        level: Referral distance between source and recipient
        recipient_id: User credited
        source_user_id: Investor
        percentage: Fraction of the investment amount (0.2 == 20%)
        amount: Credited value
        created_at: When the bonus was credited
    """

    __tablename__ = "bonus_records"
    __table_args__ = (
        UniqueConstraint(
            "investment_id", "kind", "level", "recipient_id",
            name="uq_bonus_record_tag",
        ),
        Index("idx_bonus_records_recipient", "recipient_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    investment_id: Mapped[int] = mapped_column(
        ForeignKey("investments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[BonusKind] = mapped_column(
        SAEnum(BonusKind, native_enum=False, length=16), nullable=False
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    source_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    percentage: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BonusRecord(investment_id={self.investment_id}, "
            f"kind={self.kind}, level={self.level}, "
            f"recipient_id={self.recipient_id}, amount={self.amount})>"
        )
