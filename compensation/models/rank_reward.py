"""
RankRewardRecord model.

Tracks, per user and tier, when the tier was entered and which rank
rewards were already disbursed.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import Rank
from compensation.models.types import MoneyType


class RankRewardRecord(Base):
    """
    RankRewardRecord entity.

    Attributes:
        id: Primary key
        user_id: Rank holder
        rank: Tier entered
        entered_at: When the tier was entered (monthly windows start here)
        entry_reward_paid: One-time entry reward disbursed
        entry_reward_amount: Value of the entry reward
        months_paid: Monthly stipends disbursed for this tier
        monthly_paid_total: Sum of monthly stipends disbursed
        last_monthly_paid_at: Last monthly disbursement
    """

    __tablename__ = "rank_reward_records"
    __table_args__ = (
        UniqueConstraint("user_id", "rank", name="uq_rank_reward_user_rank"),
        CheckConstraint(
            'months_paid >= 0', name='check_rank_reward_months_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rank: Mapped[Rank] = mapped_column(
        SAEnum(Rank, native_enum=False, length=32), nullable=False
    )
    entered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    entry_reward_paid: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    entry_reward_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    months_paid: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    monthly_paid_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    last_monthly_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<RankRewardRecord(user_id={self.user_id}, rank={self.rank}, "
            f"entry_paid={self.entry_reward_paid}, months={self.months_paid})>"
        )
