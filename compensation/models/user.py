"""
User model.

Represents a platform member: balances, referral link, rank and tenure.
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
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import Rank
from compensation.models.types import MoneyType


class User(Base):
    """User model - investors and referrers."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            'balance >= 0', name='check_user_balance_non_negative'
        ),
        CheckConstraint(
            'yield_balance >= 0',
            name='check_user_yield_balance_non_negative'
        ),
        CheckConstraint(
            'investment_total >= 0',
            name='check_user_investment_total_non_negative'
        ),
        CheckConstraint(
            'plus_stages_passed >= 0 AND plus_stages_passed <= 3',
            name='check_user_plus_stages_range'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Payout destination, required by the batch run
    payout_address: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Balances
    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    yield_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Active principal and auto-reinvest ceiling
    investment_total: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    investment_cap: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("10000"), nullable=False
    )
    auto_invest_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Referral link (set once, never forms a cycle)
    referrer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Rank progression
    rank: Mapped[Rank] = mapped_column(
        SAEnum(Rank, native_enum=False, length=32),
        default=Rank.REGULAR,
        nullable=False,
        index=True,
    )
    rank_reward: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    plus_stages_passed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Tenure anchor
    first_investment_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, rank={self.rank}, "
            f"balance={self.balance}, referrer_id={self.referrer_id})>"
        )
