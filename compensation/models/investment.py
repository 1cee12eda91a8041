"""
Investment model.

Append-only record of a deposit. Principal and owner are immutable;
only the accrual fields and status flags change after creation.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from compensation.models.base import Base
from compensation.models.enums import PackageType
from compensation.models.types import MoneyType


class Investment(Base):
    """Investment model - user deposits accruing periodic returns."""

    __tablename__ = "investments"
    __table_args__ = (
        CheckConstraint(
            'daily_roi >= 0', name='check_investment_daily_roi_non_negative'
        ),
        CheckConstraint(
            'days_accumulated >= 0',
            name='check_investment_days_non_negative'
        ),
        Index('idx_investment_user_active', 'user_id', 'is_active'),
        Index('idx_investment_bonuses_settled', 'bonuses_settled'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Owner
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Principal (no positivity constraint: malformed rows are flagged, not rejected)
    amount: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)
    package_type: Mapped[PackageType] = mapped_column(
        SAEnum(PackageType, native_enum=False, length=16),
        default=PackageType.PRINCIPAL,
        nullable=False,
    )
    liquidity_fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Accrual state
    daily_roi: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    days_accumulated: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_accrued_on: Mapped[date | None] = mapped_column(
        Date, nullable=True
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    is_capped: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    needs_review: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    review_reason: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    bonuses_settled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    @property
    def accrues(self) -> bool:
        """Check if investment takes part in accrual."""
        return self.is_active and not self.is_capped and not self.needs_review

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Investment(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, package={self.package_type}, "
            f"capped={self.is_capped})>"
        )
