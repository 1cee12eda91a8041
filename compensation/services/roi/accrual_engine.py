"""
ROI accrual engine.

Applies one period of returns to every accruing investment of a user,
together with the owner's balance or reinvestment, in one transaction.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from compensation.ledger.accessor import ALL_INVESTMENTS, LedgerUnitOfWork
from compensation.models.enums import PackageType
from compensation.models.investment import Investment
from compensation.models.user import User
from compensation.services.base_service import BaseService
from compensation.services.roi.calculator import ROICalculator, parse_amount
from compensation.utils.datetime_utils import period_of


@dataclass
class InvestmentAccrual:
    """Accrual applied to one investment."""
    investment_id: int
    amount: Decimal
    taxed: bool
    reinvested: bool
    capped: bool


@dataclass
class UserAccrualResult:
    """
    Accrual outcome for one user and period.

    Attributes:
        user_id: Owner
        period: Accrual period (UTC day)
        accrued: Investments that accrued this period
        skipped: Investments not accruing (capped, inactive, already accrued)
        flagged: Investments excluded for operator review
    """
    user_id: int
    period: date
    accrued: list[InvestmentAccrual] = field(default_factory=list)
    skipped: int = 0
    flagged: list[int] = field(default_factory=list)

    @property
    def total_accrued(self) -> Decimal:
        return sum((a.amount for a in self.accrued), Decimal("0"))

    @property
    def total_reinvested(self) -> Decimal:
        return sum((a.amount for a in self.accrued if a.reinvested), Decimal("0"))


class ROIAccrualEngine(BaseService):
    """
    ROI accrual engine.

    Per investment and period:
    - return = min(amount * rate(rank), daily_cap)
    - taxed when the owner's balance plus the return reaches the threshold
    - reinvested while auto-invest keeps investment_total within the cap,
      otherwise the investment is capped and the return credits the balance
    """

    def __init__(self, ledger, config=None) -> None:
        super().__init__(ledger, config)
        self.calculator = ROICalculator(self.config)

    async def accrue_user(
        self, user_id: int, period: date | None = None
    ) -> UserAccrualResult:
        """
        Accrue one period for a user in its own transaction.

        Args:
            user_id: Owner user ID
            period: Accrual period (defaults to the current UTC day)

        Returns:
            UserAccrualResult

        Raises:
            NotFoundError: If the user does not exist
            TransientStoreError: If the ledger fails
        """
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            return await self.accrue(uow, user, period or period_of())

    async def accrue(
        self, uow: LedgerUnitOfWork, user: User, period: date
    ) -> UserAccrualResult:
        """
        Accrue one period for a user inside an open transaction.

        Args:
            uow: Open ledger unit of work
            user: Owner, loaded for update in uow
            period: Accrual period

        Returns:
            UserAccrualResult
        """
        result = UserAccrualResult(user_id=user.id, period=period)
        investments = await uow.find_investments(user.id, ALL_INVESTMENTS)

        for investment in investments:
            if not investment.accrues or investment.last_accrued_on == period:
                result.skipped += 1
                continue

            amount = parse_amount(investment.amount)
            if amount is None:
                self._flag_for_review(investment)
                await uow.save_investment(investment)
                result.flagged.append(investment.id)
                continue

            result.accrued.append(self._apply(user, investment, amount, period))
            await uow.save_investment(investment)

        await uow.save_user(user)

        if result.accrued or result.flagged:
            self.logger.info(
                f"Accrued {result.total_accrued} for user {user.id} "
                f"({len(result.accrued)} investments, {len(result.flagged)} flagged)",
                extra={
                    "user_id": user.id,
                    "period": period.isoformat(),
                    "reinvested": str(result.total_reinvested),
                },
            )
        return result

    def _apply(
        self, user: User, investment: Investment, amount: Decimal, period: date
    ) -> InvestmentAccrual:
        package_type = investment.package_type
        is_yield = package_type == PackageType.YIELD
        bucket = user.yield_balance if is_yield else user.balance

        period_return = self.calculator.period_return(
            amount, user.rank, package_type, bucket
        )
        net = period_return.net

        investment.daily_roi += net
        investment.days_accumulated += 1
        investment.last_accrued_on = period

        reinvested = False
        if user.auto_invest_enabled and user.investment_total + net <= user.investment_cap:
            user.investment_total += net
            reinvested = True
        else:
            if user.auto_invest_enabled:
                # Reinvestment ceiling reached: stop accrual, pay this period out
                investment.is_capped = True
                self.logger.info(
                    f"Investment {investment.id} capped: investment_total "
                    f"{user.investment_total} + {net} > cap {user.investment_cap}"
                )
            if is_yield:
                user.yield_balance += net
            else:
                user.balance += net

        return InvestmentAccrual(
            investment_id=investment.id,
            amount=net,
            taxed=period_return.taxed,
            reinvested=reinvested,
            capped=investment.is_capped,
        )

    def _flag_for_review(self, investment: Investment) -> None:
        investment.needs_review = True
        investment.review_reason = f"Malformed amount: {investment.amount!r}"
        self.logger.warning(
            f"Investment {investment.id} excluded from accrual: "
            f"{investment.review_reason}",
            extra={"investment_id": investment.id, "user_id": investment.user_id},
        )
