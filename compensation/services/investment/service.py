"""
Investment service.

Request-triggered entry points: new investments (the only trigger of the
referral bonus engine), withdrawals and investment summaries.
"""

from dataclasses import dataclass
from decimal import Decimal

from compensation.config.compensation_config import CompensationConfig
from compensation.ledger.accessor import ALL_INVESTMENTS, LedgerAccessor
from compensation.models.enums import PackageType
from compensation.models.investment import Investment
from compensation.services.base_service import BaseService, to_money
from compensation.services.investment.validation import InvestmentValidator
from compensation.services.referral.bonus_engine import (
    ProcessResult,
    ReferralBonusEngine,
)
from compensation.utils.datetime_utils import utc_now
from compensation.utils.exceptions import CapExceededError, ValidationError


@dataclass(frozen=True)
class InvestmentReceipt:
    """
    Result of a new investment.

    Attributes:
        investment_id: Created investment
        amount: Principal
        package_type: Package class
        liquidity_fee: Fee charged on top of the principal
        total_charged: Principal plus fee
        new_total: User's investment_total after the investment
        active_total: Active principal of the package class after the investment
        bonuses: Referral bonus processing result
    """
    investment_id: int
    amount: Decimal
    package_type: PackageType
    liquidity_fee: Decimal
    total_charged: Decimal
    new_total: Decimal
    active_total: Decimal
    bonuses: ProcessResult


@dataclass(frozen=True)
class InvestmentSummary:
    """Investment totals of a user."""
    user_id: int
    investment_total: Decimal
    active_principal: Decimal
    active_yield: Decimal
    total_accrued_roi: Decimal
    active_count: int
    capped_count: int
    review_count: int


class InvestmentService(BaseService):
    """Investment request handling."""

    def __init__(
        self,
        ledger: LedgerAccessor,
        config: CompensationConfig | None = None,
        bonus_engine: ReferralBonusEngine | None = None,
    ) -> None:
        super().__init__(ledger, config)
        self.validator = InvestmentValidator(self.config)
        self.bonus_engine = bonus_engine or ReferralBonusEngine(ledger, self.config)

    async def on_new_investment(
        self,
        user_id: int,
        amount: object,
        package_type: object = PackageType.PRINCIPAL,
    ) -> InvestmentReceipt:
        """
        Record a new investment and credit its referral bonuses.

        The investment is committed before bonuses are processed; a bonus
        failure leaves it unsettled for the daily batch to retry.

        Args:
            user_id: Authenticated investor
            amount: Requested principal
            package_type: "principal" or "yield"

        Returns:
            InvestmentReceipt

        Raises:
            ValidationError: Bad amount, unknown package type, out of bounds
            NotFoundError: User does not exist
            CapExceededError: Active total of the package class would exceed its ceiling
        """
        value, error = self.validator.parse_amount(amount)
        if error:
            raise ValidationError(error, user_id=user_id)
        package, error = self.validator.parse_package_type(package_type)
        if error:
            raise ValidationError(error, user_id=user_id)
        is_valid, error = self.validator.validate_bounds(value, package)
        if not is_valid:
            raise ValidationError(error, user_id=user_id)

        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)

            active = await uow.active_total(user.id, package)
            ceiling = self.config.active_investment_cap[package]
            if active + value > ceiling:
                raise CapExceededError(
                    f"Active {package.value} investments would reach "
                    f"{active + value}, ceiling is {ceiling}",
                    user_id=user_id,
                    active_total=active,
                    ceiling=ceiling,
                )

            now = utc_now()
            fee = to_money(value * self.config.liquidity_fee_rate)
            investment = await uow.save_investment(Investment(
                user_id=user.id,
                amount=value,
                package_type=package,
                liquidity_fee=fee,
                daily_roi=Decimal("0"),
                days_accumulated=0,
                last_accrued_on=None,
                is_active=True,
                is_capped=False,
                needs_review=False,
                review_reason=None,
                bonuses_settled=False,
                created_at=now,
            ))

            if user.first_investment_at is None:
                user.first_investment_at = now
            user.investment_total += value
            await uow.save_user(user)

            investment_id = investment.id
            new_total = user.investment_total

        self.logger.info(
            f"Investment {investment_id} created: user {user_id}, "
            f"{value} ({package.value}), fee {fee}",
            extra={"user_id": user_id, "investment_id": investment_id},
        )

        bonuses = await self.bonus_engine.process_investment(investment_id)

        return InvestmentReceipt(
            investment_id=investment_id,
            amount=value,
            package_type=package,
            liquidity_fee=fee,
            total_charged=value + fee,
            new_total=new_total,
            active_total=active + value,
            bonuses=bonuses,
        )

    async def withdraw(self, user_id: int, amount: object) -> Decimal:
        """
        Withdraw from the user's balance.

        Args:
            user_id: Authenticated user
            amount: Requested amount

        Returns:
            New balance

        Raises:
            ValidationError: Bad amount or insufficient balance
            NotFoundError: User does not exist
        """
        value, error = self.validator.parse_amount(amount)
        if error:
            raise ValidationError(error, user_id=user_id)

        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            if user.balance < value:
                raise ValidationError(
                    f"Insufficient balance: {user.balance} < {value}",
                    user_id=user_id,
                )
            user.balance -= value
            await uow.save_user(user)
            new_balance = user.balance

        self.logger.info(f"User {user_id} withdrew {value}, balance {new_balance}")
        return new_balance

    def check_yield_eligibility(self, amount: object) -> bool:
        """
        Check if an amount qualifies for a yield package.

        Raises:
            ValidationError: If the amount is not a positive number
        """
        value, error = self.validator.parse_amount(amount)
        if error:
            raise ValidationError(error)
        return self.validator.is_yield_eligible(value)

    async def get_investment_summary(self, user_id: int) -> InvestmentSummary:
        """
        Investment totals of a user.

        Raises:
            NotFoundError: User does not exist
        """
        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id)
            investments = await uow.find_investments(user_id, ALL_INVESTMENTS)

        active = [i for i in investments if i.is_active and not i.is_capped]
        return InvestmentSummary(
            user_id=user_id,
            investment_total=user.investment_total,
            active_principal=sum(
                (i.amount for i in active
                 if i.package_type == PackageType.PRINCIPAL and i.amount),
                Decimal("0"),
            ),
            active_yield=sum(
                (i.amount for i in active
                 if i.package_type == PackageType.YIELD and i.amount),
                Decimal("0"),
            ),
            total_accrued_roi=sum((i.daily_roi for i in investments), Decimal("0")),
            active_count=len(active),
            capped_count=sum(1 for i in investments if i.is_capped),
            review_count=sum(1 for i in investments if i.needs_review),
        )
