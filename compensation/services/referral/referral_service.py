"""
Referral service.

Attaches referrers to users. The link is set once and can never close
a loop in the referral forest.
"""

from decimal import Decimal

from compensation.services.base_service import BaseService
from compensation.services.referral.graph import ReferralGraph
from compensation.utils.exceptions import IntegrityError, ValidationError


class ReferralService(BaseService):
    """Referral link management."""

    async def attach_referrer(self, user_id: int, referrer_id: int) -> Decimal:
        """
        Set a user's referrer and credit the sign-up bonus.

        Args:
            user_id: Referred user
            referrer_id: Referring user

        Returns:
            Sign-up bonus credited to the referrer

        Raises:
            ValidationError: If the user already has a referrer or refers itself
            NotFoundError: If either user does not exist
            IntegrityError: If the link would create a cycle
        """
        if user_id == referrer_id:
            raise ValidationError("A user cannot refer itself", user_id=user_id)

        async with self.ledger.transaction() as uow:
            user = await uow.get_user(user_id, for_update=True)
            if user.referrer_id is not None:
                raise ValidationError(
                    f"User {user_id} already has referrer {user.referrer_id}",
                    user_id=user_id,
                )
            referrer = await uow.get_user(referrer_id, for_update=True)

            graph = ReferralGraph(uow, max_depth=self.config.max_depth)
            if await graph.is_ancestor(user_id, referrer_id):
                raise IntegrityError(
                    f"Referrer {referrer_id} is in the downline of user {user_id}",
                    user_id=user_id,
                    referrer_id=referrer_id,
                )

            user.referrer_id = referrer_id
            await uow.save_user(user)

            bonus = self.config.signup_bonus
            if bonus > 0:
                referrer.balance += bonus
                await uow.save_user(referrer)

        self.logger.info(
            f"User {user_id} attached to referrer {referrer_id} "
            f"(sign-up bonus {bonus})"
        )
        return bonus
