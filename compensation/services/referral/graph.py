"""
Referral graph.

Read-only traversal of the referral forest through a ledger unit of work.
Traversals are iterative, depth-bounded and reject revisited nodes: the
forest is acyclic by construction, so a revisit means corrupted data.
"""

from collections import deque
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

from loguru import logger

from compensation.config.business_constants import MAX_TRAVERSAL_DEPTH
from compensation.ledger.accessor import LedgerUnitOfWork
from compensation.models.user import User
from compensation.utils.exceptions import IntegrityError


@dataclass(frozen=True)
class GraphNode:
    """User reached by a traversal, with its distance from the start."""
    user: User
    level: int


class ReferralGraph:
    """
    Referral graph view.

    Args:
        uow: Ledger unit of work used for lookups
        max_depth: Maximum number of levels traversed
    """

    def __init__(
        self, uow: LedgerUnitOfWork, max_depth: int = MAX_TRAVERSAL_DEPTH
    ) -> None:
        self.uow = uow
        self.max_depth = max_depth

    async def upline(self, user_id: int) -> list[GraphNode]:
        """
        Ancestors of a user, nearest first.

        Args:
            user_id: Starting user

        Returns:
            Referrer at level 1, its referrer at level 2, ... up to max_depth

        Raises:
            IntegrityError: If the chain loops back on itself
        """
        user = await self.uow.get_user(user_id)
        visited = {user.id}
        chain: list[GraphNode] = []

        referrer_id = user.referrer_id
        level = 1
        while referrer_id is not None and level <= self.max_depth:
            if referrer_id in visited:
                raise self._cycle(user_id, referrer_id)
            visited.add(referrer_id)

            referrer = await self.uow.get_user(referrer_id)
            chain.append(GraphNode(user=referrer, level=level))
            referrer_id = referrer.referrer_id
            level += 1

        return chain

    async def descendants(self, user_id: int) -> AsyncIterator[GraphNode]:
        """
        Downline of a user, breadth-first.

        Args:
            user_id: Root of the traversal (not yielded)

        Yields:
            GraphNode for every descendant within max_depth, level 1 first

        Raises:
            IntegrityError: If a user is reached twice
        """
        visited = {user_id}
        queue: deque[tuple[int, int]] = deque([(user_id, 0)])

        while queue:
            current_id, depth = queue.popleft()
            if depth >= self.max_depth:
                continue

            for child in await self.uow.find_downline(current_id):
                if child.id in visited:
                    raise self._cycle(user_id, child.id)
                visited.add(child.id)
                yield GraphNode(user=child, level=depth + 1)
                queue.append((child.id, depth + 1))

    async def subtree_contains(
        self, root: User, predicate: Callable[[User], bool]
    ) -> bool:
        """
        Check if any member of a subtree (root included) matches.

        Depth-first with an explicit stack; stops at the first match.

        Args:
            root: Subtree root
            predicate: Match test

        Returns:
            True if a matching member exists within max_depth of root

        Raises:
            IntegrityError: If a user is reached twice
        """
        visited = {root.id}
        stack: list[tuple[User, int]] = [(root, 0)]

        while stack:
            member, depth = stack.pop()
            if predicate(member):
                return True
            if depth >= self.max_depth:
                continue
            for child in await self.uow.find_downline(member.id):
                if child.id in visited:
                    raise self._cycle(root.id, child.id)
                visited.add(child.id)
                stack.append((child, depth + 1))

        return False

    async def is_ancestor(self, candidate_id: int, user_id: int) -> bool:
        """
        Check if candidate is the user itself or one of its ancestors.

        Walks the whole chain (not limited by max_depth) so that attaching a
        referrer can never close a loop.

        Args:
            candidate_id: Possible ancestor
            user_id: Starting user

        Returns:
            True if candidate_id appears on the upline of user_id (or equals it)

        Raises:
            IntegrityError: If the existing chain already loops
        """
        visited: set[int] = set()
        current_id: int | None = user_id
        while current_id is not None:
            if current_id == candidate_id:
                return True
            if current_id in visited:
                raise self._cycle(user_id, current_id)
            visited.add(current_id)
            current_id = (await self.uow.get_user(current_id)).referrer_id
        return False

    @staticmethod
    def _cycle(start_id: int, revisited_id: int) -> IntegrityError:
        logger.error(
            f"Referral cycle detected: traversal from user {start_id} "
            f"revisited user {revisited_id}"
        )
        return IntegrityError(
            f"Referral cycle detected at user {revisited_id}",
            start_user_id=start_id,
            revisited_user_id=revisited_id,
        )
