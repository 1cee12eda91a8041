"""
Tests for referral graph traversal.

Tests cover:
- Upline and downline order and levels
- Depth bound
- Subtree search including the root
- Cycle detection on corrupted links
"""

import pytest

from compensation.models import Rank
from compensation.services.referral.graph import ReferralGraph
from compensation.utils.exceptions import IntegrityError


def build_chain(ledger, length):
    """Create a referral chain; returns IDs from the top down."""
    ids = [ledger.add_user()]
    for _ in range(length - 1):
        ids.append(ledger.add_user(referrer_id=ids[-1]))
    return ids


class TestUpline:
    """Test ancestor traversal."""

    @pytest.mark.asyncio
    async def test_nearest_first(self, ledger):
        top, middle, bottom = build_chain(ledger, 3)

        async with ledger.transaction() as uow:
            chain = await ReferralGraph(uow).upline(bottom)

        assert [(n.user.id, n.level) for n in chain] == [(middle, 1), (top, 2)]

    @pytest.mark.asyncio
    async def test_depth_bound(self, ledger):
        ids = build_chain(ledger, 6)

        async with ledger.transaction() as uow:
            chain = await ReferralGraph(uow, max_depth=2).upline(ids[-1])

        assert [n.level for n in chain] == [1, 2]

    @pytest.mark.asyncio
    async def test_cycle_raises(self, ledger):
        first = ledger.add_user()
        second = ledger.add_user(referrer_id=first)
        ledger.update_user(first, referrer_id=second)

        async with ledger.transaction() as uow:
            with pytest.raises(IntegrityError):
                await ReferralGraph(uow).upline(first)


class TestDescendants:
    """Test breadth-first downline traversal."""

    @pytest.mark.asyncio
    async def test_levels_breadth_first(self, ledger):
        root = ledger.add_user()
        left = ledger.add_user(referrer_id=root)
        right = ledger.add_user(referrer_id=root)
        grandchild = ledger.add_user(referrer_id=left)

        async with ledger.transaction() as uow:
            nodes = [n async for n in ReferralGraph(uow).descendants(root)]

        assert [(n.user.id, n.level) for n in nodes] == [
            (left, 1), (right, 1), (grandchild, 2),
        ]

    @pytest.mark.asyncio
    async def test_depth_bound(self, ledger):
        ids = build_chain(ledger, 10)

        async with ledger.transaction() as uow:
            nodes = [n async for n in ReferralGraph(uow, max_depth=3).descendants(ids[0])]

        assert [n.level for n in nodes] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_cycle_raises(self, ledger):
        first = ledger.add_user()
        second = ledger.add_user(referrer_id=first)
        ledger.update_user(first, referrer_id=second)

        async with ledger.transaction() as uow:
            with pytest.raises(IntegrityError):
                async for _ in ReferralGraph(uow).descendants(first):
                    pass


class TestSubtreeContains:
    """Test depth-first subtree search."""

    @pytest.mark.asyncio
    async def test_root_included(self, ledger):
        root = ledger.add_user(rank=Rank.TMC_PLUS)

        async with ledger.transaction() as uow:
            user = await uow.get_user(root)
            found = await ReferralGraph(uow).subtree_contains(
                user, lambda u: u.rank == Rank.TMC_PLUS
            )

        assert found is True

    @pytest.mark.asyncio
    async def test_deep_match(self, ledger):
        ids = build_chain(ledger, 5)
        ledger.update_user(ids[-1], rank=Rank.TMC_PRO)

        async with ledger.transaction() as uow:
            root = await uow.get_user(ids[0])
            found = await ReferralGraph(uow).subtree_contains(
                root, lambda u: u.rank.at_least(Rank.TMC_PRO)
            )
            bounded = await ReferralGraph(uow, max_depth=2).subtree_contains(
                root, lambda u: u.rank.at_least(Rank.TMC_PRO)
            )

        assert found is True
        assert bounded is False

    @pytest.mark.asyncio
    async def test_no_match(self, ledger):
        ids = build_chain(ledger, 3)

        async with ledger.transaction() as uow:
            root = await uow.get_user(ids[0])
            found = await ReferralGraph(uow).subtree_contains(
                root, lambda u: u.rank != Rank.REGULAR
            )

        assert found is False


class TestIsAncestor:
    """Test ancestry checks used when linking referrers."""

    @pytest.mark.asyncio
    async def test_ancestor(self, ledger):
        top, _, bottom = build_chain(ledger, 3)

        async with ledger.transaction() as uow:
            graph = ReferralGraph(uow)
            assert await graph.is_ancestor(top, bottom) is True
            assert await graph.is_ancestor(bottom, top) is False

    @pytest.mark.asyncio
    async def test_user_is_its_own_ancestor(self, ledger):
        user_id = ledger.add_user()

        async with ledger.transaction() as uow:
            assert await ReferralGraph(uow).is_ancestor(user_id, user_id) is True

    @pytest.mark.asyncio
    async def test_not_limited_by_depth(self, ledger):
        ids = build_chain(ledger, 8)

        async with ledger.transaction() as uow:
            graph = ReferralGraph(uow, max_depth=2)
            assert await graph.is_ancestor(ids[0], ids[-1]) is True
