"""
Shared fixtures for unit tests.

This module provides an in-memory ledger used by the engine tests:
- rows are stored as plain column dicts, one table per model
- every transaction materializes its own model instances
- changes are written back on commit and dropped when the block raises
- failures can be injected on locked user loads
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any

import pytest

from compensation.ledger.accessor import (
    ALL_INVESTMENTS,
    InvestmentFilter,
    LedgerAccessor,
    LedgerUnitOfWork,
)
from compensation.models import (
    BonusKind,
    BonusRecord,
    Investment,
    PackageType,
    Rank,
    RankRewardRecord,
    User,
)
from compensation.utils.exceptions import IntegrityError, NotFoundError


def _columns(model: type) -> list:
    return list(model.__table__.columns)


def _row_of(obj: Any) -> dict[str, Any]:
    return {col.key: getattr(obj, col.key) for col in _columns(type(obj))}


def _apply_defaults(obj: Any) -> None:
    """Fill unset columns with their Python-side defaults (as a flush would)."""
    for col in _columns(type(obj)):
        if getattr(obj, col.key) is not None or col.default is None:
            continue
        default = col.default
        value = default.arg(None) if default.is_callable else default.arg
        setattr(obj, col.key, value)


class FakeUnitOfWork(LedgerUnitOfWork):
    """Unit of work over FakeLedger tables with a per-transaction identity map."""

    def __init__(self, ledger: "FakeLedger") -> None:
        self.ledger = ledger
        # (model, id) -> (instance, row snapshot at load, None for inserts)
        self._loaded: dict[tuple[type, int], tuple[Any, dict | None]] = {}

    def _load(self, model: type, entity_id: int) -> Any | None:
        key = (model, entity_id)
        if key in self._loaded:
            return self._loaded[key][0]
        row = self.ledger.tables[model].get(entity_id)
        if row is None:
            return None
        obj = model(**row)
        self._loaded[key] = (obj, dict(row))
        return obj

    def _all(self, model: type) -> list[Any]:
        ids = set(self.ledger.tables[model])
        ids.update(entity_id for m, entity_id in self._loaded if m is model)
        return [self._load(model, entity_id) for entity_id in sorted(ids)]

    def _track(self, obj: Any) -> Any:
        model = type(obj)
        if obj.id is None:
            _apply_defaults(obj)
            obj.id = self.ledger.next_id(model)
            self._loaded[(model, obj.id)] = (obj, None)
            return obj
        key = (model, obj.id)
        current = self._loaded.get(key)
        if current is None:
            self._loaded[key] = (obj, dict(self.ledger.tables[model][obj.id]))
        elif current[0] is not obj:
            self._loaded[key] = (obj, current[1])
        return obj

    def commit(self) -> None:
        for (model, entity_id), (obj, snapshot) in self._loaded.items():
            values = _row_of(obj)
            if snapshot is None:
                self.ledger.tables[model][entity_id] = values
                continue
            row = self.ledger.tables[model][entity_id]
            for column, value in values.items():
                if value != snapshot.get(column):
                    row[column] = value

    async def get_user(self, user_id: int, for_update: bool = False) -> User:
        if for_update:
            self.ledger.raise_injected(user_id)
        user = self._load(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return user

    async def save_user(self, user: User) -> User:
        return self._track(user)

    async def find_investments(
        self, user_id: int, filter: InvestmentFilter = ALL_INVESTMENTS
    ) -> list[Investment]:
        return [
            i for i in self._all(Investment)
            if i.user_id == user_id
            and (not filter.active_only or (i.is_active and not i.is_capped))
            and (filter.package_type is None or i.package_type == filter.package_type)
        ]

    async def get_investment(self, investment_id: int) -> Investment:
        investment = self._load(Investment, investment_id)
        if investment is None:
            raise NotFoundError(f"Investment {investment_id} not found")
        return investment

    async def save_investment(self, investment: Investment) -> Investment:
        return self._track(investment)

    async def active_total(self, user_id: int, package_type: PackageType) -> Decimal:
        active = await self.find_investments(
            user_id, InvestmentFilter(active_only=True, package_type=package_type)
        )
        return sum((i.amount for i in active if i.amount is not None), Decimal("0"))

    async def list_unsettled_investment_ids(self, limit: int = 500) -> list[int]:
        return [i.id for i in self._all(Investment) if not i.bonuses_settled][:limit]

    async def find_downline(self, user_id: int) -> list[User]:
        return [u for u in self._all(User) if u.referrer_id == user_id]

    async def count_direct(self, user_id: int) -> int:
        return len(await self.find_downline(user_id))

    async def bonus_exists(
        self, investment_id: int, kind: BonusKind, level: int, recipient_id: int
    ) -> bool:
        return any(
            r.investment_id == investment_id
            and r.kind == kind
            and r.level == level
            and r.recipient_id == recipient_id
            for r in self._all(BonusRecord)
        )

    async def add_bonus_record(self, record: BonusRecord) -> BonusRecord:
        if await self.bonus_exists(
            record.investment_id, record.kind, record.level, record.recipient_id
        ):
            raise IntegrityError("Duplicate bonus record tag")
        return self._track(record)

    async def get_rank_reward(self, user_id: int, rank: Rank) -> RankRewardRecord | None:
        for record in self._all(RankRewardRecord):
            if record.user_id == user_id and record.rank == rank:
                return record
        return None

    async def save_rank_reward(self, record: RankRewardRecord) -> RankRewardRecord:
        return self._track(record)


class FakeLedger(LedgerAccessor):
    """In-memory ledger with commit/rollback semantics."""

    def __init__(self) -> None:
        self.tables: dict[type, dict[int, dict[str, Any]]] = {
            User: {},
            Investment: {},
            BonusRecord: {},
            RankRewardRecord: {},
        }
        self._ids: dict[type, int] = {model: 0 for model in self.tables}
        self._failures: dict[int, list[BaseException]] = {}
        self.transactions = 0
        self.commits = 0

    def next_id(self, model: type) -> int:
        self._ids[model] += 1
        return self._ids[model]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[FakeUnitOfWork]:
        self.transactions += 1
        uow = FakeUnitOfWork(self)
        yield uow
        uow.commit()
        self.commits += 1

    async def list_active_user_ids(self) -> list[int]:
        return sorted(
            entity_id for entity_id, row in self.tables[User].items() if row["is_active"]
        )

    # Failure injection

    def fail_user(self, user_id: int, error: BaseException, times: int = 1) -> None:
        """Raise error on the next `times` locked loads of a user."""
        self._failures.setdefault(user_id, []).extend([error] * times)

    def raise_injected(self, user_id: int) -> None:
        pending = self._failures.get(user_id)
        if pending:
            raise pending.pop(0)

    # Seeding and inspection helpers

    def _insert(self, obj: Any) -> int:
        _apply_defaults(obj)
        obj.id = self.next_id(type(obj))
        self.tables[type(obj)][obj.id] = _row_of(obj)
        return obj.id

    def add_user(self, **fields: Any) -> int:
        fields.setdefault("payout_address", f"addr-{self._ids[User] + 1}")
        return self._insert(User(**fields))

    def update_user(self, user_id: int, **fields: Any) -> None:
        self.tables[User][user_id].update(fields)

    def update_investment(self, investment_id: int, **fields: Any) -> None:
        self.tables[Investment][investment_id].update(fields)

    def add_investment(
        self, user_id: int, amount: Any = Decimal("1000"), **fields: Any
    ) -> int:
        fields.setdefault("bonuses_settled", True)
        return self._insert(Investment(user_id=user_id, amount=amount, **fields))

    def add_rank_reward(self, user_id: int, rank: Rank, entered_at: datetime, **fields: Any) -> int:
        return self._insert(
            RankRewardRecord(user_id=user_id, rank=rank, entered_at=entered_at, **fields)
        )

    def user(self, user_id: int) -> User:
        return User(**self.tables[User][user_id])

    def investment(self, investment_id: int) -> Investment:
        return Investment(**self.tables[Investment][investment_id])

    def investments_of(self, user_id: int) -> list[Investment]:
        return [
            Investment(**row) for row in self.tables[Investment].values()
            if row["user_id"] == user_id
        ]

    def bonus_records(self, **filters: Any) -> list[BonusRecord]:
        return [
            BonusRecord(**row) for row in self.tables[BonusRecord].values()
            if all(row[k] == v for k, v in filters.items())
        ]

    def rank_reward(self, user_id: int, rank: Rank) -> RankRewardRecord | None:
        for row in self.tables[RankRewardRecord].values():
            if row["user_id"] == user_id and row["rank"] == rank:
                return RankRewardRecord(**row)
        return None


@pytest.fixture
def ledger():
    """Empty in-memory ledger."""
    return FakeLedger()
