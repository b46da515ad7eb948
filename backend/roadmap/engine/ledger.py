"""Allocation ledger: the single writer of the team-roster and work-item projections.

Every (team, work item, member) assignment is computed once as a
``MemberWorkAllocation`` and then projected into both views:

- team view: ``Team.roster[member].work_allocations[work_item]``
- work-item view: ``WorkItem.team_allocations[team].allocated_members[member]``

Ledger operations never mutate their inputs. They return deep copies of the
team and work item with both projections updated together.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import TypeVar

from pydantic import BaseModel

from roadmap.engine import capacity
from roadmap.engine.calculator import CostCalculator
from roadmap.schemas.allocation import (
    AllocatedMember,
    Member,
    RosterEntry,
    Team,
    TeamAllocation,
    WorkAllocation,
    WorkItem,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _q(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MemberWorkAllocation:
    """One member's committed time on one work item for one team."""

    team_id: str
    work_item_id: str
    member_id: str
    member_name: str
    hours: Decimal
    hours_per_day: Decimal
    percentage: Decimal
    start_date: date
    end_date: date
    working_days: int
    cost: Decimal

    @property
    def weekly_hours(self) -> Decimal:
        return _q(capacity.weekly_hours(self.hours, self.start_date, self.end_date))

    def to_work_allocation(self) -> WorkAllocation:
        return WorkAllocation(
            work_item_id=self.work_item_id,
            percent_of_daily_capacity=self.percentage,
            start_date=self.start_date,
            end_date=self.end_date,
            total_hours=self.hours,
            weekly_hours=self.weekly_hours,
        )

    def to_allocated_member(self) -> AllocatedMember:
        return AllocatedMember(
            member_id=self.member_id,
            name=self.member_name,
            hours=self.hours,
            hours_per_day=self.hours_per_day,
            start_date=self.start_date,
            end_date=self.end_date,
            cost=self.cost,
        )


@dataclass
class LedgerUpdate:
    team: Team
    work_item: WorkItem
    allocations: list[MemberWorkAllocation] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    changed: bool = False


def roster_percent(entry: RosterEntry) -> Decimal:
    """Roster allocation = Σ work allocation percentages, capped at 100."""
    total = sum((a.percent_of_daily_capacity for a in entry.work_allocations), Decimal(0))
    return capacity.clamp_percent(total)


def _carry_extra(previous: ModelT | None, incoming: ModelT) -> ModelT:
    """Keep unmodelled keys the previous record carried."""
    if previous is None or not previous.model_extra:
        return incoming
    return incoming.model_copy(update=dict(previous.model_extra))


def _sync_requested_hours(team_allocation: TeamAllocation) -> None:
    team_allocation.requested_hours = sum((m.hours for m in team_allocation.allocated_members), Decimal(0))


class AllocationLedger:
    """Distributes requested effort across team members and keeps both projections in step."""

    def __init__(self, calculator: CostCalculator | None = None, today: date | None = None) -> None:
        self.calculator = calculator or CostCalculator()
        self.today = today

    def _compute(
        self,
        team: Team,
        work_item: WorkItem,
        member: Member,
        hours: Decimal,
        start_date: date | None,
        end_date: date | None,
    ) -> MemberWorkAllocation | None:
        entry = team.entry(member.id)
        if entry is None:
            logger.warning("Member %s is not on team %s roster, skipping allocation", member.id, team.id)
            return None
        start, end = capacity.resolve_timeframe(
            start_date or work_item.start_date,
            end_date or work_item.end_date,
            work_item.duration,
            self.today,
        )
        end = max(start, end)
        per_day = capacity.hours_per_day(member)
        days = capacity.working_days(start, end, capacity.days_per_week(member))
        percentage = capacity.percent_of_daily_capacity(hours, days, per_day)
        committed = sum(
            (a.percent_of_daily_capacity for a in entry.work_allocations if a.work_item_id != work_item.id),
            Decimal(0),
        )
        headroom = max(Decimal(0), capacity.HUNDRED - committed)
        if percentage > headroom:
            logger.info(
                "Clamping member %s on team %s from %s%% to %s%% of daily capacity",
                member.id,
                team.id,
                _q(percentage),
                _q(headroom),
            )
            percentage = headroom
        return MemberWorkAllocation(
            team_id=team.id,
            work_item_id=work_item.id,
            member_id=member.id,
            member_name=member.name,
            hours=hours,
            hours_per_day=per_day,
            percentage=_q(percentage),
            start_date=start,
            end_date=end,
            working_days=days,
            cost=self.calculator.cost(hours, per_day, member.daily_rate),
        )

    @staticmethod
    def _apply(team: Team, work_item: WorkItem, allocations: list[MemberWorkAllocation]) -> tuple[Team, WorkItem]:
        team = team.model_copy(deep=True)
        work_item = work_item.model_copy(deep=True)

        for alloc in allocations:
            entry = team.entry(alloc.member_id)
            incoming = alloc.to_work_allocation()
            previous = entry.work_allocation(alloc.work_item_id)
            entry.work_allocations = [a for a in entry.work_allocations if a.work_item_id != alloc.work_item_id]
            entry.work_allocations.append(_carry_extra(previous, incoming))
            entry.allocation_percent = roster_percent(entry)

        team_allocation = work_item.team_allocation(team.id)
        if team_allocation is None:
            team_allocation = TeamAllocation(team_id=team.id)
            work_item.team_allocations.append(team_allocation)
        for alloc in allocations:
            incoming = alloc.to_allocated_member()
            idx = next(
                (i for i, m in enumerate(team_allocation.allocated_members) if m.member_id == alloc.member_id),
                None,
            )
            if idx is None:
                team_allocation.allocated_members.append(incoming)
            else:
                team_allocation.allocated_members[idx] = _carry_extra(team_allocation.allocated_members[idx], incoming)
        # Span every allocated member, not only the ones in this call
        starts = [m.start_date for m in team_allocation.allocated_members if m.start_date is not None]
        ends = [m.end_date for m in team_allocation.allocated_members if m.end_date is not None]
        team_allocation.start_date = min(starts) if starts else None
        team_allocation.end_date = max(ends) if ends else None
        _sync_requested_hours(team_allocation)
        return team, work_item

    def request_allocation(
        self,
        team: Team,
        work_item: WorkItem,
        members: dict[str, Member],
        requested_hours: Decimal,
        member_ids: list[str],
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> LedgerUpdate:
        """Split requested hours evenly across members and record them on both projections."""
        member_ids = list(dict.fromkeys(member_ids))
        if not member_ids:
            return LedgerUpdate(team=team, work_item=work_item)

        share = _q(Decimal(requested_hours) / Decimal(len(member_ids)))
        allocations: list[MemberWorkAllocation] = []
        skipped: list[str] = []
        for member_id in member_ids:
            member = members.get(member_id)
            if member is None:
                logger.warning("Member %s not found, skipping allocation on %s", member_id, work_item.id)
                skipped.append(member_id)
                continue
            alloc = self._compute(team, work_item, member, share, start_date, end_date)
            if alloc is None:
                skipped.append(member_id)
                continue
            allocations.append(alloc)

        if not allocations:
            return LedgerUpdate(team=team, work_item=work_item, skipped=skipped)
        new_team, new_item = self._apply(team, work_item, allocations)
        logger.info(
            "Allocated %s hours on %s from team %s across %d member(s)",
            requested_hours,
            work_item.id,
            team.id,
            len(allocations),
        )
        return LedgerUpdate(team=new_team, work_item=new_item, allocations=allocations, skipped=skipped, changed=True)

    def update_member_allocation(
        self,
        team: Team,
        work_item: WorkItem,
        member: Member | None,
        hours: Decimal,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> LedgerUpdate:
        """Set one member's hours on a work item, e.g. from a slider edit."""
        if member is None:
            return LedgerUpdate(team=team, work_item=work_item)
        alloc = self._compute(team, work_item, member, Decimal(hours), start_date, end_date)
        if alloc is None:
            return LedgerUpdate(team=team, work_item=work_item, skipped=[member.id])
        new_team, new_item = self._apply(team, work_item, [alloc])
        return LedgerUpdate(team=new_team, work_item=new_item, allocations=[alloc], changed=True)

    def remove_member_allocation(self, team: Team, work_item: WorkItem, member_id: str) -> LedgerUpdate:
        """Drop a member's allocation on a work item from both projections."""
        team = team.model_copy(deep=True)
        work_item = work_item.model_copy(deep=True)
        changed = False

        entry = team.entry(member_id)
        if entry is not None and entry.work_allocation(work_item.id) is not None:
            entry.work_allocations = [a for a in entry.work_allocations if a.work_item_id != work_item.id]
            entry.allocation_percent = roster_percent(entry)
            changed = True

        team_allocation = work_item.team_allocation(team.id)
        if team_allocation is not None and team_allocation.member(member_id) is not None:
            team_allocation.allocated_members = [
                m for m in team_allocation.allocated_members if m.member_id != member_id
            ]
            if team_allocation.allocated_members:
                _sync_requested_hours(team_allocation)
            else:
                work_item.team_allocations = [t for t in work_item.team_allocations if t.team_id != team.id]
            changed = True

        return LedgerUpdate(team=team, work_item=work_item, changed=changed)

    def connect_member(
        self,
        team: Team,
        member_id: str,
        role: str = "",
        allocation: Decimal = Decimal(0),
        start_date: date | None = None,
    ) -> Team:
        """Add a roster entry for a newly connected member. Existing entries are kept as-is."""
        if team.entry(member_id) is not None:
            return team
        team = team.model_copy(deep=True)
        team.roster.append(
            RosterEntry(
                member_id=member_id,
                allocation_percent=capacity.clamp_percent(Decimal(allocation)),
                role=role,
                start_date=start_date or self.today or date.today(),
            )
        )
        return team

    def disconnect_member(
        self,
        team: Team,
        member_id: str,
        work_items: list[WorkItem],
    ) -> tuple[Team, list[WorkItem]]:
        """Remove a member from the roster and from every work item this team allocated them to."""
        team = team.model_copy(deep=True)
        team.roster = [e for e in team.roster if e.member_id != member_id]
        changed: list[WorkItem] = []
        for work_item in work_items:
            team_allocation = work_item.team_allocation(team.id)
            if team_allocation is None or team_allocation.member(member_id) is None:
                continue
            update = self.remove_member_allocation(team, work_item, member_id)
            changed.append(update.work_item)
        return team, changed

    def rederive_work_item(self, team: Team, work_item: WorkItem, members: dict[str, Member]) -> WorkItem:
        """Rebuild a work item's allocation for ``team`` from the team roster."""
        work_item = work_item.model_copy(deep=True)
        allocated: list[AllocatedMember] = []
        for entry in team.roster:
            wa = entry.work_allocation(work_item.id)
            if wa is None:
                continue
            member = members.get(entry.member_id)
            per_day = capacity.hours_per_day(member) if member else None
            existing = work_item.team_allocation(team.id)
            previous = existing.member(entry.member_id) if existing else None
            rebuilt_member = AllocatedMember(
                member_id=entry.member_id,
                name=member.name if member else (previous.name if previous else None),
                hours=wa.total_hours,
                hours_per_day=per_day or (previous.hours_per_day if previous else None),
                start_date=wa.start_date,
                end_date=wa.end_date,
                cost=self.calculator.cost(wa.total_hours, per_day, member.daily_rate) if member else None,
            )
            allocated.append(_carry_extra(previous, rebuilt_member))

        others = [t for t in work_item.team_allocations if t.team_id != team.id]
        if allocated:
            existing = work_item.team_allocation(team.id)
            rebuilt = TeamAllocation(
                team_id=team.id,
                allocated_members=allocated,
                start_date=existing.start_date if existing else None,
                end_date=existing.end_date if existing else None,
            )
            rebuilt = _carry_extra(existing, rebuilt)
            _sync_requested_hours(rebuilt)
            others.append(rebuilt)
        work_item.team_allocations = others
        return work_item
