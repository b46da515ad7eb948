"""Read-side view-models: allocation view, cost summary, bandwidth and milestone metrics."""
import logging
from datetime import date
from decimal import Decimal

from roadmap.engine import bandwidth, capacity
from roadmap.engine.calculator import CostCalculator
from roadmap.engine.rollup import MilestoneRollup
from roadmap.exceptions import NodeNotFoundError, NodeSuppressedError
from roadmap.schemas.allocation import Member, Team, WorkItem
from roadmap.schemas.bandwidth import AvailabilityCheck, MemberAllocationReport, TeamBandwidth, WeeklyAvailability
from roadmap.schemas.calculation import CostSummary
from roadmap.schemas.graph import NodeType
from roadmap.schemas.milestone import MilestoneMetrics
from roadmap.schemas.views import AllocationView, AvailableMember, ConnectedTeam
from roadmap.services.repository import GraphRepository

logger = logging.getLogger(__name__)


class ViewService:
    def __init__(
        self,
        repository: GraphRepository,
        calculator: CostCalculator | None = None,
        today: date | None = None,
    ) -> None:
        self.repository = repository
        self.calculator = calculator or CostCalculator()
        self.rollup = MilestoneRollup(self.calculator)
        self.today = today

    async def _work_item(self, work_item_id: str) -> WorkItem:
        item = await self.repository.get_work_item(work_item_id)
        if item is None:
            raise NodeNotFoundError(work_item_id, "work item")
        return item

    def duration_days(self, work_item: WorkItem) -> int:
        """Working days of a work item: its duration, else derived from its dates."""
        if work_item.duration and work_item.duration > 0:
            return work_item.duration
        start, end = capacity.resolve_timeframe(work_item.start_date, work_item.end_date, None, self.today)
        return capacity.working_days(start, end)

    @staticmethod
    def _available_member(team: Team, work_item_id: str, member: Member) -> AvailableMember:
        entry = team.entry(member.id)
        committed = sum(
            (a.percent_of_daily_capacity for a in entry.work_allocations if a.work_item_id != work_item_id),
            Decimal(0),
        )
        weekly = capacity.weekly_capacity(member)
        headroom = capacity.clamp_percent(capacity.HUNDRED - committed)
        return AvailableMember(
            member_id=member.id,
            name=member.name,
            available_hours=(weekly * headroom / capacity.HUNDRED).quantize(Decimal("0.01")),
            daily_rate=member.daily_rate,
            hours_per_day=capacity.hours_per_day(member),
            days_per_week=capacity.days_per_week(member),
            weekly_capacity=weekly,
            allocation=entry.allocation_percent,
        )

    async def allocation_view(self, work_item_id: str) -> AllocationView:
        work_item = await self._work_item(work_item_id)
        connected: list[ConnectedTeam] = []
        all_members: dict[str, Member] = {}
        for team_id in await self.repository.connected_team_ids(work_item):
            try:
                team = await self.repository.get_team(team_id)
            except NodeSuppressedError:
                continue
            if team is None:
                logger.warning("Work item %s references missing team %s", work_item_id, team_id)
                continue
            members = await self.repository.roster_members(team)
            all_members.update(members)
            existing = work_item.team_allocation(team.id)
            connected.append(
                ConnectedTeam(
                    team_id=team.id,
                    title=team.title,
                    requested_hours=existing.requested_hours if existing else Decimal(0),
                    available_bandwidth=[
                        self._available_member(team, work_item.id, members[e.member_id])
                        for e in team.roster
                        if e.member_id in members
                    ],
                )
            )
        # Allocated members may have left the roster since
        missing = [
            m.member_id
            for t in work_item.team_allocations
            for m in t.allocated_members
            if m.member_id not in all_members
        ]
        all_members.update(await self.repository.get_members(missing))
        duration = self.duration_days(work_item)
        return AllocationView(
            work_item_id=work_item.id,
            duration_days=duration,
            connected_teams=connected,
            team_allocations=work_item.team_allocations,
            cost_summary=self.calculator.cost_summary(work_item.team_allocations, all_members, duration),
        )

    async def cost_summary(self, work_item_id: str) -> CostSummary:
        work_item = await self._work_item(work_item_id)
        member_ids = [m.member_id for t in work_item.team_allocations for m in t.allocated_members]
        members = await self.repository.get_members(member_ids)
        return self.calculator.cost_summary(work_item.team_allocations, members, self.duration_days(work_item))

    async def team_bandwidth(self, team_id: str) -> TeamBandwidth:
        team = await self.repository.get_team(team_id)
        if team is None:
            raise NodeNotFoundError(team_id, NodeType.TEAM.value)
        return bandwidth.team_bandwidth(team, await self.repository.roster_members(team))

    async def member_allocations(self) -> dict[str, MemberAllocationReport]:
        members = await self.repository.list_members()
        work_items = await self.repository.list_work_items()
        return bandwidth.member_allocations(members, work_items, self.today)

    async def _member_report(self, member_id: str) -> MemberAllocationReport:
        report = (await self.member_allocations()).get(member_id)
        if report is None:
            raise NodeNotFoundError(member_id, NodeType.TEAM_MEMBER.value)
        return report

    async def member_weekly_availability(self, member_id: str) -> list[WeeklyAvailability]:
        return bandwidth.weekly_availability(await self._member_report(member_id))

    async def member_availability(
        self,
        member_id: str,
        start: date,
        end: date,
        exclude_hours: Decimal = Decimal(0),
    ) -> AvailabilityCheck:
        report = await self._member_report(member_id)
        return bandwidth.check_member_availability(report, start, end, exclude_hours)

    async def milestone_metrics(self, milestone_id: str) -> MilestoneMetrics:
        milestone = await self.repository.get_milestone(milestone_id)
        if milestone is None:
            raise NodeNotFoundError(milestone_id, NodeType.MILESTONE.value)
        work_items = await self.repository.milestone_work_items(milestone_id)
        member_ids = [m.member_id for w in work_items for t in w.team_allocations for m in t.allocated_members]
        members = await self.repository.get_members(member_ids)
        return self.rollup.rollup(work_items, members, milestone_id)
