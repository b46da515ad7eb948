"""Team utilization and cross-team over-allocation reporting."""
import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal

from roadmap.engine import capacity
from roadmap.engine.ledger import _q
from roadmap.schemas.allocation import Member, Team, WorkItem
from roadmap.schemas.bandwidth import (
    AvailabilityCheck,
    MemberAllocationReport,
    MemberBandwidth,
    MemberWorkload,
    TeamBandwidth,
    WeeklyAvailability,
    WeeklyShare,
)

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


def team_bandwidth(team: Team, members: dict[str, Member]) -> TeamBandwidth:
    """Total vs allocated weekly hours for a team, from its roster.

    total = Σ weekly capacity × roster allocation %
    allocated = Σ work allocation % × weekly capacity × roster allocation %
    """
    result = TeamBandwidth(team_id=team.id)
    total = allocated = ZERO
    for entry in team.roster:
        member = members.get(entry.member_id)
        if member is None:
            logger.debug("Roster member %s of team %s not found, ignoring", entry.member_id, team.id)
            continue
        weekly = capacity.weekly_capacity(member)
        share = capacity.clamp_percent(entry.allocation_percent) / capacity.HUNDRED
        member_capacity = weekly * share
        member_allocated = sum(
            (a.percent_of_daily_capacity / capacity.HUNDRED * member_capacity for a in entry.work_allocations),
            ZERO,
        )
        total += member_capacity
        allocated += member_allocated
        result.members.append(
            MemberBandwidth(
                member_id=member.id,
                name=member.name,
                weekly_capacity=weekly,
                team_allocation=entry.allocation_percent,
                capacity_hours=_q(member_capacity),
                allocated_hours=_q(member_allocated),
                available_hours=_q(max(ZERO, member_capacity - member_allocated)),
            )
        )
    result.total = _q(total)
    result.allocated = _q(allocated)
    result.available = _q(max(ZERO, total - allocated))
    result.utilization_rate = _q(allocated / total * capacity.HUNDRED) if total > 0 else ZERO
    return result


def member_allocations(
    members: dict[str, Member],
    work_items: list[WorkItem],
    today: date | None = None,
) -> dict[str, MemberAllocationReport]:
    """Weekly commitments per member across every team and work item.

    A member is over-allocated when the summed weekly hours exceed their weekly capacity.
    """
    reports: dict[str, MemberAllocationReport] = {}
    for member in members.values():
        weekly = capacity.weekly_capacity(member)
        reports[member.id] = MemberAllocationReport(
            member_id=member.id,
            name=member.name,
            weekly_capacity=weekly,
            effective_capacity=weekly,
        )

    for work_item in work_items:
        if work_item.start_date and work_item.end_date:
            item_start, item_end = work_item.start_date, work_item.end_date
        else:
            item_start, item_end = capacity.default_timeframe(today=today)
        for team_allocation in work_item.team_allocations:
            for allocated in team_allocation.allocated_members:
                report = reports.get(allocated.member_id)
                if report is None or allocated.hours <= 0:
                    continue
                start = allocated.start_date or item_start
                end = max(start, allocated.end_date or item_end)
                report.allocations.append(
                    MemberWorkload(
                        node_id=work_item.id,
                        node_name=work_item.name,
                        team_id=team_allocation.team_id,
                        start_date=start,
                        end_date=end,
                        weekly_hours=_q(capacity.weekly_hours(allocated.hours, start, end)),
                        total_hours=allocated.hours,
                    )
                )

    for report in reports.values():
        report.total_weekly_hours = sum((a.weekly_hours for a in report.allocations), ZERO)
        report.is_over_allocated = report.total_weekly_hours > report.effective_capacity
        report.over_allocated_by = max(ZERO, report.total_weekly_hours - report.effective_capacity)
        if report.is_over_allocated:
            logger.info(
                "Member %s over-allocated: %s h/week against %s h capacity",
                report.member_id,
                report.total_weekly_hours,
                report.effective_capacity,
            )
    return reports


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def weekly_availability(report: MemberAllocationReport) -> list[WeeklyAvailability]:
    """Split each workload across ISO weeks and flag weeks above capacity."""
    weeks: dict[date, list[WeeklyShare]] = defaultdict(list)
    for workload in report.allocations:
        total_days = Decimal((workload.end_date - workload.start_date).days + 1)
        week = _week_start(workload.start_date)
        while week <= workload.end_date:
            lo = max(workload.start_date, week)
            hi = min(workload.end_date, week + timedelta(days=6))
            days_in_week = Decimal((hi - lo).days + 1)
            weeks[week].append(
                WeeklyShare(
                    node_id=workload.node_id,
                    node_name=workload.node_name,
                    hours=_q(workload.total_hours * days_in_week / total_days),
                )
            )
            week += timedelta(days=7)

    result = []
    for week in sorted(weeks):
        shares = weeks[week]
        allocated = sum((s.hours for s in shares), ZERO)
        iso_year, iso_week, _ = week.isocalendar()
        result.append(
            WeeklyAvailability(
                week_id=f"{iso_year}-W{iso_week:02d}",
                start_date=week,
                end_date=week + timedelta(days=6),
                available_hours=report.effective_capacity,
                allocated_hours=allocated,
                over_allocated=allocated > report.effective_capacity,
                over_allocated_by=max(ZERO, allocated - report.effective_capacity),
                allocations=shares,
            )
        )
    return result


def check_member_availability(
    report: MemberAllocationReport,
    start: date,
    end: date,
    exclude_hours: Decimal = ZERO,
) -> AvailabilityCheck:
    """Capacity left for a member in a period, net of overlapping allocations.

    ``exclude_hours`` removes the allocation currently being edited from the tally.
    """
    weeks = Decimal(capacity.calendar_duration(start, end)) / capacity.SEVEN
    total_capacity = report.effective_capacity * weeks
    allocated = sum(
        (
            a.total_hours
            for a in report.allocations
            if capacity.periods_overlap(a.start_date, a.end_date, start, end)
        ),
        ZERO,
    ) - Decimal(exclude_hours)
    return AvailabilityCheck(
        available=allocated <= total_capacity,
        available_hours=_q(max(ZERO, total_capacity - allocated)),
        over_allocated_by=_q(max(ZERO, allocated - total_capacity)),
    )
