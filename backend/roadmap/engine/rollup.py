"""Milestone rollup: costs, value and completion across connected work items."""
import logging
from decimal import Decimal

from roadmap.engine.calculator import CostCalculator
from roadmap.schemas.allocation import Member, WorkItem
from roadmap.schemas.milestone import (
    NODE_STATUSES,
    FeatureAllocationSummary,
    FeatureMemberCost,
    MemberCostRollup,
    MilestoneMetrics,
    OptionRevenueSummary,
    ProviderCostSummary,
)

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
DONE_STATUSES = frozenset({"completed", "active"})


def suggested_status(completion_pct: Decimal) -> str:
    """Status a milestone would have from its completion alone. Never written back."""
    if completion_pct <= 0:
        return "planning"
    if completion_pct >= 100:
        return "completed"
    return "in_progress"


class MilestoneRollup:
    def __init__(self, calculator: CostCalculator | None = None) -> None:
        self.calculator = calculator or CostCalculator()

    def rollup(
        self,
        work_items: list[WorkItem],
        members: dict[str, Member],
        milestone_id: str | None = None,
    ) -> MilestoneMetrics:
        calc = self.calculator
        metrics = MilestoneMetrics(milestone_id=milestone_id)
        status_counts = {s: 0 for s in NODE_STATUSES}
        by_member: dict[str, MemberCostRollup] = {}
        team_costs = provider_costs = option_revenues = ZERO

        for item in work_items:
            status = item.status or "planning"
            if status in status_counts:
                status_counts[status] += 1
            else:
                logger.debug("Work item %s has unrecognised status %r", item.id, status)

            feature = FeatureAllocationSummary(feature_id=item.id, name=item.name)
            for team_allocation in item.team_allocations:
                for allocated in team_allocation.allocated_members:
                    member = members.get(allocated.member_id)
                    cost = calc.member_cost(allocated, member)
                    name = member.name if member else (allocated.name or allocated.member_id)
                    feature.members.append(
                        FeatureMemberCost(member_id=allocated.member_id, name=name, hours=allocated.hours, cost=cost)
                    )
                    feature.total_hours += allocated.hours
                    feature.total_cost += cost

                    rollup = by_member.get(allocated.member_id)
                    if rollup is None:
                        rate = member.daily_rate if member else Decimal(str(calc.settings.default_daily_rate))
                        rollup = by_member[allocated.member_id] = MemberCostRollup(
                            member_id=allocated.member_id, name=name, hours=ZERO, daily_rate=rate, cost=ZERO
                        )
                    rollup.hours += allocated.hours
                    rollup.cost += cost
            if feature.members:
                metrics.feature_allocations.append(feature)
                team_costs += feature.total_cost

            if item.node_type == "provider":
                for cost_line, amount in calc.provider_costs(item):
                    metrics.provider_details.append(
                        ProviderCostSummary(
                            id=cost_line.id or item.id,
                            name=cost_line.name or item.name,
                            amount=amount,
                            type=cost_line.cost_type,
                        )
                    )
                    provider_costs += amount
            elif item.node_type == "option":
                revenue = calc.option_monthly_revenue(item.transaction_fee_rate, item.monthly_volume)
                metrics.option_details.append(
                    OptionRevenueSummary(
                        id=item.id,
                        name=item.name,
                        monthly_volume=item.monthly_volume or ZERO,
                        transaction_fee_rate=item.transaction_fee_rate or ZERO,
                        monthly_revenue=revenue,
                    )
                )
                option_revenues += revenue

        metrics.member_allocations = list(by_member.values())
        metrics.team_costs = calc._round(team_costs)
        metrics.provider_costs = calc._round(provider_costs)
        metrics.option_revenues = calc._round(option_revenues)
        metrics.total_cost = calc._round(team_costs + provider_costs)
        metrics.monthly_value = metrics.option_revenues
        metrics.status_counts = status_counts
        metrics.node_count = len(work_items)
        metrics.completed_count = sum(status_counts[s] for s in DONE_STATUSES)
        metrics.is_complete = metrics.node_count > 0 and metrics.completed_count == metrics.node_count
        if metrics.node_count:
            metrics.completion_pct = calc._round(
                Decimal(metrics.completed_count) / Decimal(metrics.node_count) * Decimal(100)
            )
        metrics.suggested_status = suggested_status(metrics.completion_pct)
        return metrics
