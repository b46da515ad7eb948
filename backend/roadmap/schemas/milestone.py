"""Milestone rollup schemas."""
from decimal import Decimal

from roadmap.schemas.allocation import CamelModel

NODE_STATUSES = ("planning", "in_progress", "completed", "active")


class MemberCostRollup(CamelModel):
    member_id: str
    name: str
    hours: Decimal
    daily_rate: Decimal
    cost: Decimal


class FeatureMemberCost(CamelModel):
    member_id: str
    name: str
    hours: Decimal
    cost: Decimal


class FeatureAllocationSummary(CamelModel):
    feature_id: str
    name: str
    members: list[FeatureMemberCost] = []
    total_hours: Decimal = Decimal(0)
    total_cost: Decimal = Decimal(0)


class ProviderCostSummary(CamelModel):
    id: str
    name: str
    amount: Decimal
    type: str


class OptionRevenueSummary(CamelModel):
    id: str
    name: str
    monthly_volume: Decimal
    transaction_fee_rate: Decimal
    monthly_revenue: Decimal


class MilestoneMetrics(CamelModel):
    milestone_id: str | None = None
    total_cost: Decimal = Decimal(0)
    monthly_value: Decimal = Decimal(0)
    node_count: int = 0
    completed_count: int = 0
    status_counts: dict[str, int] = {s: 0 for s in NODE_STATUSES}
    is_complete: bool = False
    completion_pct: Decimal = Decimal(0)
    suggested_status: str = "planning"
    team_costs: Decimal = Decimal(0)
    provider_costs: Decimal = Decimal(0)
    option_revenues: Decimal = Decimal(0)
    member_allocations: list[MemberCostRollup] = []
    feature_allocations: list[FeatureAllocationSummary] = []
    provider_details: list[ProviderCostSummary] = []
    option_details: list[OptionRevenueSummary] = []
