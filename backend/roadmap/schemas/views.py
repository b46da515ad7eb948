"""View-models returned to the canvas UI."""
from decimal import Decimal

from roadmap.schemas.allocation import CamelModel, Team, TeamAllocation, WorkItem
from roadmap.schemas.calculation import CostSummary


class AvailableMember(CamelModel):
    member_id: str
    name: str
    available_hours: Decimal
    daily_rate: Decimal
    hours_per_day: Decimal
    days_per_week: Decimal
    weekly_capacity: Decimal
    allocation: Decimal


class ConnectedTeam(CamelModel):
    team_id: str
    title: str
    requested_hours: Decimal = Decimal(0)
    available_bandwidth: list[AvailableMember] = []


class AllocationView(CamelModel):
    work_item_id: str
    duration_days: int
    connected_teams: list[ConnectedTeam] = []
    team_allocations: list[TeamAllocation] = []
    cost_summary: CostSummary


class SaveResult(CamelModel):
    """Outcome of the two independent writes behind one allocation change."""

    team_saved: bool = False
    work_item_saved: bool = False
    pending: bool = False
    errors: list[str] = []

    @property
    def partial(self) -> bool:
        return self.team_saved != self.work_item_saved


class AllocationResult(CamelModel):
    team: Team
    work_item: WorkItem
    save: SaveResult
