"""Team, member and work item schemas.

Attribute names are snake_case; the graph store speaks camelCase, and a few
roster fields keep their historical wire names (``allocation``,
``allocations``, ``nodeId``, ``percentage``).
"""
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectionModel(CamelModel):
    """Roster and allocation records. Keys written by other clients are kept on save."""

    model_config = ConfigDict(extra="allow")


class Member(CamelModel):
    """Team member node. Missing schedule fields are defaulted by the capacity model."""

    id: str
    title: str = ""
    hours_per_day: Decimal | None = None
    days_per_week: Decimal | None = None
    daily_rate: Decimal = Decimal(0)

    @property
    def name(self) -> str:
        return self.title or self.id[:8]


class Season(CamelModel):
    start_date: date
    end_date: date
    name: str = ""


class WorkAllocation(ProjectionModel):
    """Team-side record of a member's commitment to one work item."""

    work_item_id: str = Field(alias="nodeId")
    percent_of_daily_capacity: Decimal = Field(default=Decimal(0), alias="percentage")
    start_date: date | None = None
    end_date: date | None = None
    total_hours: Decimal = Decimal(0)
    weekly_hours: Decimal | None = None


class RosterEntry(ProjectionModel):
    member_id: str
    allocation_percent: Decimal = Field(default=Decimal(0), alias="allocation")
    role: str = ""
    start_date: date | None = None
    work_allocations: list[WorkAllocation] = Field(default_factory=list, alias="allocations")

    def work_allocation(self, work_item_id: str) -> WorkAllocation | None:
        return next((a for a in self.work_allocations if a.work_item_id == work_item_id), None)


class Team(CamelModel):
    id: str
    title: str = ""
    season: Season | None = None
    roster: list[RosterEntry] = Field(default_factory=list)

    def entry(self, member_id: str) -> RosterEntry | None:
        return next((e for e in self.roster if e.member_id == member_id), None)


class AllocatedMember(ProjectionModel):
    """Work-item-side record of a member's hours for one team."""

    member_id: str
    name: str | None = None
    hours: Decimal = Decimal(0)
    hours_per_day: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    cost: Decimal | None = None


class TeamAllocation(ProjectionModel):
    team_id: str
    requested_hours: Decimal = Decimal(0)
    allocated_members: list[AllocatedMember] = Field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None

    def member(self, member_id: str) -> AllocatedMember | None:
        return next((m for m in self.allocated_members if m.member_id == member_id), None)


class ProviderCost(CamelModel):
    """Provider cost line. ``details`` is validated per ``cost_type`` by the calculator."""

    id: str = ""
    name: str = ""
    cost_type: str
    details: dict = Field(default_factory=dict)


class WorkItem(CamelModel):
    """Feature, option or provider node."""

    id: str
    node_type: str = "feature"
    title: str = ""
    status: str | None = None
    duration: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    team_allocations: list[TeamAllocation] = Field(default_factory=list)
    # option
    transaction_fee_rate: Decimal | None = None
    monthly_volume: Decimal | None = None
    # provider
    costs: list[ProviderCost] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.title or self.id[:8]

    def team_allocation(self, team_id: str) -> TeamAllocation | None:
        return next((t for t in self.team_allocations if t.team_id == team_id), None)


class Milestone(CamelModel):
    id: str
    title: str = ""
    status: str | None = None


class AllocationRequest(CamelModel):
    team_id: str = Field(..., min_length=1)
    requested_hours: Decimal = Field(..., ge=0)
    member_ids: list[str] = []
    start_date: date | None = None
    end_date: date | None = None


class MemberAllocationUpdate(CamelModel):
    hours: Decimal = Field(..., ge=0)
    start_date: date | None = None
    end_date: date | None = None
