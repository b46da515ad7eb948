"""Bandwidth and over-allocation schemas."""
from datetime import date
from decimal import Decimal

from roadmap.schemas.allocation import CamelModel


class MemberBandwidth(CamelModel):
    member_id: str
    name: str
    weekly_capacity: Decimal
    team_allocation: Decimal
    capacity_hours: Decimal
    allocated_hours: Decimal
    available_hours: Decimal


class TeamBandwidth(CamelModel):
    team_id: str
    total: Decimal = Decimal(0)
    allocated: Decimal = Decimal(0)
    available: Decimal = Decimal(0)
    utilization_rate: Decimal = Decimal(0)
    members: list[MemberBandwidth] = []


class MemberWorkload(CamelModel):
    node_id: str
    node_name: str
    team_id: str
    start_date: date
    end_date: date
    weekly_hours: Decimal
    total_hours: Decimal


class MemberAllocationReport(CamelModel):
    member_id: str
    name: str
    weekly_capacity: Decimal
    effective_capacity: Decimal
    total_weekly_hours: Decimal = Decimal(0)
    is_over_allocated: bool = False
    over_allocated_by: Decimal = Decimal(0)
    allocations: list[MemberWorkload] = []


class WeeklyShare(CamelModel):
    node_id: str
    node_name: str
    hours: Decimal


class WeeklyAvailability(CamelModel):
    week_id: str
    start_date: date
    end_date: date
    available_hours: Decimal
    allocated_hours: Decimal
    over_allocated: bool
    over_allocated_by: Decimal
    allocations: list[WeeklyShare] = []


class AvailabilityCheck(CamelModel):
    available: bool
    available_hours: Decimal
    over_allocated_by: Decimal
