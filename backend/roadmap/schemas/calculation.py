"""Calculation result schemas."""
from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import Field

from roadmap.schemas.allocation import CamelModel


class FixedCost(CamelModel):
    amount: Decimal = Field(default=Decimal(0), ge=0)
    frequency: Literal["monthly", "annual"] = "monthly"


class UnitCost(CamelModel):
    unit_price: Decimal = Field(default=Decimal(0), ge=0)
    unit_type: str = ""
    minimum_units: Decimal | None = None
    maximum_units: Decimal | None = None
    estimated_units: Decimal = Decimal(0)


class RevenueCost(CamelModel):
    percentage: Decimal = Field(default=Decimal(0), ge=0)
    minimum_monthly: Decimal | None = None


class TierRange(CamelModel):
    min: Decimal
    max: Decimal | None = None
    unit_price: Decimal


class TieredCost(CamelModel):
    unit_type: str = ""
    tiers: list[TierRange] = []
    minimum_monthly: Decimal | None = None


class CostMember(CamelModel):
    member_id: str
    name: str
    daily_rate: Decimal


class CostLine(CamelModel):
    member: CostMember
    team_id: str
    allocation: Decimal
    allocated_days: Decimal
    hours: Decimal
    hours_per_day: Decimal
    start_date: date | None = None
    end_date: date | None = None
    cost: Decimal


class CostSummary(CamelModel):
    daily_cost: Decimal = Decimal(0)
    total_cost: Decimal = Decimal(0)
    total_hours: Decimal = Decimal(0)
    total_days: Decimal = Decimal(0)
    calendar_duration: int | None = None
    allocations: list[CostLine] = []
