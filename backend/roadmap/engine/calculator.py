"""Centralized cost engine - all formulas deterministic, Decimal only. Rates are per day."""
import logging
from decimal import Decimal, ROUND_HALF_UP

from pydantic import ValidationError

from roadmap.config import get_settings
from roadmap.engine import capacity
from roadmap.schemas.allocation import AllocatedMember, Member, ProviderCost, TeamAllocation, WorkItem
from roadmap.schemas.calculation import (
    CostLine,
    CostMember,
    CostSummary,
    FixedCost,
    RevenueCost,
    TieredCost,
    UnitCost,
)

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
TWELVE = Decimal(12)


def _dec(value) -> Decimal:
    return ZERO if value is None else Decimal(str(value))


class CostCalculator:
    """Deterministic cost calculations for allocations and provider cost models."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self._provider_models = {
            "fixed": self._fixed_monthly,
            "unit": self._unit_monthly,
            "revenue": self._revenue_monthly,
            "tiered": self._tiered_monthly,
        }

    @staticmethod
    def _round(value: Decimal, places: int = 2) -> Decimal:
        """Round for internal calculation - display layer rounds for output."""
        quantize = Decimal(10) ** -places
        return value.quantize(quantize, rounding=ROUND_HALF_UP)

    def cost(self, hours: Decimal, hours_per_day: Decimal | None, daily_rate: Decimal) -> Decimal:
        """Cost = (Hours / Hours per Day) × Daily Rate."""
        return self._round(capacity.daily_equivalent(_dec(hours), hours_per_day) * _dec(daily_rate))

    def member_cost(self, allocated: AllocatedMember, member: Member | None) -> Decimal:
        """Cost of one allocated member; a dangling member falls back to the stored cost."""
        if member is None:
            if allocated.cost is not None:
                return self._round(allocated.cost)
            rate = Decimal(str(self.settings.default_daily_rate))
            return self.cost(allocated.hours, allocated.hours_per_day, rate)
        per_day = allocated.hours_per_day or capacity.hours_per_day(member)
        return self.cost(allocated.hours, per_day, member.daily_rate)

    # Provider cost models, normalized to a monthly figure

    @staticmethod
    def _fixed_monthly(details: dict, monthly_volume: Decimal) -> Decimal:
        fixed = FixedCost.model_validate(details)
        if fixed.frequency == "annual":
            return fixed.amount / TWELVE
        return fixed.amount

    @staticmethod
    def _unit_monthly(details: dict, monthly_volume: Decimal) -> Decimal:
        unit = UnitCost.model_validate(details)
        units = max(_dec(unit.minimum_units), unit.estimated_units)
        if unit.maximum_units is not None:
            units = min(units, unit.maximum_units)
        return unit.unit_price * units

    @staticmethod
    def _revenue_monthly(details: dict, monthly_volume: Decimal) -> Decimal:
        revenue = RevenueCost.model_validate(details)
        share = revenue.percentage / Decimal(100) * monthly_volume
        return max(_dec(revenue.minimum_monthly), share)

    @staticmethod
    def _tiered_monthly(details: dict, monthly_volume: Decimal) -> Decimal:
        # Marginal tier pricing against actual volume is not computed; the floor is reported.
        tiered = TieredCost.model_validate(details)
        return _dec(tiered.minimum_monthly)

    def provider_monthly_cost(self, cost: ProviderCost, monthly_volume: Decimal | None = None) -> Decimal:
        """Monthly cost of one provider cost line. Unknown or malformed lines count as 0."""
        handler = self._provider_models.get(cost.cost_type)
        if handler is None:
            logger.warning("Unknown provider cost type %r on cost %s, counting 0", cost.cost_type, cost.id or cost.name)
            return ZERO
        try:
            amount = handler(cost.details, _dec(monthly_volume))
        except ValidationError as e:
            logger.warning("Invalid %s cost details on %s: %s", cost.cost_type, cost.id or cost.name, e)
            return ZERO
        return self._round(amount)

    def provider_costs(self, work_item: WorkItem) -> list[tuple[ProviderCost, Decimal]]:
        return [(c, self.provider_monthly_cost(c, work_item.monthly_volume)) for c in work_item.costs]

    def option_monthly_revenue(self, transaction_fee_rate: Decimal | None, monthly_volume: Decimal | None) -> Decimal:
        """Monthly Revenue = Fee Rate % × Monthly Volume."""
        return self._round(_dec(transaction_fee_rate) / Decimal(100) * _dec(monthly_volume))

    def cost_summary(
        self,
        team_allocations: list[TeamAllocation],
        members: dict[str, Member],
        duration_days: int | None = None,
    ) -> CostSummary:
        """Cost breakdown for a work item's team allocations. Unknown members are skipped."""
        summary = CostSummary()
        total_cost = total_hours = total_days = ZERO
        for allocation in team_allocations:
            for allocated in allocation.allocated_members:
                member = members.get(allocated.member_id)
                if member is None:
                    continue
                per_day = allocated.hours_per_day or capacity.hours_per_day(member)
                days = capacity.daily_equivalent(allocated.hours, per_day)
                cost = self.cost(allocated.hours, per_day, member.daily_rate)
                available = capacity.effective_capacity(
                    capacity.weekly_capacity(member),
                    capacity.HUNDRED,
                    duration_days or self.settings.default_duration_days,
                    capacity.days_per_week(member),
                )
                share = allocated.hours / available * 100 if available > 0 else ZERO
                summary.allocations.append(
                    CostLine(
                        member=CostMember(member_id=member.id, name=member.name, daily_rate=member.daily_rate),
                        team_id=allocation.team_id,
                        allocation=self._round(share),
                        allocated_days=self._round(days),
                        hours=allocated.hours,
                        hours_per_day=per_day,
                        start_date=allocated.start_date,
                        end_date=allocated.end_date,
                        cost=cost,
                    )
                )
                total_cost += cost
                total_hours += allocated.hours
                total_days += days
        summary.total_cost = self._round(total_cost)
        summary.total_hours = total_hours
        summary.total_days = self._round(total_days)
        summary.daily_cost = self._round(total_cost / total_days) if total_days > 0 else ZERO
        dated = [a for a in summary.allocations if a.start_date and a.end_date]
        if dated:
            start = min(a.start_date for a in dated)
            end = max(a.end_date for a in dated)
            summary.calendar_duration = (end - start).days
        return summary
