"""Capacity model: usable hours from per-member schedule attributes. Pure functions."""
import math
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from roadmap.config import get_settings
from roadmap.schemas.allocation import Member

ZERO = Decimal(0)
HUNDRED = Decimal(100)
SEVEN = Decimal(7)


def _positive(value: Decimal | int | float | None, default: int | float) -> Decimal:
    if value is None:
        return Decimal(str(default))
    d = Decimal(str(value))
    return d if d > 0 else Decimal(str(default))


def hours_per_day(member: Member) -> Decimal:
    return _positive(member.hours_per_day, get_settings().default_hours_per_day)


def days_per_week(member: Member) -> Decimal:
    return _positive(member.days_per_week, get_settings().default_days_per_week)


def weekly_capacity(member: Member) -> Decimal:
    """Weekly Capacity = hours per day × days per week."""
    return hours_per_day(member) * days_per_week(member)


def daily_equivalent(hours: Decimal, per_day: Decimal | None) -> Decimal:
    """Hours expressed as working days."""
    return Decimal(hours) / _positive(per_day, get_settings().default_hours_per_day)


def clamp_percent(value: Decimal) -> Decimal:
    return max(ZERO, min(HUNDRED, value))


def calendar_days(start: date, end: date) -> int:
    return max(0, (end - start).days)


def calendar_duration(start: date, end: date) -> int:
    """Calendar days including both ends."""
    return abs((end - start).days) + 1


def working_days(start: date, end: date, per_week: Decimal | None = None) -> int:
    """Working days in a range, approximated from the days-per-week ratio. Never below 1."""
    dpw = _positive(per_week, get_settings().default_days_per_week)
    days = (Decimal(calendar_days(start, end)) * dpw / SEVEN).to_integral_value(rounding=ROUND_HALF_UP)
    return max(1, int(days))


def resolve_timeframe(
    start_date: date | None,
    end_date: date | None,
    duration: int | None = None,
    today: date | None = None,
) -> tuple[date, date]:
    """Start defaults to today; end defaults to start + duration padded for weekends."""
    settings = get_settings()
    start = start_date or today or date.today()
    if end_date:
        return start, end_date
    days = duration if duration and duration > 0 else settings.default_duration_days
    return start, start + timedelta(days=math.ceil(days * settings.business_day_padding))


def default_timeframe(
    season_start: date | None = None,
    season_end: date | None = None,
    today: date | None = None,
) -> tuple[date, date]:
    """Season dates when both are known, otherwise today plus the default window."""
    if season_start and season_end:
        return season_start, season_end
    start = today or date.today()
    return start, start + timedelta(days=get_settings().default_timeframe_days)


def weekly_hours(total_hours: Decimal, start: date, end: date) -> Decimal:
    """Hours per week for a total spread over an inclusive date range."""
    days = max(1, (end - start).days + 1)
    return Decimal(total_hours) * SEVEN / Decimal(days)


def percent_of_daily_capacity(hours: Decimal, days: int, per_day: Decimal) -> Decimal:
    per_day = _positive(per_day, get_settings().default_hours_per_day)
    daily_hours = Decimal(hours) / Decimal(max(1, days))
    return clamp_percent(daily_hours / per_day * HUNDRED)


def effective_capacity(
    weekly: Decimal,
    team_percent: Decimal,
    duration_days: int | None = None,
    per_week: Decimal | None = None,
) -> Decimal:
    """Hours a member gives a team per week, or over ``duration_days`` working days."""
    dpw = _positive(per_week, get_settings().default_days_per_week)
    effective_daily = clamp_percent(Decimal(team_percent)) / HUNDRED * (Decimal(weekly) / dpw)
    if duration_days is not None:
        return effective_daily * Decimal(duration_days)
    return effective_daily * dpw


def periods_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    return not (start1 > end2 or start2 > end1)
