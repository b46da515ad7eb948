"""Shared fixtures: fixed dates, graph builders and a seeded in-memory store."""
import json
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from roadmap.config import get_settings
from roadmap.engine.ledger import AllocationLedger
from roadmap.schemas.allocation import (
    AllocatedMember,
    Member,
    RosterEntry,
    Team,
    TeamAllocation,
    WorkAllocation,
    WorkItem,
)
from roadmap.services.graph_store import InMemoryGraphStore

# A Monday
TODAY = date(2025, 3, 3)
TWO_WEEKS = TODAY + timedelta(days=14)


def make_member(member_id: str = "m1", **kwargs) -> Member:
    data = {"title": member_id.upper(), "hours_per_day": Decimal(8), "days_per_week": Decimal(5)}
    data.update(kwargs)
    return Member(id=member_id, **data)


def make_team(team_id: str = "t1", member_ids: tuple[str, ...] = ("m1",), **kwargs) -> Team:
    roster = [RosterEntry(member_id=m, start_date=TODAY) for m in member_ids]
    return Team(id=team_id, title=team_id.upper(), roster=roster, **kwargs)


def make_item(item_id: str = "f1", **kwargs) -> WorkItem:
    data = {"title": item_id.upper(), "start_date": TODAY, "end_date": TWO_WEEKS}
    data.update(kwargs)
    return WorkItem(id=item_id, **data)


def work_allocation(item_id: str, percentage, hours=0, start=TODAY, end=TWO_WEEKS) -> WorkAllocation:
    return WorkAllocation(
        work_item_id=item_id,
        percent_of_daily_capacity=Decimal(str(percentage)),
        start_date=start,
        end_date=end,
        total_hours=Decimal(str(hours)),
    )


def allocated(member_id: str, hours, start=TODAY, end=None, **kwargs) -> AllocatedMember:
    return AllocatedMember(member_id=member_id, hours=Decimal(str(hours)), start_date=start, end_date=end, **kwargs)


def team_allocation(team_id: str, *members: AllocatedMember) -> TeamAllocation:
    return TeamAllocation(
        team_id=team_id,
        allocated_members=list(members),
        requested_hours=sum((m.hours for m in members), Decimal(0)),
    )


@pytest.fixture
def ledger() -> AllocationLedger:
    return AllocationLedger(today=TODAY)


@pytest.fixture
def text_fields() -> frozenset[str]:
    return get_settings().json_text_fields_set


@pytest_asyncio.fixture
async def store(text_fields) -> InMemoryGraphStore:
    """Two members on one team, a feature with fixed dates, a milestone containing it."""
    store = InMemoryGraphStore(text_fields)
    await store.create_node("teamMember", {"title": "Ada", "hoursPerDay": 8, "daysPerWeek": 5, "dailyRate": 400}, "m1")
    await store.create_node("teamMember", {"title": "Linus", "hoursPerDay": 8, "daysPerWeek": 5, "dailyRate": 300}, "m2")
    roster = [
        {"memberId": "m1", "allocation": 0, "role": "dev", "startDate": TODAY.isoformat(), "allocations": []},
        {"memberId": "m2", "allocation": 0, "role": "dev", "startDate": TODAY.isoformat(), "allocations": []},
    ]
    # Stored as text, the way the SQL backend keeps it
    await store.create_node("team", {"title": "Core", "roster": json.dumps(roster)}, "t1")
    await store.create_node(
        "feature",
        {
            "title": "Checkout",
            "status": "in_progress",
            "startDate": TODAY.isoformat(),
            "endDate": TWO_WEEKS.isoformat(),
            "teamAllocations": "[]",
        },
        "f1",
    )
    await store.create_node("milestone", {"title": "Launch", "status": "planning"}, "ms1")
    await store.create_edge("m1", "t1", "MEMBER_OF")
    await store.create_edge("m2", "t1", "MEMBER_OF")
    await store.create_edge("t1", "f1", "ALLOCATED_TO")
    await store.create_edge("f1", "ms1", "PART_OF")
    return store
