"""SqlGraphStore against SQLite (aiosqlite)."""
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import TODAY, TWO_WEEKS
from roadmap.database import build_engine, build_session_factory, init_db
from roadmap.engine.ledger import AllocationLedger
from roadmap.exceptions import NodeNotFoundError, StoreWriteError
from roadmap.schemas.allocation import AllocationRequest
from roadmap.services.allocation_service import AllocationService
from roadmap.services.graph_store import SqlGraphStore
from roadmap.services.repository import GraphRepository


@pytest_asyncio.fixture
async def sql_store(tmp_path, text_fields):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'graph.db'}")
    await init_db(engine)
    yield SqlGraphStore(build_session_factory(engine), text_fields)
    await engine.dispose()


@pytest.mark.asyncio
async def test_node_lifecycle(sql_store):
    node = await sql_store.create_node("team", {"title": "Core"}, "t1")
    assert node.id == "t1"

    updated = await sql_store.update_node("t1", {"roster": "[]"})
    assert updated.properties == {"title": "Core", "roster": "[]"}
    assert (await sql_store.get_node("t1")).properties["roster"] == "[]"
    assert [n.id for n in await sql_store.list_nodes("team")] == ["t1"]

    assert await sql_store.delete_node("t1")
    assert await sql_store.get_node("t1") is None
    assert not await sql_store.delete_node("t1")


@pytest.mark.asyncio
async def test_update_missing_node(sql_store):
    with pytest.raises(NodeNotFoundError):
        await sql_store.update_node("nope", {"title": "x"})


@pytest.mark.asyncio
async def test_failed_commit_raises_store_write_error(sql_store, monkeypatch):
    await sql_store.create_node("team", {"title": "Core"}, "t1")

    async def failing_commit(self):
        raise OperationalError("UPDATE graph_nodes", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    with pytest.raises(StoreWriteError) as excinfo:
        await sql_store.update_node("t1", {"roster": "[]"})
    assert excinfo.value.node_id == "t1"

    monkeypatch.undo()
    assert "roster" not in (await sql_store.get_node("t1")).properties


@pytest.mark.asyncio
async def test_edges(sql_store):
    await sql_store.create_node("teamMember", {}, "m1")
    await sql_store.create_node("team", {}, "t1")
    edge = await sql_store.create_edge("m1", "t1", "MEMBER_OF", {"role": "dev"})

    assert [e.id for e in await sql_store.get_edges("t1")] == [edge.id]
    assert await sql_store.get_edges("t1", "PART_OF") == []
    assert (await sql_store.get_edge(edge.id)).properties == {"role": "dev"}

    with pytest.raises(NodeNotFoundError):
        await sql_store.create_edge("m1", "ghost", "MEMBER_OF")

    # Deleting a node drops its edges
    await sql_store.delete_node("m1")
    assert await sql_store.get_edges("t1") == []
    assert not await sql_store.delete_edge(edge.id)


@pytest.mark.asyncio
async def test_allocation_round_trip_through_text_fields(sql_store):
    await sql_store.create_node("teamMember", {"title": "Ada", "dailyRate": 400}, "m1")
    await sql_store.create_node(
        "team", {"title": "Core", "roster": '[{"memberId": "m1", "allocation": 0, "allocations": []}]'}, "t1"
    )
    await sql_store.create_node(
        "feature", {"title": "Checkout", "startDate": TODAY.isoformat(), "endDate": TWO_WEEKS.isoformat()}, "f1"
    )
    service = AllocationService(GraphRepository(sql_store), AllocationLedger(today=TODAY))

    result = await service.request_allocation(
        "f1", AllocationRequest(team_id="t1", requested_hours=Decimal(40), member_ids=["m1"])
    )
    assert not result.save.partial

    raw = await sql_store.get_node("f1")
    assert isinstance(raw.properties["teamAllocations"], str)

    repo = GraphRepository(sql_store)
    team = await repo.get_team("t1")
    item = await repo.get_work_item("f1")
    assert team.entry("m1").work_allocation("f1").total_hours == item.team_allocation("t1").member("m1").hours
    assert item.team_allocation("t1").member("m1").cost == Decimal("2000.00")
