"""Allocation orchestration: load nodes, run the ledger, write both projections."""
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from roadmap.engine.ledger import AllocationLedger, LedgerUpdate
from roadmap.exceptions import NodeNotFoundError, NodeSuppressedError, RoadmapError
from roadmap.schemas.allocation import AllocationRequest, MemberAllocationUpdate, Team, WorkItem
from roadmap.schemas.graph import NodeType
from roadmap.schemas.views import AllocationResult, SaveResult
from roadmap.services.repository import GraphRepository
from roadmap.services.write_queue import WriteCoalescer

logger = logging.getLogger(__name__)

WRITE_ERRORS = (RoadmapError, SQLAlchemyError, OSError)

ROSTER = "roster"
TEAM_ALLOCATIONS = "teamAllocations"


class AllocationService:
    """Runs ledger operations against the graph store.

    A ledger update is two independent writes (team roster, work item
    allocations). A failed side is reported in ``SaveResult`` and the
    computed result is returned as-is; use ``reconcile`` to repair.
    """

    def __init__(
        self,
        repository: GraphRepository,
        ledger: AllocationLedger | None = None,
        coalescer: WriteCoalescer | None = None,
    ) -> None:
        self.repository = repository
        self.ledger = ledger or AllocationLedger()
        self.coalescer = coalescer
        # Latest computed state per pending write key, read before the store
        self._optimistic: dict[tuple[str, str], Team | WorkItem] = {}

    async def _require_team(self, team_id: str) -> Team:
        pending = self._optimistic.get((team_id, ROSTER))
        if pending is not None:
            return pending
        team = await self.repository.get_team(team_id)
        if team is None:
            raise NodeNotFoundError(team_id, NodeType.TEAM.value)
        return team

    async def _require_work_item(self, work_item_id: str) -> WorkItem:
        pending = self._optimistic.get((work_item_id, TEAM_ALLOCATIONS))
        if pending is not None:
            return pending
        work_item = await self.repository.get_work_item(work_item_id)
        if work_item is None:
            raise NodeNotFoundError(work_item_id, "work item")
        return work_item

    async def _work_items_for_team(self, team_id: str) -> list[WorkItem]:
        stored = {w.id: w for w in await self.repository.work_items_for_team(team_id)}
        for (node_id, field), node in self._optimistic.items():
            if field == TEAM_ALLOCATIONS:
                stored[node_id] = node
        return [w for w in stored.values() if w.team_allocation(team_id) is not None]

    def _defer(self, key: tuple[str, str], node: Team | WorkItem, write: Callable[[], Awaitable[None]]) -> None:
        self._optimistic[key] = node

        async def run() -> None:
            try:
                await write()
            finally:
                if self._optimistic.get(key) is node:
                    del self._optimistic[key]

        self.coalescer.schedule(key, run)

    async def _attempt(self, label: str, node_id: str, write: Callable[[], Awaitable[None]], result: SaveResult) -> bool:
        try:
            await write()
        except WRITE_ERRORS as e:
            logger.error("Failed to save %s %s: %s", label, node_id, e)
            result.errors.append(f"{label} {node_id}: {e}")
            return False
        return True

    async def _save(self, team: Team | None, work_items: list[WorkItem]) -> SaveResult:
        result = SaveResult()
        if self.coalescer is not None:
            if team is not None:
                self._defer((team.id, ROSTER), team, lambda: self.repository.save_team(team))
            for item in work_items:
                self._defer((item.id, TEAM_ALLOCATIONS), item, lambda item=item: self.repository.save_work_item(item))
            result.pending = True
            return result

        result.team_saved = team is None or await self._attempt(
            "team", team.id, lambda: self.repository.save_team(team), result
        )
        saved = [
            await self._attempt("work item", item.id, lambda item=item: self.repository.save_work_item(item), result)
            for item in work_items
        ]
        result.work_item_saved = all(saved)
        if result.partial:
            logger.error(
                "Partial allocation save: team saved=%s, work item saved=%s; run reconcile to repair",
                result.team_saved,
                result.work_item_saved,
            )
        return result

    async def _commit(self, update: LedgerUpdate) -> AllocationResult:
        if not update.changed:
            return AllocationResult(team=update.team, work_item=update.work_item, save=SaveResult())
        save = await self._save(update.team, [update.work_item])
        return AllocationResult(team=update.team, work_item=update.work_item, save=save)

    async def request_allocation(self, work_item_id: str, request: AllocationRequest) -> AllocationResult:
        work_item = await self._require_work_item(work_item_id)
        team = await self._require_team(request.team_id)
        members = await self.repository.get_members(request.member_ids)
        update = self.ledger.request_allocation(
            team,
            work_item,
            members,
            request.requested_hours,
            request.member_ids,
            request.start_date,
            request.end_date,
        )
        if update.skipped:
            logger.warning("Skipped members %s for %s on %s", update.skipped, team.id, work_item.id)
        return await self._commit(update)

    async def update_member_allocation(
        self,
        work_item_id: str,
        team_id: str,
        member_id: str,
        change: MemberAllocationUpdate,
    ) -> AllocationResult:
        work_item = await self._require_work_item(work_item_id)
        team = await self._require_team(team_id)
        try:
            member = await self.repository.get_member(member_id)
        except NodeSuppressedError:
            member = None
        if member is None:
            logger.warning("Member %s not found, allocation on %s left unchanged", member_id, work_item_id)
        update = self.ledger.update_member_allocation(
            team, work_item, member, change.hours, change.start_date, change.end_date
        )
        return await self._commit(update)

    async def remove_member_allocation(self, work_item_id: str, team_id: str, member_id: str) -> AllocationResult:
        work_item = await self._require_work_item(work_item_id)
        team = await self._require_team(team_id)
        update = self.ledger.remove_member_allocation(team, work_item, member_id)
        return await self._commit(update)

    async def connect_member(
        self,
        member_id: str,
        team_id: str,
        role: str = "",
        allocation: Decimal = Decimal(0),
    ) -> tuple[Team, SaveResult]:
        team = await self._require_team(team_id)
        if team.entry(member_id) is not None:
            return team, SaveResult(team_saved=True, work_item_saved=True)
        updated = self.ledger.connect_member(team, member_id, role, allocation)
        save = await self._save(updated, [])
        logger.info("Connected member %s to team %s", member_id, team_id)
        return updated, save

    async def disconnect_member(self, member_id: str, team_id: str) -> tuple[Team, SaveResult]:
        team = await self._require_team(team_id)
        work_items = await self._work_items_for_team(team_id)
        updated, changed = self.ledger.disconnect_member(team, member_id, work_items)
        save = await self._save(updated, changed)
        logger.info(
            "Disconnected member %s from team %s, cleared %d work item allocation(s)", member_id, team_id, len(changed)
        )
        return updated, save

    async def reconcile(self, team_id: str, work_item_id: str) -> AllocationResult:
        """Rebuild the work item's view of ``team_id`` from the team roster and save it."""
        team = await self._require_team(team_id)
        work_item = await self._require_work_item(work_item_id)
        members = await self.repository.roster_members(team)
        rebuilt = self.ledger.rederive_work_item(team, work_item, members)
        save = SaveResult(team_saved=True)
        save.work_item_saved = await self._attempt(
            "work item", rebuilt.id, lambda: self.repository.save_work_item(rebuilt), save
        )
        logger.info("Reconciled %s from team %s", work_item_id, team_id)
        return AllocationResult(team=team, work_item=rebuilt, save=save)

    async def flush(self) -> SaveResult:
        """Run deferred writes now."""
        result = SaveResult(team_saved=True, work_item_saved=True)
        if self.coalescer is None:
            return result
        for key, error in (await self.coalescer.flush()).items():
            if error is None:
                continue
            _, field = key
            if field == ROSTER:
                result.team_saved = False
            else:
                result.work_item_saved = False
            result.errors.append(f"{key[0]}: {error}")
        return result
