"""Typed access to graph nodes. Every read and write passes through the codec."""
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from roadmap.engine.codec import ARRAY_FIELDS, OBJECT_FIELDS, normalize_properties, serialize_properties
from roadmap.exceptions import NodeSuppressedError
from roadmap.schemas.allocation import Member, Milestone, Team, WorkItem
from roadmap.schemas.graph import WORK_ITEM_TYPES, EdgeType, NodeRecord, NodeType
from roadmap.services.failure_tracker import NotFoundTracker
from roadmap.services.graph_store import GraphStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validate(model: type[ModelT], node: NodeRecord, **extra: Any) -> ModelT:
    data = {**normalize_properties(node.properties, node.id), **extra, "id": node.id}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        # Fall back to the scalar fields when a structured field is unusable
        logger.warning("Invalid %s properties on %s, dropping structured fields: %s", node.node_type, node.id, e)
        for name in (*ARRAY_FIELDS, *OBJECT_FIELDS):
            data.pop(name, None)
        return model.model_validate(data)


class GraphRepository:
    def __init__(self, store: GraphStore, tracker: NotFoundTracker | None = None) -> None:
        self.store = store
        self.tracker = tracker or NotFoundTracker()

    async def get_node(self, node_id: str) -> NodeRecord | None:
        """Fetch a node, counting misses. Raises NodeSuppressedError while the id is in cooldown."""
        if self.tracker.is_suppressed(node_id):
            raise NodeSuppressedError(node_id)
        node = await self.store.get_node(node_id)
        if node is None:
            self.tracker.record_not_found(node_id)
            return None
        self.tracker.record_success(node_id)
        return node

    async def get_team(self, team_id: str) -> Team | None:
        node = await self.get_node(team_id)
        if node is None or node.node_type != NodeType.TEAM.value:
            return None
        return _validate(Team, node)

    async def get_member(self, member_id: str) -> Member | None:
        node = await self.get_node(member_id)
        if node is None or node.node_type != NodeType.TEAM_MEMBER.value:
            return None
        return _validate(Member, node)

    async def get_work_item(self, work_item_id: str) -> WorkItem | None:
        node = await self.get_node(work_item_id)
        if node is None or node.node_type not in WORK_ITEM_TYPES:
            return None
        return _validate(WorkItem, node, nodeType=node.node_type)

    async def get_milestone(self, milestone_id: str) -> Milestone | None:
        node = await self.get_node(milestone_id)
        if node is None or node.node_type != NodeType.MILESTONE.value:
            return None
        return _validate(Milestone, node)

    async def get_members(self, member_ids: list[str]) -> dict[str, Member]:
        """Members that resolve; dangling ids are left out."""
        members: dict[str, Member] = {}
        for member_id in dict.fromkeys(member_ids):
            try:
                member = await self.get_member(member_id)
            except NodeSuppressedError:
                logger.debug("Skipping suppressed member %s", member_id)
                continue
            if member is not None:
                members[member_id] = member
        return members

    async def roster_members(self, team: Team) -> dict[str, Member]:
        return await self.get_members([e.member_id for e in team.roster])

    async def list_members(self) -> dict[str, Member]:
        nodes = await self.store.list_nodes(NodeType.TEAM_MEMBER.value)
        return {n.id: _validate(Member, n) for n in nodes}

    async def list_work_items(self) -> list[WorkItem]:
        items = []
        for node_type in sorted(WORK_ITEM_TYPES):
            for node in await self.store.list_nodes(node_type):
                items.append(_validate(WorkItem, node, nodeType=node.node_type))
        return items

    async def _neighbours(self, node_id: str, edge_type: EdgeType, outgoing: bool) -> list[str]:
        edges = await self.store.get_edges(node_id, edge_type.value)
        if outgoing:
            return [e.target for e in edges if e.source == node_id]
        return [e.source for e in edges if e.target == node_id]

    async def connected_team_ids(self, work_item: WorkItem) -> list[str]:
        """Teams linked to a work item by edge or by an existing allocation."""
        ids = await self._neighbours(work_item.id, EdgeType.ALLOCATED_TO, outgoing=False)
        ids.extend(t.team_id for t in work_item.team_allocations)
        return list(dict.fromkeys(ids))

    async def milestone_work_items(self, milestone_id: str) -> list[WorkItem]:
        items = []
        for item_id in dict.fromkeys(await self._neighbours(milestone_id, EdgeType.PART_OF, outgoing=False)):
            try:
                item = await self.get_work_item(item_id)
            except NodeSuppressedError:
                logger.debug("Skipping suppressed work item %s in milestone %s", item_id, milestone_id)
                continue
            if item is not None:
                items.append(item)
        return items

    async def work_items_for_team(self, team_id: str) -> list[WorkItem]:
        """Work items holding an allocation from ``team_id``."""
        return [w for w in await self.list_work_items() if w.team_allocation(team_id) is not None]

    async def _write(self, node_id: str, properties: dict[str, Any]) -> None:
        await self.store.update_node(node_id, serialize_properties(properties, self.store.text_fields))

    async def save_team(self, team: Team) -> None:
        """Persist the roster projection only."""
        data = team.model_dump(mode="json", by_alias=True, include={"roster"})
        await self._write(team.id, data)

    async def save_work_item(self, work_item: WorkItem) -> None:
        """Persist the team-allocation projection only."""
        data = work_item.model_dump(mode="json", by_alias=True, include={"team_allocations"})
        await self._write(work_item.id, data)
