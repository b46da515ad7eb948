"""Graph store contract and its in-memory and SQL backends."""
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roadmap.exceptions import NodeNotFoundError, StoreWriteError
from roadmap.models.graph import GraphEdge, GraphNode
from roadmap.schemas.graph import EdgeRecord, NodeRecord

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class GraphStore(ABC):
    """Read/write contract the engine uses to reach the graph.

    ``text_fields`` names the properties this backend stores as JSON text.
    """

    text_fields: frozenset[str] = frozenset()

    @abstractmethod
    async def get_node(self, node_id: str) -> NodeRecord | None: ...

    @abstractmethod
    async def create_node(self, node_type: str, properties: dict[str, Any], node_id: str | None = None) -> NodeRecord: ...

    @abstractmethod
    async def update_node(self, node_id: str, properties: dict[str, Any]) -> NodeRecord:
        """Merge ``properties`` into the node. Raises NodeNotFoundError."""

    @abstractmethod
    async def delete_node(self, node_id: str) -> bool: ...

    @abstractmethod
    async def get_edges(self, node_id: str, edge_type: str | None = None) -> list[EdgeRecord]:
        """Edges where the node is source or target."""

    @abstractmethod
    async def create_edge(
        self, source: str, target: str, edge_type: str, properties: dict[str, Any] | None = None
    ) -> EdgeRecord: ...

    @abstractmethod
    async def get_edge(self, edge_id: str) -> EdgeRecord | None: ...

    @abstractmethod
    async def delete_edge(self, edge_id: str) -> bool: ...

    @abstractmethod
    async def list_nodes(self, node_type: str | None = None) -> list[NodeRecord]: ...


class InMemoryGraphStore(GraphStore):
    """Dict-backed store, used by tests and local runs without a database."""

    def __init__(self, text_fields: Iterable[str] = ()) -> None:
        self.text_fields = frozenset(text_fields)
        self._nodes: dict[str, NodeRecord] = {}
        self._edges: dict[str, EdgeRecord] = {}

    async def get_node(self, node_id: str) -> NodeRecord | None:
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node else None

    async def create_node(self, node_type: str, properties: dict[str, Any], node_id: str | None = None) -> NodeRecord:
        node = NodeRecord(id=node_id or _new_id(), node_type=node_type, properties=copy.deepcopy(properties))
        self._nodes[node.id] = node
        return node.model_copy(deep=True)

    async def update_node(self, node_id: str, properties: dict[str, Any]) -> NodeRecord:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        node.properties = {**node.properties, **copy.deepcopy(properties)}
        return node.model_copy(deep=True)

    async def delete_node(self, node_id: str) -> bool:
        if self._nodes.pop(node_id, None) is None:
            return False
        for edge_id in [e.id for e in self._edges.values() if node_id in (e.source, e.target)]:
            del self._edges[edge_id]
        return True

    async def get_edges(self, node_id: str, edge_type: str | None = None) -> list[EdgeRecord]:
        return [
            e.model_copy(deep=True)
            for e in self._edges.values()
            if node_id in (e.source, e.target) and (edge_type is None or e.edge_type == edge_type)
        ]

    async def create_edge(
        self, source: str, target: str, edge_type: str, properties: dict[str, Any] | None = None
    ) -> EdgeRecord:
        for node_id in (source, target):
            if node_id not in self._nodes:
                raise NodeNotFoundError(node_id)
        edge = EdgeRecord(
            id=_new_id(), source=source, target=target, edge_type=edge_type, properties=dict(properties or {})
        )
        self._edges[edge.id] = edge
        return edge.model_copy(deep=True)

    async def get_edge(self, edge_id: str) -> EdgeRecord | None:
        edge = self._edges.get(edge_id)
        return edge.model_copy(deep=True) if edge else None

    async def delete_edge(self, edge_id: str) -> bool:
        return self._edges.pop(edge_id, None) is not None

    async def list_nodes(self, node_type: str | None = None) -> list[NodeRecord]:
        return [
            n.model_copy(deep=True) for n in self._nodes.values() if node_type is None or n.node_type == node_type
        ]


def _node_record(node: GraphNode) -> NodeRecord:
    return NodeRecord(id=node.id, node_type=node.node_type, properties=dict(node.properties or {}))


def _edge_record(edge: GraphEdge) -> EdgeRecord:
    return EdgeRecord(
        id=edge.id,
        source=edge.source,
        target=edge.target,
        edge_type=edge.edge_type,
        properties=dict(edge.properties or {}),
    )


class SqlGraphStore(GraphStore):
    """SQLAlchemy async backend over the graph_nodes / graph_edges tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], text_fields: Iterable[str] = ()) -> None:
        self.session_factory = session_factory
        self.text_fields = frozenset(text_fields)

    async def get_node(self, node_id: str) -> NodeRecord | None:
        async with self.session_factory() as db:
            node = await db.get(GraphNode, node_id)
            return _node_record(node) if node else None

    async def create_node(self, node_type: str, properties: dict[str, Any], node_id: str | None = None) -> NodeRecord:
        async with self.session_factory() as db:
            node = GraphNode(id=node_id or _new_id(), node_type=node_type, properties=dict(properties))
            db.add(node)
            await db.commit()
            return _node_record(node)

    async def update_node(self, node_id: str, properties: dict[str, Any]) -> NodeRecord:
        async with self.session_factory() as db:
            node = await db.get(GraphNode, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            # Reassign so the JSON column is flagged dirty
            node.properties = {**(node.properties or {}), **properties}
            try:
                await db.commit()
            except SQLAlchemyError as e:
                logger.error("Update of node %s failed: %s", node_id, e)
                raise StoreWriteError(node_id, str(e)) from e
            return _node_record(node)

    async def delete_node(self, node_id: str) -> bool:
        async with self.session_factory() as db:
            node = await db.get(GraphNode, node_id)
            if node is None:
                return False
            await db.execute(delete(GraphEdge).where(or_(GraphEdge.source == node_id, GraphEdge.target == node_id)))
            await db.delete(node)
            await db.commit()
            return True

    async def get_edges(self, node_id: str, edge_type: str | None = None) -> list[EdgeRecord]:
        query = select(GraphEdge).where(or_(GraphEdge.source == node_id, GraphEdge.target == node_id))
        if edge_type is not None:
            query = query.where(GraphEdge.edge_type == edge_type)
        async with self.session_factory() as db:
            result = await db.execute(query)
            return [_edge_record(e) for e in result.scalars().all()]

    async def create_edge(
        self, source: str, target: str, edge_type: str, properties: dict[str, Any] | None = None
    ) -> EdgeRecord:
        async with self.session_factory() as db:
            for node_id in (source, target):
                if await db.get(GraphNode, node_id) is None:
                    raise NodeNotFoundError(node_id)
            edge = GraphEdge(
                id=_new_id(), source=source, target=target, edge_type=edge_type, properties=dict(properties or {})
            )
            db.add(edge)
            await db.commit()
            return _edge_record(edge)

    async def get_edge(self, edge_id: str) -> EdgeRecord | None:
        async with self.session_factory() as db:
            edge = await db.get(GraphEdge, edge_id)
            return _edge_record(edge) if edge else None

    async def delete_edge(self, edge_id: str) -> bool:
        async with self.session_factory() as db:
            edge = await db.get(GraphEdge, edge_id)
            if edge is None:
                return False
            await db.delete(edge)
            await db.commit()
            return True

    async def list_nodes(self, node_type: str | None = None) -> list[NodeRecord]:
        query = select(GraphNode)
        if node_type is not None:
            query = query.where(GraphNode.node_type == node_type)
        async with self.session_factory() as db:
            result = await db.execute(query.order_by(GraphNode.created_at))
            return [_node_record(n) for n in result.scalars().all()]
