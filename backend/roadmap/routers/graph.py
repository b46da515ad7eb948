"""Graph node and edge API routes."""
import logging

from fastapi import APIRouter, HTTPException, Query, status

from roadmap.deps import AllocationServiceDep, StoreDep
from roadmap.exceptions import NodeNotFoundError
from roadmap.schemas.graph import EdgeCreate, EdgeRecord, EdgeType, NodeCreate, NodeRecord, NodeType, NodeUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/graph", tags=["graph"])


@router.get("/nodes", response_model=list[NodeRecord])
async def list_nodes(store: StoreDep, node_type: NodeType | None = Query(None)):
    return await store.list_nodes(node_type.value if node_type else None)


@router.post("/nodes", response_model=NodeRecord, status_code=status.HTTP_201_CREATED)
async def create_node(data: NodeCreate, store: StoreDep):
    if data.id and await store.get_node(data.id) is not None:
        raise HTTPException(status_code=409, detail="Node already exists")
    return await store.create_node(data.node_type.value, data.properties, data.id)


@router.get("/nodes/{node_id}", response_model=NodeRecord)
async def get_node(node_id: str, store: StoreDep):
    node = await store.get_node(node_id)
    if not node:
        raise HTTPException(status_code=404, detail="Node not found")
    return node


@router.patch("/nodes/{node_id}", response_model=NodeRecord)
async def update_node(node_id: str, data: NodeUpdate, store: StoreDep):
    try:
        return await store.update_node(node_id, data.properties)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail="Node not found")


@router.delete("/nodes/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(node_id: str, store: StoreDep):
    if not await store.delete_node(node_id):
        raise HTTPException(status_code=404, detail="Node not found")


@router.get("/nodes/{node_id}/edges", response_model=list[EdgeRecord])
async def list_node_edges(node_id: str, store: StoreDep, edge_type: EdgeType | None = Query(None)):
    return await store.get_edges(node_id, edge_type.value if edge_type else None)


@router.post("/edges", response_model=EdgeRecord, status_code=status.HTTP_201_CREATED)
async def create_edge(data: EdgeCreate, store: StoreDep, service: AllocationServiceDep):
    """Create an edge. A MEMBER_OF edge also adds the member to the team roster."""
    if data.edge_type == EdgeType.MEMBER_OF:
        team = await store.get_node(data.target)
        if not team or team.node_type != NodeType.TEAM.value:
            raise HTTPException(status_code=404, detail="Team not found")
    try:
        edge = await store.create_edge(data.source, data.target, data.edge_type.value, data.properties)
        if data.edge_type == EdgeType.MEMBER_OF:
            await service.connect_member(
                data.source,
                data.target,
                role=str(data.properties.get("role", "")),
            )
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return edge


@router.delete("/edges/{edge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_edge(edge_id: str, store: StoreDep, service: AllocationServiceDep):
    """Delete an edge. Removing MEMBER_OF clears the member's roster entry and allocations."""
    edge = await store.get_edge(edge_id)
    if not edge:
        raise HTTPException(status_code=404, detail="Edge not found")
    await store.delete_edge(edge_id)
    if edge.edge_type == EdgeType.MEMBER_OF.value:
        try:
            await service.disconnect_member(edge.source, edge.target)
        except NodeNotFoundError:
            logger.warning("Team %s gone while disconnecting member %s", edge.target, edge.source)
