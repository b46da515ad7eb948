"""Graph store record schemas."""
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NodeType(str, Enum):
    TEAM = "team"
    TEAM_MEMBER = "teamMember"
    FEATURE = "feature"
    OPTION = "option"
    PROVIDER = "provider"
    MILESTONE = "milestone"


WORK_ITEM_TYPES = frozenset({NodeType.FEATURE.value, NodeType.OPTION.value, NodeType.PROVIDER.value})


class EdgeType(str, Enum):
    MEMBER_OF = "MEMBER_OF"  # team member -> team
    ALLOCATED_TO = "ALLOCATED_TO"  # team -> work item
    PART_OF = "PART_OF"  # work item -> milestone


class NodeRecord(BaseModel):
    id: str
    node_type: str
    properties: dict[str, Any] = {}


class EdgeRecord(BaseModel):
    id: str
    source: str
    target: str
    edge_type: str
    properties: dict[str, Any] = {}


class NodeCreate(BaseModel):
    node_type: NodeType
    id: str | None = Field(default=None, max_length=64)
    properties: dict[str, Any] = {}


class NodeUpdate(BaseModel):
    properties: dict[str, Any]


class EdgeCreate(BaseModel):
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    edge_type: EdgeType
    properties: dict[str, Any] = {}
