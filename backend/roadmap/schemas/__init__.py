"""Pydantic schemas."""
from roadmap.schemas.allocation import (
    AllocatedMember,
    AllocationRequest,
    Member,
    MemberAllocationUpdate,
    Milestone,
    RosterEntry,
    Team,
    TeamAllocation,
    WorkAllocation,
    WorkItem,
)
from roadmap.schemas.bandwidth import MemberAllocationReport, TeamBandwidth
from roadmap.schemas.calculation import CostSummary
from roadmap.schemas.graph import EdgeRecord, EdgeType, NodeRecord, NodeType
from roadmap.schemas.milestone import MilestoneMetrics
from roadmap.schemas.views import AllocationResult, AllocationView, SaveResult

__all__ = [
    "AllocatedMember",
    "AllocationRequest",
    "Member",
    "MemberAllocationUpdate",
    "Milestone",
    "RosterEntry",
    "Team",
    "TeamAllocation",
    "WorkAllocation",
    "WorkItem",
    "MemberAllocationReport",
    "TeamBandwidth",
    "CostSummary",
    "EdgeRecord",
    "EdgeType",
    "NodeRecord",
    "NodeType",
    "MilestoneMetrics",
    "AllocationResult",
    "AllocationView",
    "SaveResult",
]
