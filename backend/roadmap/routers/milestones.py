"""Milestone rollup API routes."""
from fastapi import APIRouter, HTTPException

from roadmap.deps import ViewServiceDep
from roadmap.exceptions import NodeNotFoundError
from roadmap.schemas.milestone import MilestoneMetrics

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("/{milestone_id}/metrics", response_model=MilestoneMetrics)
async def get_milestone_metrics(milestone_id: str, views: ViewServiceDep):
    try:
        return await views.milestone_metrics(milestone_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
