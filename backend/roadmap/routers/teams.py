"""Team bandwidth API routes."""
from fastapi import APIRouter, HTTPException

from roadmap.deps import ViewServiceDep
from roadmap.exceptions import NodeNotFoundError
from roadmap.schemas.bandwidth import TeamBandwidth

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("/{team_id}/bandwidth", response_model=TeamBandwidth)
async def get_team_bandwidth(team_id: str, views: ViewServiceDep):
    try:
        return await views.team_bandwidth(team_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
