"""Work item allocation API routes."""
from fastapi import APIRouter, HTTPException

from roadmap.deps import AllocationServiceDep, ViewServiceDep
from roadmap.exceptions import NodeNotFoundError
from roadmap.schemas.allocation import AllocationRequest, MemberAllocationUpdate
from roadmap.schemas.calculation import CostSummary
from roadmap.schemas.views import AllocationResult, AllocationView

router = APIRouter(prefix="/work-items", tags=["allocations"])


@router.post("/{work_item_id}/allocations", response_model=AllocationResult)
async def request_allocation(work_item_id: str, data: AllocationRequest, service: AllocationServiceDep):
    """Split requested hours across members; the response carries both updated records and the save outcome."""
    try:
        return await service.request_allocation(work_item_id, data)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{work_item_id}/allocations/{team_id}/members/{member_id}", response_model=AllocationResult)
async def update_member_allocation(
    work_item_id: str,
    team_id: str,
    member_id: str,
    data: MemberAllocationUpdate,
    service: AllocationServiceDep,
):
    try:
        return await service.update_member_allocation(work_item_id, team_id, member_id, data)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{work_item_id}/allocations/{team_id}/members/{member_id}", response_model=AllocationResult)
async def remove_member_allocation(work_item_id: str, team_id: str, member_id: str, service: AllocationServiceDep):
    try:
        return await service.remove_member_allocation(work_item_id, team_id, member_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{work_item_id}/allocations/{team_id}/reconcile", response_model=AllocationResult)
async def reconcile(work_item_id: str, team_id: str, service: AllocationServiceDep):
    """Rebuild this work item's allocation for a team from the team roster."""
    try:
        return await service.reconcile(team_id, work_item_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{work_item_id}/allocation-view", response_model=AllocationView)
async def get_allocation_view(work_item_id: str, views: ViewServiceDep):
    try:
        return await views.allocation_view(work_item_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{work_item_id}/cost-summary", response_model=CostSummary)
async def get_cost_summary(work_item_id: str, views: ViewServiceDep):
    try:
        return await views.cost_summary(work_item_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
