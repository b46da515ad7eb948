"""Member workload API routes."""
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, HTTPException, Query

from roadmap.deps import ViewServiceDep
from roadmap.exceptions import NodeNotFoundError
from roadmap.schemas.bandwidth import AvailabilityCheck, MemberAllocationReport, WeeklyAvailability

router = APIRouter(prefix="/members", tags=["members"])


@router.get("/allocations", response_model=list[MemberAllocationReport])
async def list_member_allocations(views: ViewServiceDep, over_allocated: bool = Query(False)):
    """Every member's weekly commitments across teams. ``over_allocated`` keeps only flagged members."""
    reports = (await views.member_allocations()).values()
    if over_allocated:
        return [r for r in reports if r.is_over_allocated]
    return list(reports)


@router.get("/{member_id}/weekly-availability", response_model=list[WeeklyAvailability])
async def get_weekly_availability(member_id: str, views: ViewServiceDep):
    try:
        return await views.member_weekly_availability(member_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{member_id}/availability", response_model=AvailabilityCheck)
async def get_member_availability(
    member_id: str,
    views: ViewServiceDep,
    start_date: date = Query(...),
    end_date: date = Query(...),
    exclude_hours: Decimal = Query(Decimal(0), ge=0),
):
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    try:
        return await views.member_availability(member_id, start_date, end_date, exclude_hours)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
