"""Report Routes: attendance and inventory summaries (admin only)."""

from fastapi import APIRouter, Depends

from eventdesk.api.deps import get_desk, get_identity
from eventdesk.core.entities import Identity
from eventdesk.schemas.report import AttendanceRowResponse, InventoryRowResponse
from eventdesk.services.event_desk import EventDesk

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/attendance", response_model=list[AttendanceRowResponse])
def attendance(
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return [
        AttendanceRowResponse.model_validate(row)
        for row in desk.attendance_report(identity)
    ]


@router.get("/inventory", response_model=list[InventoryRowResponse])
def inventory(
    identity: Identity = Depends(get_identity),
    desk: EventDesk = Depends(get_desk),
):
    return [
        InventoryRowResponse.model_validate(row)
        for row in desk.inventory_report(identity)
    ]
