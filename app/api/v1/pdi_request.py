from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from app.core.dependencies import get_current_principal, get_pdi_request_service
from app.db.schema import PDIRequest
from app.models.auth import Principal
from app.models.pdi_request import (
    InspectionLink,
    PDIRequestCreate,
    PDIRequestCreated,
    PDIRequestDetail,
    PDIRequestEnvelope,
    PDIRequestList,
    PDIRequestRead,
    PDIRequestUpdate,
)
from app.services.pdi_request import PDIRequestService

router = APIRouter()


def _detail(record: PDIRequest) -> PDIRequestDetail:
    return PDIRequestDetail.model_validate(record)


# ==============================================================================
# CLIENT ROUTES
# ==============================================================================

@router.post(
    "",
    response_model=PDIRequestCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a PDI request",
    description="Creates a PENDING inspection request owned by the caller and alerts the admins."
)
def create_pdi_request(
    data: PDIRequestCreate,
    background_tasks: BackgroundTasks,
    principal: Optional[Principal] = Depends(get_current_principal),
    service: PDIRequestService = Depends(get_pdi_request_service)
):
    result = service.create(principal, data, background_tasks)
    return PDIRequestCreated(
        request_id=result.record.id,
        request=PDIRequestRead.model_validate(result.record),
        notification_sent=result.notified,
    )


@router.get(
    "",
    response_model=PDIRequestList,
    status_code=status.HTTP_200_OK,
    summary="List PDI requests",
    description="Admins receive every request; other roles only their own. Newest first."
)
def list_pdi_requests(
    status_filter: Optional[str] = Query(
        default=None, alias="status", description="Only return requests in this status."),
    principal: Optional[Principal] = Depends(get_current_principal),
    service: PDIRequestService = Depends(get_pdi_request_service)
):
    records = service.list_for_principal(principal, status_filter)
    return PDIRequestList(requests=[_detail(r) for r in records])


@router.get(
    "/latest",
    response_model=PDIRequestEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Latest own PDI request",
)
def latest_pdi_request(
    principal: Optional[Principal] = Depends(get_current_principal),
    service: PDIRequestService = Depends(get_pdi_request_service)
):
    record = service.latest_for_principal(principal)
    return PDIRequestEnvelope(request=_detail(record) if record else None)


@router.get(
    "/{request_id}",
    response_model=PDIRequestEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Get a PDI request",
    description="Visible to the owner and to admins."
)
def get_pdi_request(
    request_id: str,
    principal: Optional[Principal] = Depends(get_current_principal),
    service: PDIRequestService = Depends(get_pdi_request_service)
):
    record = service.get_by_id(principal, request_id)
    return PDIRequestEnvelope(request=_detail(record))


# ==============================================================================
# ADMIN ROUTES
# ==============================================================================

@router.put(
    "/{request_id}",
    response_model=PDIRequestEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Update PDI request status",
    description="Admin only. Partial update of status, admin notes and admin message."
)
@router.patch(
    "/{request_id}",
    response_model=PDIRequestEnvelope,
    status_code=status.HTTP_200_OK,
    include_in_schema=False,
)
def update_pdi_request(
    request_id: str,
    data: PDIRequestUpdate,
    background_tasks: BackgroundTasks,
    principal: Optional[Principal] = Depends(get_current_principal),
    service: PDIRequestService = Depends(get_pdi_request_service)
):
    result = service.update_status(principal, request_id, data, background_tasks)
    return PDIRequestEnvelope(request=_detail(result.record), notification_sent=result.notified)


@router.post(
    "/{request_id}/inspection",
    response_model=PDIRequestEnvelope,
    status_code=status.HTTP_200_OK,
    summary="Link a completed inspection",
    description="Admin only. Attaches the inspection report and marks the request COMPLETED."
)
def link_pdi_inspection(
    request_id: str,
    data: InspectionLink,
    background_tasks: BackgroundTasks,
    principal: Optional[Principal] = Depends(get_current_principal),
    service: PDIRequestService = Depends(get_pdi_request_service)
):
    result = service.link_inspection(principal, request_id, data.inspection_id, background_tasks)
    return PDIRequestEnvelope(request=_detail(result.record), notification_sent=result.notified)
