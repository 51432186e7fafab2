"""Work item HTTP routes.

Each route resolves the tenant from the X-Tenant-Id header, runs the
service call through run_operation() and maps the outcome kind to a
status code:

- SUCCESS: 200 (201 for create)
- NOT_FOUND: 404
- VALIDATION: 400
- CONFLICT: 409

Error bodies have the shape {"detail": {"title": ..., "detail": ...}}.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from src.workitems.api.schemas import (
    BulkTransitionRequest,
    CreateWorkItemRequest,
    UpdateWorkItemStatusRequest,
)
from src.workitems.api.tenancy import get_tenant_id
from src.workitems.service.models import ListWorkItemsQuery
from src.workitems.service.outcome import Outcome, OutcomeKind, run_operation
from src.workitems.service.service import WorkItemService
from src.workitems.state.models import WorkItemStatus


router = APIRouter(prefix="/work-items", tags=["work-items"])


_ERROR_RESPONSES = {
    OutcomeKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Work item not found"),
    OutcomeKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, "Invalid request"),
    OutcomeKind.CONFLICT: (status.HTTP_409_CONFLICT, "Invalid state transition"),
}


def get_service(request: Request) -> WorkItemService:
    """Return the service wired into the application during startup."""
    return request.app.state.work_item_service


def _to_response(
    outcome: Outcome[Any], success_status: int = status.HTTP_200_OK
) -> JSONResponse:
    if outcome.kind == OutcomeKind.SUCCESS:
        return JSONResponse(
            status_code=success_status,
            content=outcome.value.model_dump(mode="json"),
        )

    status_code, title = _ERROR_RESPONSES[outcome.kind]
    detail = {"title": title, "detail": outcome.message or title}
    if outcome.field:
        detail["field"] = outcome.field
    raise HTTPException(status_code=status_code, detail=detail)


@router.post("")
async def create_work_item(
    body: CreateWorkItemRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    service: WorkItemService = Depends(get_service),
) -> JSONResponse:
    outcome = await run_operation(service.create(tenant_id, body.to_command()))
    return _to_response(outcome, status.HTTP_201_CREATED)


@router.post("/bulk-transition")
async def bulk_transition(
    body: BulkTransitionRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    service: WorkItemService = Depends(get_service),
) -> JSONResponse:
    outcome = await run_operation(
        service.bulk_transition(tenant_id, body.to_command())
    )
    return _to_response(outcome)


@router.get("")
async def list_work_items(
    status_filter: Optional[WorkItemStatus] = Query(default=None, alias="status"),
    page: int = 1,
    page_size: int = 20,
    tenant_id: UUID = Depends(get_tenant_id),
    service: WorkItemService = Depends(get_service),
) -> JSONResponse:
    query = ListWorkItemsQuery(status=status_filter, page=page, page_size=page_size)
    outcome = await run_operation(service.list(tenant_id, query))
    return _to_response(outcome)


@router.get("/{work_item_id}")
async def get_work_item(
    work_item_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    service: WorkItemService = Depends(get_service),
) -> JSONResponse:
    outcome = await run_operation(service.get_by_id(tenant_id, work_item_id))
    return _to_response(outcome)


@router.patch("/{work_item_id}/status")
async def update_work_item_status(
    work_item_id: UUID,
    body: UpdateWorkItemStatusRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    service: WorkItemService = Depends(get_service),
) -> JSONResponse:
    outcome = await run_operation(
        service.update_status(tenant_id, work_item_id, body.to_command())
    )
    return _to_response(outcome)
