"""Scheduled offboarding endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from structlog import get_logger

from offboard_api.api.dependencies import (
    TenantContext,
    get_offboarding_store,
    require_tenant_context,
)
from offboard_api.core.config import settings
from offboard_api.middleware.rate_limit import limiter
from offboard_api.models.offboarding import (
    DeleteResponse,
    ScheduledOffboarding,
    ScheduledOffboardingCreate,
)
from offboard_api.services.offboardings import OffboardingStore

logger = get_logger()
router = APIRouter(prefix="/api/offboarding", tags=["offboarding"])

NOT_FOUND_DETAIL = "Not found or access denied"


@router.get("/scheduled", response_model=list[ScheduledOffboarding])
@limiter.limit(settings.api_rate_limit)
async def list_scheduled(
    request: Request,
    context: TenantContext = Depends(require_tenant_context),
    store: OffboardingStore = Depends(get_offboarding_store),
) -> list[ScheduledOffboarding]:
    """List scheduled offboardings visible to the caller's session."""
    return await store.list(context.tenant_id, context.session_id)


@router.post(
    "/scheduled",
    response_model=ScheduledOffboarding,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.api_rate_limit)
async def create_scheduled(
    request: Request,
    schedule: ScheduledOffboardingCreate,
    context: TenantContext = Depends(require_tenant_context),
    store: OffboardingStore = Depends(get_offboarding_store),
) -> ScheduledOffboarding:
    """Schedule an offboarding owned by the caller's session."""
    return await store.create(schedule, context.tenant_id, context.session_id)


@router.put("/scheduled/{schedule_id}", response_model=ScheduledOffboarding)
@limiter.limit(settings.api_rate_limit)
async def update_scheduled(
    request: Request,
    schedule_id: str,
    updates: dict[str, Any] = Body(...),
    context: TenantContext = Depends(require_tenant_context),
    store: OffboardingStore = Depends(get_offboarding_store),
) -> ScheduledOffboarding:
    """
    Update the mutable fields of a schedule.

    Raises:
        HTTPException: 404 if the schedule is not visible to the caller
    """
    updated = await store.update(schedule_id, updates, context.tenant_id, context.session_id)
    if updated is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    return updated


@router.delete("/scheduled/{schedule_id}", response_model=DeleteResponse)
@limiter.limit(settings.api_rate_limit)
async def delete_scheduled(
    request: Request,
    schedule_id: str,
    context: TenantContext = Depends(require_tenant_context),
    store: OffboardingStore = Depends(get_offboarding_store),
) -> DeleteResponse:
    """
    Delete a schedule regardless of its status.

    Raises:
        HTTPException: 404 if the schedule is not visible to the caller
    """
    if not await store.remove(schedule_id, context.tenant_id, context.session_id):
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    return DeleteResponse(success=True)


@router.post("/scheduled/{schedule_id}/execute", response_model=ScheduledOffboarding)
@limiter.limit(settings.api_rate_limit)
async def execute_scheduled(
    request: Request,
    schedule_id: str,
    context: TenantContext = Depends(require_tenant_context),
    store: OffboardingStore = Depends(get_offboarding_store),
) -> ScheduledOffboarding:
    """
    Mark a schedule completed.

    Only records the transition; running the offboarding workflow itself
    happens elsewhere.

    Raises:
        HTTPException: 404 if the schedule is not visible to the caller
    """
    executed = await store.execute(schedule_id, context.tenant_id, context.session_id)
    if executed is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
    logger.info("offboarding_execute_requested", schedule_id=schedule_id)
    return executed
