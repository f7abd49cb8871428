from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.contact_log import ContactableType, ContactType
from app.models.enums.order_priority import OrderPriority
from app.schemas.masters.contact_log_schemas import (
    ContactLogCreate,
    ContactLogUpdate,
    ContactLogOut,
    ContactLogListData,
    ContactMetrics,
    ContactEntitySummary,
)
from app.services.masters.contact_log_service import (
    create_contact_log,
    get_contact_log,
    list_contact_logs,
    update_contact_log,
    delete_contact_log,
    list_follow_ups_due,
    complete_follow_up,
    contact_metrics,
    contact_entity_summary,
)
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/contact-logs", tags=["Contact Logs"])


@router.post("/", response_model=APIResponse[ContactLogOut], status_code=201)
async def create_contact_log_api(
    payload: ContactLogCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    log = await create_contact_log(db, payload, user)
    return success_response("Contact log created successfully", log)


@router.get("/", response_model=APIResponse[ContactLogListData])
async def list_contact_logs_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    contact_type: Optional[ContactType] = Query(None),
    priority: Optional[OrderPriority] = Query(None),
    contactable_type: Optional[ContactableType] = Query(None),
    contactable_id: Optional[int] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_contact_logs(
        db,
        user,
        contact_type=contact_type,
        priority=priority,
        contactable_type=contactable_type,
        contactable_id=contactable_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return success_response("Contact logs fetched successfully", data)


@router.get("/follow-ups/due", response_model=APIResponse[List[ContactLogOut]])
async def follow_ups_due_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Due follow-ups fetched successfully", await list_follow_ups_due(db, user))


@router.get("/metrics", response_model=APIResponse[ContactMetrics])
async def contact_metrics_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    contactable_type: Optional[ContactableType] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
):
    data = await contact_metrics(
        db,
        contactable_type=contactable_type,
        date_from=date_from,
        date_to=date_to,
    )
    return success_response("Contact metrics fetched successfully", data)


@router.get(
    "/summary/{contactable_type}/{contactable_id}",
    response_model=APIResponse[ContactEntitySummary],
)
async def contact_summary_api(
    contactable_type: ContactableType,
    contactable_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    data = await contact_entity_summary(db, contactable_type, contactable_id)
    return success_response("Contact summary fetched successfully", data)


@router.get("/{log_id}", response_model=APIResponse[ContactLogOut])
async def get_contact_log_api(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Contact log fetched successfully", await get_contact_log(db, log_id, user))


@router.patch("/{log_id}", response_model=APIResponse[ContactLogOut])
async def update_contact_log_api(
    log_id: int,
    payload: ContactLogUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    log = await update_contact_log(db, log_id, payload, user)
    return success_response("Contact log updated successfully", log)


@router.post("/{log_id}/complete-follow-up", response_model=APIResponse[ContactLogOut])
async def complete_follow_up_api(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    log = await complete_follow_up(db, log_id, user)
    return success_response("Follow-up completed", log)


@router.delete("/{log_id}", response_model=APIResponse[None])
async def delete_contact_log_api(
    log_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    await delete_contact_log(db, log_id, user)
    return success_response("Contact log deleted successfully")
