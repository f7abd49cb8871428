from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.party import CustomerPriority, CustomerStatus, CustomerType
from app.schemas.masters.customer_schemas import (
    CustomerCreate,
    CustomerUpdate,
    CustomerStatusUpdate,
    CustomerOut,
    CustomerListData,
    CustomerMetrics,
)
from app.services.masters.customer_service import (
    create_customer,
    get_customer,
    list_customers,
    update_customer,
    change_customer_status,
    delete_customer,
    customer_metrics,
)
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/customers", tags=["Customers"])
logger = get_logger(__name__)

CUSTOMER_WRITERS = ["admin", "manager", "sales"]


@router.post("/", response_model=APIResponse[CustomerOut], status_code=201)
async def create_customer_api(
    payload: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(CUSTOMER_WRITERS)),
):
    logger.info("Create customer", extra={"email": payload.email})
    customer = await create_customer(db, payload, user)
    return success_response("Customer created successfully", customer)


@router.get("/", response_model=APIResponse[CustomerListData])
async def list_customers_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    search: Optional[str] = Query(None, description="Search by name, code, email or phone"),
    status: Optional[CustomerStatus] = Query(None),
    customer_type: Optional[CustomerType] = Query(None),
    priority: Optional[CustomerPriority] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_customers(
        db,
        search=search,
        status=status,
        customer_type=customer_type,
        priority=priority,
        page=page,
        page_size=page_size,
    )
    return success_response("Customers fetched successfully", data)


@router.get("/{customer_id}", response_model=APIResponse[CustomerOut])
async def get_customer_api(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Customer fetched successfully", await get_customer(db, customer_id))


@router.get("/{customer_id}/metrics", response_model=APIResponse[CustomerMetrics])
async def customer_metrics_api(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(CUSTOMER_WRITERS)),
):
    metrics = await customer_metrics(db, customer_id)
    return success_response("Customer metrics fetched successfully", metrics)


@router.patch("/{customer_id}", response_model=APIResponse[CustomerOut])
async def update_customer_api(
    customer_id: int,
    payload: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(CUSTOMER_WRITERS)),
):
    customer = await update_customer(db, customer_id, payload, user)
    return success_response("Customer updated successfully", customer)


@router.patch("/{customer_id}/status", response_model=APIResponse[CustomerOut])
async def change_customer_status_api(
    customer_id: int,
    payload: CustomerStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    customer = await change_customer_status(db, customer_id, payload.status, payload.version, user)
    return success_response("Customer status updated successfully", customer)


@router.delete("/{customer_id}", response_model=APIResponse[None])
async def delete_customer_api(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin"])),
):
    await delete_customer(db, customer_id, user)
    return success_response("Customer deleted successfully")
