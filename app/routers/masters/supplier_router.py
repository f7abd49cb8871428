from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.party import SupplierStatus, SupplierType
from app.schemas.masters.supplier_schemas import (
    SupplierCreate,
    SupplierUpdate,
    SupplierStatusUpdate,
    SupplierOut,
    SupplierListData,
    SupplierMetrics,
)
from app.services.masters.supplier_service import (
    create_supplier,
    get_supplier,
    list_suppliers,
    update_supplier,
    change_supplier_status,
    delete_supplier,
    supplier_metrics,
)
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])
logger = get_logger(__name__)

SUPPLIER_WRITERS = ["admin", "manager", "purchasing"]


@router.post("/", response_model=APIResponse[SupplierOut], status_code=201)
async def create_supplier_api(
    payload: SupplierCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SUPPLIER_WRITERS)),
):
    logger.info(
        "Create supplier",
        extra={"company_name": payload.company_name, "email": payload.email},
    )

    supplier = await create_supplier(db, payload, user)
    return success_response("Supplier created successfully", supplier)


@router.get("/{supplier_id}", response_model=APIResponse[SupplierOut])
async def get_supplier_api(
    supplier_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    supplier = await get_supplier(db, supplier_id)
    return success_response("Supplier fetched successfully", supplier)


@router.get("/{supplier_id}/metrics", response_model=APIResponse[SupplierMetrics])
async def supplier_metrics_api(
    supplier_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager", "purchasing"])),
):
    metrics = await supplier_metrics(db, supplier_id)
    return success_response("Supplier metrics fetched successfully", metrics)


@router.get("/", response_model=APIResponse[SupplierListData])
async def list_suppliers_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),

    search: Optional[str] = Query(None),
    status: Optional[SupplierStatus] = Query(None),
    supplier_type: Optional[SupplierType] = Query(None),
    country: Optional[str] = Query(None),

    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_suppliers(
        db,
        search=search,
        status=status,
        supplier_type=supplier_type,
        country=country,
        page=page,
        page_size=page_size,
    )
    return success_response("Suppliers fetched successfully", data)


@router.patch("/{supplier_id}", response_model=APIResponse[SupplierOut])
async def update_supplier_api(
    supplier_id: int,
    payload: SupplierUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(SUPPLIER_WRITERS)),
):
    supplier = await update_supplier(db, supplier_id, payload, user)
    return success_response("Supplier updated successfully", supplier)


@router.patch("/{supplier_id}/status", response_model=APIResponse[SupplierOut])
async def change_supplier_status_api(
    supplier_id: int,
    payload: SupplierStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    supplier = await change_supplier_status(db, supplier_id, payload.status, payload.version, user)
    return success_response("Supplier status updated successfully", supplier)


@router.delete("/{supplier_id}", response_model=APIResponse[None])
async def delete_supplier_api(
    supplier_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin"])),
):
    await delete_supplier(db, supplier_id, user)
    return success_response("Supplier deleted successfully")
