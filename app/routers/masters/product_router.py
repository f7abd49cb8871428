# app/routers/masters/product_router.py

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.masters.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductListData,
    VersionPayload,
    ProductReorderItem,
    ProductAvailability,
)
from app.services.masters.product_service import (
    create_product,
    list_products,
    get_product,
    update_product,
    deactivate_product,
    reactivate_product,
    delete_product,
    list_products_needing_reorder,
    check_product_availability,
    list_product_attribute_values,
)
from app.utils.check_roles import require_role
from app.utils.get_user import get_current_user
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/products", tags=["Products"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[ProductOut], status_code=201)
async def create_product_api(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager", "inventory"])),
):
    logger.info("Create product", extra={"sku": payload.sku})
    product = await create_product(db, payload, user)
    return success_response("Product created successfully", product)


@router.get("/", response_model=APIResponse[ProductListData])
async def list_products_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    search: str | None = Query(None, description="Search by name, SKU, barcode or brand"),
    category: str | None = Query(None),
    is_active: bool | None = Query(None),
    low_stock_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    logger.info("List products", extra={"search": search})
    data = await list_products(
        db=db,
        search=search,
        category=category,
        is_active=is_active,
        low_stock_only=low_stock_only,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response("Products fetched successfully", data)


@router.get("/needing-reorder", response_model=APIResponse[List[ProductReorderItem]])
async def products_needing_reorder_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager", "inventory", "purchasing"])),
):
    data = await list_products_needing_reorder(db)
    return success_response("Products needing reorder fetched", data)


@router.get("/categories", response_model=APIResponse[List[str]])
async def product_categories_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Categories fetched", await list_product_attribute_values(db, "category"))


@router.get("/brands", response_model=APIResponse[List[str]])
async def product_brands_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    return success_response("Brands fetched", await list_product_attribute_values(db, "brand"))


@router.get("/{product_id}/availability", response_model=APIResponse[ProductAvailability])
async def product_availability_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
    quantity: int = Query(..., ge=1),
    warehouse_id: int | None = Query(None),
):
    data = await check_product_availability(db, product_id, quantity, warehouse_id)
    return success_response("Product availability checked", data)


@router.get("/{product_id}", response_model=APIResponse[ProductOut])
async def get_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(get_current_user),
):
    product = await get_product(db, product_id)
    return success_response("Product fetched successfully", product)


@router.patch("/{product_id}", response_model=APIResponse[ProductOut])
async def update_product_api(
    product_id: int,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager", "inventory"])),
):
    product = await update_product(db, product_id, payload, user)
    return success_response("Product updated successfully", product)


@router.patch("/{product_id}/deactivate", response_model=APIResponse[ProductOut])
async def deactivate_product_api(
    product_id: int,
    payload: VersionPayload,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    product = await deactivate_product(db, product_id, payload.version, user)
    return success_response("Product deactivated successfully", product)


@router.patch("/{product_id}/activate", response_model=APIResponse[ProductOut])
async def reactivate_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin", "manager"])),
):
    product = await reactivate_product(db, product_id, user)
    return success_response("Product reactivated successfully", product)


@router.delete("/{product_id}", response_model=APIResponse[None])
async def delete_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(["admin"])),
):
    await delete_product(db, product_id, user)
    return success_response("Product deleted successfully")
