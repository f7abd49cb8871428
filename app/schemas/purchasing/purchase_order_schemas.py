from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional, Dict
from decimal import Decimal
from datetime import datetime, date

from app.models.enums.order_priority import OrderPriority
from app.models.enums.purchase_order_status import PurchaseOrderItemStatus, PurchaseOrderStatus

# =====================================================
# ITEM PAYLOADS
# =====================================================

class PurchaseOrderItemCreate(BaseModel):
    product_id: int
    quantity_ordered: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    notes: Optional[str] = None


class PurchaseOrderItemUpdate(BaseModel):
    quantity_ordered: Optional[int] = Field(default=None, gt=0)
    unit_cost: Optional[Decimal] = Field(default=None, ge=0)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class ReceiveItemPayload(BaseModel):
    item_id: int
    quantity_received: int = Field(gt=0)
    quantity_rejected: int = Field(default=0, ge=0)
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None


class ReceivePayload(BaseModel):
    items: List[ReceiveItemPayload] = Field(min_length=1)


# =====================================================
# HEADER PAYLOADS
# =====================================================

class PurchaseOrderCreate(BaseModel):
    supplier_id: Optional[int] = None
    supplier_name: str = Field(min_length=1, max_length=255)
    supplier_email: Optional[EmailStr] = None
    supplier_phone: Optional[str] = Field(default=None, max_length=50)
    supplier_address: Optional[str] = None
    supplier_contact_person: Optional[str] = Field(default=None, max_length=255)
    supplier_reference: Optional[str] = Field(default=None, max_length=100)

    warehouse_id: int
    priority: OrderPriority = OrderPriority.normal

    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None

    items: List[PurchaseOrderItemCreate] = Field(min_length=1)


class PurchaseOrderUpdate(BaseModel):
    supplier_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    supplier_email: Optional[EmailStr] = None
    supplier_phone: Optional[str] = Field(default=None, max_length=50)
    supplier_address: Optional[str] = None
    supplier_contact_person: Optional[str] = None
    supplier_reference: Optional[str] = None

    warehouse_id: Optional[int] = None
    priority: Optional[OrderPriority] = None

    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    shipping_cost: Optional[Decimal] = Field(default=None, ge=0)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None


class CancelPayload(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


# =====================================================
# RESPONSES
# =====================================================

class PurchaseOrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str]
    product_sku: Optional[str]
    quantity_ordered: int
    quantity_received: int
    quantity_rejected: int
    quantity_pending: int
    unit_cost: Decimal
    discount_percentage: Decimal
    line_total: Decimal
    discount_amount: Decimal
    final_line_total: Decimal
    status: PurchaseOrderItemStatus
    rejection_reason: Optional[str]
    notes: Optional[str]
    last_received_at: Optional[datetime]


class PurchaseOrderOut(BaseModel):
    id: int
    po_number: str
    supplier_id: Optional[int]
    supplier_name: str
    supplier_email: Optional[str]
    supplier_phone: Optional[str]
    supplier_address: Optional[str]
    supplier_contact_person: Optional[str]
    supplier_reference: Optional[str]

    status: PurchaseOrderStatus
    priority: OrderPriority
    warehouse_id: int
    warehouse_code: Optional[str]

    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    currency: str

    expected_delivery_date: Optional[date]
    approved_at: Optional[datetime]
    sent_at: Optional[datetime]
    received_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    closed_at: Optional[datetime]

    notes: Optional[str]
    terms_and_conditions: Optional[str]
    cancellation_reason: Optional[str]

    total_quantity_ordered: int
    total_quantity_received: int
    receiving_progress: float
    is_overdue: bool

    created_by: Optional[int]
    created_by_name: Optional[str]
    approved_by: Optional[int]
    approved_by_name: Optional[str]
    received_by: Optional[int]
    received_by_name: Optional[str]

    created_at: datetime
    updated_at: Optional[datetime]

    items: List[PurchaseOrderItemOut]


class PurchaseOrderListItem(BaseModel):
    id: int
    po_number: str
    supplier_name: str
    status: PurchaseOrderStatus
    priority: OrderPriority
    warehouse_id: int
    items_count: int
    total_amount: Decimal
    currency: str
    expected_delivery_date: Optional[date]
    receiving_progress: float
    is_overdue: bool
    created_at: datetime
    created_by_name: Optional[str]


class PurchaseOrderListData(BaseModel):
    total: int
    items: List[PurchaseOrderListItem]


class PurchaseOrderStatistics(BaseModel):
    total_orders: int
    by_status: Dict[str, int]
    total_value: Decimal
    pending_approval: int
    overdue: int
