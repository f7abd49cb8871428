from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional, Dict
from decimal import Decimal
from datetime import datetime, date

from app.models.enums.order_priority import OrderPriority
from app.models.enums.party import PaymentTerms
from app.models.enums.sales_order_status import PaymentStatus, SalesOrderItemStatus, SalesOrderStatus

# =====================================================
# ITEM PAYLOADS
# =====================================================

class SalesOrderItemCreate(BaseModel):
    product_id: int
    quantity_ordered: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    discount_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    notes: Optional[str] = None
    customer_notes: Optional[str] = None


class SalesOrderItemUpdate(BaseModel):
    quantity_ordered: Optional[int] = Field(default=None, gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    customer_notes: Optional[str] = None


class FulfillItemPayload(BaseModel):
    item_id: int
    quantity: int = Field(gt=0)


class FulfillPayload(BaseModel):
    items: List[FulfillItemPayload] = Field(min_length=1)


class ShipPayload(BaseModel):
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier: Optional[str] = Field(default=None, max_length=100)
    shipping_method: Optional[str] = Field(default=None, max_length=100)


class PaymentStatusPayload(BaseModel):
    payment_status: PaymentStatus


# =====================================================
# HEADER PAYLOADS
# =====================================================

class SalesOrderCreate(BaseModel):
    customer_id: Optional[int] = None
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    customer_address: Optional[str] = None
    customer_contact_person: Optional[str] = Field(default=None, max_length=255)
    customer_reference: Optional[str] = Field(default=None, max_length=255)

    warehouse_id: int
    priority: OrderPriority = OrderPriority.normal
    payment_terms: Optional[PaymentTerms] = None

    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    requested_delivery_date: Optional[date] = None
    promised_delivery_date: Optional[date] = None
    shipping_address: Optional[str] = None
    shipping_method: Optional[str] = Field(default=None, max_length=100)

    notes: Optional[str] = None
    customer_notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None

    items: List[SalesOrderItemCreate] = Field(min_length=1)


class SalesOrderUpdate(BaseModel):
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=50)
    customer_address: Optional[str] = None
    customer_contact_person: Optional[str] = None
    customer_reference: Optional[str] = None

    warehouse_id: Optional[int] = None
    priority: Optional[OrderPriority] = None
    payment_terms: Optional[PaymentTerms] = None

    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    shipping_cost: Optional[Decimal] = Field(default=None, ge=0)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    requested_delivery_date: Optional[date] = None
    promised_delivery_date: Optional[date] = None
    shipping_address: Optional[str] = None
    shipping_method: Optional[str] = None

    notes: Optional[str] = None
    customer_notes: Optional[str] = None
    terms_and_conditions: Optional[str] = None


# =====================================================
# RESPONSES
# =====================================================

class SalesOrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str]
    product_sku: Optional[str]
    quantity_ordered: int
    quantity_allocated: int
    quantity_fulfilled: int
    quantity_shipped: int
    quantity_backordered: int
    quantity_remaining: int
    unit_price: Decimal
    discount_percentage: Decimal
    line_total: Decimal
    discount_amount: Decimal
    final_line_total: Decimal
    status: SalesOrderItemStatus
    notes: Optional[str]
    customer_notes: Optional[str]


class SalesOrderOut(BaseModel):
    id: int
    so_number: str
    customer_id: Optional[int]
    customer_name: str
    customer_email: Optional[str]
    customer_phone: Optional[str]
    customer_address: Optional[str]
    customer_contact_person: Optional[str]
    customer_reference: Optional[str]

    status: SalesOrderStatus
    priority: OrderPriority
    payment_status: PaymentStatus
    payment_terms: Optional[PaymentTerms]
    warehouse_id: int
    warehouse_code: Optional[str]

    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    currency: str

    requested_delivery_date: Optional[date]
    promised_delivery_date: Optional[date]
    approved_at: Optional[datetime]
    confirmed_at: Optional[datetime]
    fulfilled_at: Optional[datetime]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    shipping_address: Optional[str]
    shipping_method: Optional[str]
    tracking_number: Optional[str]
    carrier: Optional[str]

    notes: Optional[str]
    customer_notes: Optional[str]
    terms_and_conditions: Optional[str]
    cancellation_reason: Optional[str]

    total_quantity_ordered: int
    total_quantity_fulfilled: int
    fulfillment_progress: float
    is_overdue: bool

    created_by: Optional[int]
    created_by_name: Optional[str]
    approved_by_name: Optional[str]
    fulfilled_by_name: Optional[str]
    shipped_by_name: Optional[str]

    created_at: datetime
    updated_at: Optional[datetime]

    items: List[SalesOrderItemOut]


class SalesOrderListItem(BaseModel):
    id: int
    so_number: str
    customer_id: Optional[int]
    customer_name: str
    status: SalesOrderStatus
    payment_status: PaymentStatus
    priority: OrderPriority
    warehouse_id: int
    items_count: int
    total_amount: Decimal
    currency: str
    delivery_date: Optional[date]
    fulfillment_progress: float
    is_overdue: bool
    created_at: datetime
    created_by_name: Optional[str]


class SalesOrderListData(BaseModel):
    total: int
    items: List[SalesOrderListItem]


class SalesOrderStatistics(BaseModel):
    total_orders: int
    by_status: Dict[str, int]
    by_payment_status: Dict[str, int]
    total_value: Decimal
    pending_approval: int
    overdue: int
    awaiting_shipment: int
