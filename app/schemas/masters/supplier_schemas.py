from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from app.models.enums.party import PaymentTerms, SupplierStatus, SupplierType


class SupplierBase(BaseModel):
    company_name: str = Field(min_length=1, max_length=255)
    trade_name: Optional[str] = Field(default=None, max_length=255)
    supplier_type: SupplierType = SupplierType.distributor
    contact_person: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    website: Optional[str] = Field(default=None, max_length=255)
    address_line_1: str = Field(min_length=1)
    address_line_2: Optional[str] = None
    city: str = Field(min_length=1, max_length=100)
    state_province: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: str = Field(min_length=1, max_length=100)
    tax_id: Optional[str] = Field(default=None, max_length=50)
    payment_terms: PaymentTerms = PaymentTerms.net_30
    currency: str = Field(default="USD", min_length=3, max_length=3)
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0)
    overall_rating: Decimal = Field(default=Decimal("0"), ge=0, le=5)
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class SupplierCreate(SupplierBase):
    status: SupplierStatus = SupplierStatus.pending_approval


class SupplierUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    trade_name: Optional[str] = None
    supplier_type: Optional[SupplierType] = None
    contact_person: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    website: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    tax_id: Optional[str] = None
    payment_terms: Optional[PaymentTerms] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    overall_rating: Optional[Decimal] = Field(default=None, ge=0, le=5)
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    version: int


class SupplierStatusUpdate(BaseModel):
    status: SupplierStatus
    version: int


class SupplierOut(SupplierBase):
    id: int
    supplier_code: str
    status: SupplierStatus
    email: Optional[str]
    last_contact_date: Optional[datetime]
    version: int

    created_by: Optional[int]
    updated_by: Optional[int]
    created_by_name: Optional[str]
    updated_by_name: Optional[str]

    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class SupplierListData(BaseModel):
    total: int
    items: List[SupplierOut]


class SupplierMetrics(BaseModel):
    supplier_id: int
    total_orders: int
    open_orders: int
    total_order_value: Decimal
    average_order_value: Decimal
    on_time_delivery_percentage: float
    overall_rating: Decimal
    contact_logs_count: int
    last_order_date: Optional[datetime]
