# app/schemas/masters/customer_schemas.py

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from app.models.enums.party import (
    CreditStatus,
    CustomerPriority,
    CustomerStatus,
    CustomerType,
    PaymentTerms,
    PriceTier,
)


def _check_customer_terms(value):
    if value == PaymentTerms.net_90:
        raise ValueError("net_90 is not offered to customers")
    return value


class CustomerBase(BaseModel):
    customer_type: CustomerType = CustomerType.business
    company_name: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    billing_address_line_1: str = Field(min_length=1)
    billing_address_line_2: Optional[str] = None
    billing_city: str = Field(min_length=1, max_length=100)
    billing_state_province: Optional[str] = None
    billing_postal_code: Optional[str] = None
    billing_country: str = Field(min_length=1, max_length=100)
    payment_terms: PaymentTerms = PaymentTerms.net_30
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0)
    credit_status: CreditStatus = CreditStatus.good
    customer_priority: CustomerPriority = CustomerPriority.normal
    price_tier: PriceTier = PriceTier.standard
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class CustomerCreate(CustomerBase):
    status: CustomerStatus = CustomerStatus.prospect

    @field_validator("payment_terms")
    @classmethod
    def check_terms(cls, value):
        return _check_customer_terms(value)

    @model_validator(mode="after")
    def check_name(self):
        if not self.company_name and not (self.first_name or self.last_name):
            raise ValueError("company_name or first_name/last_name is required")
        return self


class CustomerUpdate(BaseModel):
    customer_type: Optional[CustomerType] = None
    company_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: Optional[CustomerStatus] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    billing_address_line_1: Optional[str] = None
    billing_address_line_2: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state_province: Optional[str] = None
    billing_postal_code: Optional[str] = None
    billing_country: Optional[str] = None
    payment_terms: Optional[PaymentTerms] = None
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    current_balance: Optional[Decimal] = Field(default=None, ge=0)
    credit_status: Optional[CreditStatus] = None
    customer_priority: Optional[CustomerPriority] = None
    price_tier: Optional[PriceTier] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    version: int

    @field_validator("payment_terms")
    @classmethod
    def check_terms(cls, value):
        return _check_customer_terms(value)


class CustomerStatusUpdate(BaseModel):
    status: CustomerStatus
    version: int


class CustomerOut(CustomerBase):
    id: int
    customer_code: str
    display_name: str
    status: CustomerStatus
    email: Optional[str]
    current_balance: Decimal
    available_credit: Decimal
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


class CustomerListData(BaseModel):
    total: int
    items: List[CustomerOut]


class CustomerMetrics(BaseModel):
    customer_id: int
    total_orders: int
    open_orders: int
    lifetime_value: Decimal
    average_order_value: Decimal
    overdue_payments: int
    credit_utilization: float
    contact_logs_count: int
    last_order_date: Optional[datetime]
