# app/schemas/masters/contact_log_schemas.py

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict
from datetime import datetime

from app.models.enums.contact_log import (
    ContactableType,
    ContactDirection,
    ContactOutcome,
    ContactType,
)
from app.models.enums.order_priority import OrderPriority


class ContactLogCreate(BaseModel):
    contactable_type: ContactableType
    contactable_id: int
    contact_type: ContactType = ContactType.call
    direction: ContactDirection = ContactDirection.outbound
    subject: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=10)
    outcome: Optional[ContactOutcome] = None
    external_contact_person: Optional[str] = Field(default=None, max_length=255)
    external_contact_email: Optional[EmailStr] = None
    external_contact_phone: Optional[str] = Field(default=None, max_length=20)
    contact_date: datetime
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    follow_up_date: Optional[datetime] = None
    attachments: Optional[List[str]] = Field(default=None, max_length=10)
    priority: OrderPriority = OrderPriority.normal
    tags: Optional[List[str]] = Field(default=None, max_length=20)


class ContactLogUpdate(BaseModel):
    contact_type: Optional[ContactType] = None
    direction: Optional[ContactDirection] = None
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10)
    outcome: Optional[ContactOutcome] = None
    external_contact_person: Optional[str] = Field(default=None, max_length=255)
    external_contact_email: Optional[EmailStr] = None
    external_contact_phone: Optional[str] = Field(default=None, max_length=20)
    contact_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)
    follow_up_date: Optional[datetime] = None
    attachments: Optional[List[str]] = Field(default=None, max_length=10)
    priority: Optional[OrderPriority] = None
    tags: Optional[List[str]] = Field(default=None, max_length=20)


class ContactLogOut(BaseModel):
    id: int
    contactable_type: ContactableType
    contactable_id: int
    contact_type: ContactType
    direction: ContactDirection
    subject: str
    description: str
    outcome: Optional[ContactOutcome]

    contact_person_id: Optional[int]
    contact_person_name: Optional[str]
    external_contact_person: Optional[str]
    external_contact_email: Optional[str]
    external_contact_phone: Optional[str]

    contact_date: datetime
    duration_minutes: Optional[int]
    formatted_duration: str
    follow_up_date: Optional[datetime]
    is_follow_up_due: bool
    attachments: Optional[List[str]]
    priority: OrderPriority
    tags: Optional[List[str]]

    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ContactLogListData(BaseModel):
    total: int
    items: List[ContactLogOut]


class ContactMetrics(BaseModel):
    total_contacts: int
    by_type: Dict[str, int]
    by_direction: Dict[str, int]
    by_outcome: Dict[str, int]
    by_priority: Dict[str, int]
    follow_ups_due: int
    average_duration_minutes: float
    total_duration_minutes: int


class ContactEntitySummary(BaseModel):
    contactable_type: ContactableType
    contactable_id: int
    total_contacts: int
    last_contact_date: Optional[datetime]
    pending_follow_ups: int
    most_common_type: Optional[ContactType]
    total_duration_minutes: int
