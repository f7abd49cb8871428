from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.contact_log import (
    ContactableType,
    ContactDirection,
    ContactOutcome,
    ContactType,
)
from app.models.enums.order_priority import OrderPriority


class ContactLog(Base, TimestampMixin):
    """One recorded interaction with a supplier or a customer."""

    __tablename__ = "contact_logs"

    id = Column(Integer, primary_key=True)
    contactable_type = Column(Enum(ContactableType), nullable=False)
    contactable_id = Column(Integer, nullable=False)

    contact_type = Column(Enum(ContactType), nullable=False, default=ContactType.call)
    direction = Column(Enum(ContactDirection), nullable=False, default=ContactDirection.outbound)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    outcome = Column(Enum(ContactOutcome), nullable=True)

    contact_person_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    external_contact_person = Column(String(255), nullable=True)
    external_contact_email = Column(String(255), nullable=True)
    external_contact_phone = Column(String(20), nullable=True)

    contact_date = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    follow_up_date = Column(DateTime(timezone=True), nullable=True, index=True)
    attachments = Column(JSON, nullable=True)
    priority = Column(Enum(OrderPriority), nullable=False, default=OrderPriority.normal)
    tags = Column(JSON, nullable=True)

    contact_person = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_contact_log_contactable", "contactable_type", "contactable_id"),
        Index("ix_contact_log_type_date", "contact_type", "contact_date"),
    )

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration_minutes)

    def is_follow_up_due(self, now: datetime | None = None) -> bool:
        if not self.follow_up_date:
            return False
        now = now or datetime.now(timezone.utc)
        follow_up = self.follow_up_date
        if follow_up.tzinfo is None:
            follow_up = follow_up.replace(tzinfo=timezone.utc)
        return follow_up <= now

    def __repr__(self):
        return f"<ContactLog id={self.id} {self.contactable_type}:{self.contactable_id} type={self.contact_type}>"


def format_duration(minutes: int | None) -> str:
    if not minutes:
        return "N/A"
    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {rest}m"
    return f"{rest}m"
