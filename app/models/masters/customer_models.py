from sqlalchemy import JSON, Column, DateTime, Enum, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import AuditMixin, SoftDeleteMixin, TimestampMixin, VersionMixin
from app.models.enums.party import (
    CreditStatus,
    CustomerPriority,
    CustomerStatus,
    CustomerType,
    PaymentTerms,
    PriceTier,
)
from app.utils.decimal_utils import to_decimal


class Customer(Base, TimestampMixin, SoftDeleteMixin, AuditMixin, VersionMixin):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    customer_code = Column(String(20), nullable=False, unique=True, index=True)
    customer_type = Column(Enum(CustomerType), nullable=False, default=CustomerType.business)
    company_name = Column(String(255), nullable=True, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    status = Column(Enum(CustomerStatus), nullable=False, default=CustomerStatus.prospect, index=True)

    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True)

    billing_address_line_1 = Column(Text, nullable=False)
    billing_address_line_2 = Column(Text, nullable=True)
    billing_city = Column(String(100), nullable=False)
    billing_state_province = Column(String(100), nullable=True)
    billing_postal_code = Column(String(20), nullable=True)
    billing_country = Column(String(100), nullable=False)

    payment_terms = Column(Enum(PaymentTerms), nullable=False, default=PaymentTerms.net_30)
    credit_limit = Column(Numeric(15, 2), nullable=False, default=0)
    current_balance = Column(Numeric(15, 2), nullable=False, default=0)
    credit_status = Column(Enum(CreditStatus), nullable=False, default=CreditStatus.good)
    customer_priority = Column(Enum(CustomerPriority), nullable=False, default=CustomerPriority.normal)
    price_tier = Column(Enum(PriceTier), nullable=False, default=PriceTier.standard)

    tags = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    last_contact_date = Column(DateTime(timezone=True), nullable=True)

    sales_orders = relationship("SalesOrder", back_populates="customer", lazy="noload")

    __table_args__ = (
        Index("ix_customer_status_type", "status", "customer_type"),
        Index("ix_customer_priority", "customer_priority"),
    )

    @property
    def display_name(self) -> str:
        if self.company_name:
            return self.company_name
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @property
    def available_credit(self):
        return to_decimal(self.credit_limit) - to_decimal(self.current_balance)

    def __repr__(self):
        return f"<Customer id={self.id} code={self.customer_code} name={self.display_name}>"
