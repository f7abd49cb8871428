from sqlalchemy import JSON, Column, DateTime, Enum, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import AuditMixin, SoftDeleteMixin, TimestampMixin, VersionMixin
from app.models.enums.party import PaymentTerms, SupplierStatus, SupplierType


class Supplier(Base, TimestampMixin, SoftDeleteMixin, AuditMixin, VersionMixin):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    supplier_code = Column(String(20), nullable=False, unique=True, index=True)
    company_name = Column(String(255), nullable=False, index=True)
    trade_name = Column(String(255), nullable=True)
    supplier_type = Column(Enum(SupplierType), nullable=False, default=SupplierType.distributor)
    status = Column(Enum(SupplierStatus), nullable=False, default=SupplierStatus.pending_approval, index=True)

    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(20), nullable=True)
    website = Column(String(255), nullable=True)

    address_line_1 = Column(Text, nullable=False)
    address_line_2 = Column(Text, nullable=True)
    city = Column(String(100), nullable=False)
    state_province = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=False)

    tax_id = Column(String(50), nullable=True)
    payment_terms = Column(Enum(PaymentTerms), nullable=False, default=PaymentTerms.net_30)
    currency = Column(String(3), nullable=False, default="USD")
    credit_limit = Column(Numeric(15, 2), nullable=False, default=0)
    overall_rating = Column(Numeric(3, 2), nullable=False, default=0)

    tags = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    last_contact_date = Column(DateTime(timezone=True), nullable=True)

    purchase_orders = relationship("PurchaseOrder", back_populates="supplier", lazy="noload")

    __table_args__ = (
        Index("ix_supplier_status_type", "status", "supplier_type"),
        Index("ix_supplier_country_city", "country", "city"),
    )

    def __repr__(self):
        return f"<Supplier id={self.id} code={self.supplier_code} name={self.company_name}>"
