from sqlalchemy import Boolean, Column, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import AuditMixin, SoftDeleteMixin, TimestampMixin, VersionMixin


class Warehouse(Base, TimestampMixin, SoftDeleteMixin, AuditMixin, VersionMixin):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(150), nullable=False)
    address = Column(Text, nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    inventories = relationship("Inventory", back_populates="warehouse", lazy="noload")

    __table_args__ = (Index("ix_warehouse_active", "is_active"),)

    @property
    def full_address(self) -> str:
        parts = [self.address, self.city, self.state, self.postal_code, self.country]
        return ", ".join(p for p in parts if p)

    def __repr__(self):
        return f"<Warehouse id={self.id} code={self.code} active={self.is_active}>"
