from sqlalchemy import Boolean, CheckConstraint, Column, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import AuditMixin, SoftDeleteMixin, TimestampMixin, VersionMixin


class Product(Base, TimestampMixin, SoftDeleteMixin, AuditMixin, VersionMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    sku = Column(String(64), nullable=False, unique=True, index=True)
    barcode = Column(String(64), nullable=True, unique=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(100), nullable=True, index=True)
    brand = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=True)
    min_stock_level = Column(Integer, nullable=False, default=0)
    max_stock_level = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    track_quantity = Column(Boolean, default=True, nullable=False)

    inventories = relationship("Inventory", back_populates="product", lazy="noload")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("min_stock_level >= 0", name="ck_product_min_stock_non_negative"),
        CheckConstraint(
            "max_stock_level IS NULL OR max_stock_level >= min_stock_level",
            name="ck_product_stock_levels",
        ),
        Index("ix_product_name_category", "name", "category"),
    )

    def __repr__(self):
        return f"<Product id={self.id} sku={self.sku} name={self.name}>"
