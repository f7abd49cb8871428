from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import AuditMixin, TimestampMixin


class Inventory(Base, TimestampMixin, AuditMixin):
    """Stock position of one product in one warehouse."""

    __tablename__ = "inventories"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity_on_hand = Column(Integer, nullable=False, default=0)
    quantity_reserved = Column(Integer, nullable=False, default=0)
    location = Column(String(100), nullable=True)
    last_counted_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product", back_populates="inventories", lazy="selectin")
    warehouse = relationship("Warehouse", back_populates="inventories", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_product_warehouse"),
        CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_on_hand_non_negative"),
        CheckConstraint("quantity_reserved >= 0", name="ck_inventory_reserved_non_negative"),
        CheckConstraint("quantity_reserved <= quantity_on_hand", name="ck_inventory_reserved_within_on_hand"),
    )

    @hybrid_property
    def quantity_available(self):
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def is_low_stock(self) -> bool:
        threshold = self.product.min_stock_level if self.product else 0
        return self.quantity_available <= threshold

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity_available <= 0

    def can_reserve(self, quantity: int) -> bool:
        return quantity > 0 and self.quantity_available >= quantity

    def __repr__(self):
        return (
            f"<Inventory id={self.id} product_id={self.product_id} warehouse_id={self.warehouse_id} "
            f"on_hand={self.quantity_on_hand} reserved={self.quantity_reserved}>"
        )
