from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.stock_movement_status import StockMovementStatus, StockMovementType


class StockMovement(Base, TimestampMixin):
    """Manual quantity change request. Applied to inventory only once approved."""

    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)
    reference_number = Column(String(30), nullable=False, unique=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    movement_type = Column(
        Enum(StockMovementType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    quantity_moved = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 2), nullable=False, default=0)
    total_value = Column(Numeric(14, 2), nullable=False, default=0)
    reason = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    related_document_type = Column(String(50), nullable=True)
    related_document_id = Column(Integer, nullable=True)
    status = Column(Enum(StockMovementStatus), nullable=False, default=StockMovementStatus.pending, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product", lazy="selectin")
    warehouse = relationship("Warehouse", lazy="selectin")
    user = relationship("User", foreign_keys=[user_id], lazy="selectin")
    approved_by = relationship("User", foreign_keys=[approved_by_id], lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_moved <> 0", name="ck_stock_movement_non_zero"),
        Index("ix_stock_movement_status_created", "status", "created_at"),
    )

    def __repr__(self):
        return f"<StockMovement id={self.id} ref={self.reference_number} qty={self.quantity_moved} status={self.status}>"
