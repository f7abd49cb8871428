from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.stock_adjustment import AdjustmentReason, AdjustmentType


class StockAdjustment(Base, TimestampMixin):
    __tablename__ = "stock_adjustments"

    id = Column(Integer, primary_key=True)
    reference_number = Column(String(30), nullable=False, unique=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="RESTRICT"), nullable=False, index=True)
    adjustment_type = Column(Enum(AdjustmentType), nullable=False, index=True)
    quantity_adjusted = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    reason = Column(Enum(AdjustmentReason), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    adjusted_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    adjusted_at = Column(DateTime(timezone=True), nullable=False)

    inventory = relationship("Inventory", lazy="selectin")
    adjusted_by = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_adjusted > 0", name="ck_stock_adjustment_qty_positive"),
        Index("ix_stock_adjustment_type_date", "adjustment_type", "adjusted_at"),
    )

    def __repr__(self):
        return f"<StockAdjustment id={self.id} ref={self.reference_number} {self.adjustment_type}:{self.quantity_adjusted}>"
