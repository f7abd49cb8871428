from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.stock_transfer_status import TransferStatus


class StockTransfer(Base, TimestampMixin):
    """Physical stock movement between warehouses. Not a sale and not a reservation."""

    __tablename__ = "stock_transfers"

    id = Column(Integer, primary_key=True)
    reference_number = Column(String(30), nullable=False, unique=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    status = Column(Enum(TransferStatus), nullable=False, default=TransferStatus.pending, index=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    item_signature = Column(String(128), nullable=False, index=True)

    requested_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    product = relationship("Product", lazy="selectin")
    from_warehouse = relationship("Warehouse", foreign_keys=[from_warehouse_id], lazy="selectin")
    to_warehouse = relationship("Warehouse", foreign_keys=[to_warehouse_id], lazy="selectin")
    requested_by = relationship("User", foreign_keys=[requested_by_id], lazy="selectin")
    approved_by = relationship("User", foreign_keys=[approved_by_id], lazy="selectin")
    completed_by = relationship("User", foreign_keys=[completed_by_id], lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_transfer_qty_positive"),
        CheckConstraint("from_warehouse_id != to_warehouse_id", name="ck_stock_transfer_warehouse_diff"),
        Index("ix_stock_transfer_product_status", "product_id", "status"),
        Index("ix_stock_transfer_route_status", "from_warehouse_id", "to_warehouse_id", "status"),
    )

    # ----------------------------
    # Lifecycle guards
    # ----------------------------
    def can_be_approved(self) -> bool:
        return self.status == TransferStatus.pending

    def can_be_shipped(self) -> bool:
        return self.status == TransferStatus.approved

    def can_be_completed(self) -> bool:
        return self.status == TransferStatus.in_transit

    def can_be_cancelled(self) -> bool:
        return self.status in (TransferStatus.pending, TransferStatus.approved)

    def __repr__(self):
        return (
            f"<StockTransfer id={self.id} ref={self.reference_number} product_id={self.product_id} "
            f"{self.from_warehouse_id}->{self.to_warehouse_id} qty={self.quantity} status={self.status}>"
        )
