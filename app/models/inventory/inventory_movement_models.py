from sqlalchemy import CheckConstraint, Column, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.constants.inventory_movement_type import InventoryMovementType
from app.core.db import Base
from app.models.base.mixins import AuditMixin, TimestampMixin


class InventoryMovement(Base, TimestampMixin, AuditMixin):
    """Ledger row. Every on-hand change on an inventory record writes exactly one."""

    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="SET NULL"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    movement_type = Column(
        Enum(InventoryMovementType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    quantity_change = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    reference_type = Column(String(50), nullable=False)
    reference_id = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    product = relationship("Product", lazy="selectin")
    warehouse = relationship("Warehouse", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_inventory_movement_non_zero"),
        CheckConstraint("quantity_after >= 0", name="ck_inventory_movement_after_non_negative"),
        Index("ix_inventory_movement_product_warehouse", "product_id", "warehouse_id"),
        Index("ix_inventory_movement_reference", "reference_type", "reference_id"),
    )

    def __repr__(self):
        return (
            f"<InventoryMovement id={self.id} {self.movement_type} qty={self.quantity_change} "
            f"ref={self.reference_type}:{self.reference_id}>"
        )
