from datetime import date, datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.base.mixins import AuditMixin, SoftDeleteMixin, TimestampMixin
from app.models.enums.order_priority import OrderPriority
from app.models.enums.purchase_order_status import PurchaseOrderItemStatus, PurchaseOrderStatus
from app.utils.decimal_utils import HUNDRED, percentage, to_decimal, to_rate

S = PurchaseOrderStatus

# statuses in which the order no longer expects goods
PO_TERMINAL_STATUSES = {S.fully_received, S.cancelled, S.closed}

# items cannot be added or changed once goods are on their way
PO_ITEM_LOCKED_STATUSES = {
    S.sent_to_supplier,
    S.partially_received,
    S.fully_received,
    S.cancelled,
    S.closed,
}


class PurchaseOrder(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    po_number = Column(String(30), nullable=False, unique=True, index=True)
    supplier_reference = Column(String(100), nullable=True)

    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    supplier_name = Column(String(255), nullable=False, index=True)
    supplier_email = Column(String(255), nullable=True)
    supplier_phone = Column(String(50), nullable=True)
    supplier_address = Column(Text, nullable=True)
    supplier_contact_person = Column(String(255), nullable=True)

    status = Column(Enum(PurchaseOrderStatus), nullable=False, default=S.draft, index=True)
    priority = Column(Enum(OrderPriority), nullable=False, default=OrderPriority.normal)

    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    received_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 4), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    expected_delivery_date = Column(Date, nullable=True, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)
    terms_and_conditions = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    supplier = relationship("Supplier", back_populates="purchase_orders", lazy="selectin")
    warehouse = relationship("Warehouse", lazy="selectin")
    approved_by = relationship("User", foreign_keys=[approved_by_id], lazy="selectin")
    received_by = relationship("User", foreign_keys=[received_by_id], lazy="selectin")
    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 1", name="ck_po_tax_rate_range"),
        Index("ix_po_status_created", "status", "created_at"),
        Index("ix_po_warehouse_created", "warehouse_id", "created_at"),
    )

    # ----------------------------
    # Totals
    # ----------------------------
    def recalculate_totals(self) -> None:
        subtotal = sum((to_decimal(i.final_line_total) for i in self.items), to_decimal(0))
        tax_amount = to_decimal(subtotal * to_rate(self.tax_rate))
        self.subtotal = subtotal
        self.tax_amount = tax_amount
        self.total_amount = to_decimal(
            subtotal + tax_amount + to_decimal(self.shipping_cost) - to_decimal(self.discount_amount)
        )

    @property
    def total_quantity_ordered(self) -> int:
        return sum(i.quantity_ordered for i in self.items)

    @property
    def total_quantity_received(self) -> int:
        return sum(i.quantity_received for i in self.items)

    @property
    def receiving_progress(self) -> float:
        return percentage(self.total_quantity_received, self.total_quantity_ordered)

    # ----------------------------
    # Lifecycle guards
    # ----------------------------
    @property
    def has_items(self) -> bool:
        return len(self.items) > 0

    @property
    def is_editable(self) -> bool:
        return self.status in (S.draft, S.pending_approval)

    def can_be_submitted(self) -> bool:
        return self.status == S.draft and self.has_items

    def can_be_approved(self) -> bool:
        return self.status == S.pending_approval and self.has_items

    def can_be_sent(self) -> bool:
        return self.status == S.approved

    def can_be_received(self) -> bool:
        return self.status in (S.sent_to_supplier, S.partially_received)

    def can_be_cancelled(self) -> bool:
        return self.status not in PO_TERMINAL_STATUSES

    def can_be_closed(self) -> bool:
        return self.status in (S.fully_received, S.partially_received)

    def items_locked(self) -> bool:
        return self.status in PO_ITEM_LOCKED_STATUSES

    def is_overdue(self, today: date | None = None) -> bool:
        if not self.expected_delivery_date or self.status in PO_TERMINAL_STATUSES:
            return False
        return self.expected_delivery_date < (today or date.today())

    def update_receiving_status(self, now: datetime | None = None) -> None:
        received = self.total_quantity_received
        if received == 0:
            self.status = S.sent_to_supplier
        elif received < self.total_quantity_ordered:
            self.status = S.partially_received
        else:
            self.status = S.fully_received
            self.received_at = now or datetime.now(timezone.utc)

    def __repr__(self):
        return f"<PurchaseOrder id={self.id} number={self.po_number} status={self.status}>"


class PurchaseOrderItem(Base, TimestampMixin):
    __tablename__ = "purchase_order_items"

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity_ordered = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=False, default=0)
    quantity_rejected = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Numeric(12, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    line_total = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_line_total = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(Enum(PurchaseOrderItemStatus), nullable=False, default=PurchaseOrderItemStatus.pending)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    last_received_at = Column(DateTime(timezone=True), nullable=True)

    purchase_order = relationship("PurchaseOrder", back_populates="items", lazy="noload")
    product = relationship("Product", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_item_qty_positive"),
        CheckConstraint("quantity_received >= 0", name="ck_po_item_received_non_negative"),
        CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_item_received_within_ordered"),
        CheckConstraint("unit_cost >= 0", name="ck_po_item_cost_non_negative"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_po_item_discount_range",
        ),
    )

    def calculate_line_totals(self) -> None:
        line_total = to_decimal(to_decimal(self.unit_cost) * self.quantity_ordered)
        pct = to_decimal(self.discount_percentage)
        discount = to_decimal(line_total * pct / HUNDRED) if pct > 0 else to_decimal(0)
        self.line_total = line_total
        self.discount_amount = discount
        self.final_line_total = line_total - discount

    @property
    def quantity_pending(self) -> int:
        return self.quantity_ordered - self.quantity_received

    def can_receive_quantity(self, quantity: int) -> bool:
        if quantity <= 0 or self.status == PurchaseOrderItemStatus.cancelled:
            return False
        return self.quantity_received + quantity <= self.quantity_ordered

    def receive_quantity(self, quantity: int, notes: str | None = None, now: datetime | None = None) -> None:
        if not self.can_receive_quantity(quantity):
            raise ValueError(f"Cannot receive {quantity} units on item {self.id}")

        self.quantity_received += quantity
        self.last_received_at = now or datetime.now(timezone.utc)
        if notes:
            self.notes = f"{self.notes}\n{notes}" if self.notes else notes
        self.refresh_status()

    def reject_quantity(self, quantity: int, reason: str | None = None) -> None:
        self.quantity_rejected += quantity
        if reason:
            self.rejection_reason = reason

    def refresh_status(self) -> None:
        if self.status == PurchaseOrderItemStatus.cancelled:
            return
        if self.quantity_received == 0:
            self.status = PurchaseOrderItemStatus.pending
        elif self.quantity_received < self.quantity_ordered:
            self.status = PurchaseOrderItemStatus.partially_received
        else:
            self.status = PurchaseOrderItemStatus.fully_received

    def __repr__(self):
        return f"<PurchaseOrderItem id={self.id} product_id={self.product_id} {self.quantity_received}/{self.quantity_ordered}>"
