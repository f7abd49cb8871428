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
from app.models.enums.party import PaymentTerms
from app.models.enums.sales_order_status import PaymentStatus, SalesOrderItemStatus, SalesOrderStatus
from app.utils.decimal_utils import HUNDRED, percentage, to_decimal, to_rate

S = SalesOrderStatus

SO_INACTIVE_STATUSES = {S.delivered, S.cancelled, S.closed}
SO_EDITABLE_STATUSES = {S.draft, S.pending_approval}


class SalesOrder(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True)
    so_number = Column(String(30), nullable=False, unique=True, index=True)
    customer_reference = Column(String(255), nullable=True)

    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False, index=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_address = Column(Text, nullable=True)
    customer_contact_person = Column(String(255), nullable=True)

    status = Column(Enum(SalesOrderStatus), nullable=False, default=S.draft, index=True)
    priority = Column(Enum(OrderPriority), nullable=False, default=OrderPriority.normal)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.pending, index=True)
    payment_terms = Column(Enum(PaymentTerms), nullable=True)

    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    fulfilled_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    shipped_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 4), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    requested_delivery_date = Column(Date, nullable=True)
    promised_delivery_date = Column(Date, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    shipping_address = Column(Text, nullable=True)
    shipping_method = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    carrier = Column(String(100), nullable=True)

    notes = Column(Text, nullable=True)
    customer_notes = Column(Text, nullable=True)
    terms_and_conditions = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    customer = relationship("Customer", back_populates="sales_orders", lazy="selectin")
    warehouse = relationship("Warehouse", lazy="selectin")
    approved_by = relationship("User", foreign_keys=[approved_by_id], lazy="selectin")
    fulfilled_by = relationship("User", foreign_keys=[fulfilled_by_id], lazy="selectin")
    shipped_by = relationship("User", foreign_keys=[shipped_by_id], lazy="selectin")
    items = relationship(
        "SalesOrderItem",
        back_populates="sales_order",
        cascade="all, delete-orphan",
        order_by="SalesOrderItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 1", name="ck_so_tax_rate_range"),
        Index("ix_so_status_created", "status", "created_at"),
        Index("ix_so_customer_created", "customer_name", "created_at"),
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
    def total_quantity_fulfilled(self) -> int:
        return sum(i.quantity_fulfilled for i in self.items)

    @property
    def fulfillment_progress(self) -> float:
        return percentage(self.total_quantity_fulfilled, self.total_quantity_ordered)

    @property
    def delivery_date(self) -> date | None:
        return self.promised_delivery_date or self.requested_delivery_date

    # ----------------------------
    # Lifecycle guards
    # ----------------------------
    @property
    def has_items(self) -> bool:
        return len(self.items) > 0

    @property
    def is_editable(self) -> bool:
        return self.status in SO_EDITABLE_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status not in SO_INACTIVE_STATUSES

    def can_be_submitted(self) -> bool:
        return self.status == S.draft and self.has_items

    def can_be_approved(self) -> bool:
        return self.status == S.pending_approval and self.has_items

    def can_be_confirmed(self) -> bool:
        return self.status in (S.approved, S.draft) and self.has_items

    def can_be_fulfilled(self) -> bool:
        return self.status in (S.confirmed, S.partially_fulfilled)

    def can_be_shipped(self) -> bool:
        return self.status == S.fully_fulfilled

    def can_be_delivered(self) -> bool:
        return self.status == S.shipped

    def can_be_cancelled(self) -> bool:
        return self.is_active

    def is_overdue(self, today: date | None = None) -> bool:
        due = self.delivery_date
        if not due or self.status in SO_INACTIVE_STATUSES:
            return False
        return due < (today or date.today())

    def update_fulfillment_status(self, now: datetime | None = None) -> None:
        fulfilled = self.total_quantity_fulfilled
        if fulfilled == 0:
            self.status = S.confirmed
        elif fulfilled < self.total_quantity_ordered:
            self.status = S.partially_fulfilled
        else:
            self.status = S.fully_fulfilled
            self.fulfilled_at = now or datetime.now(timezone.utc)

    def __repr__(self):
        return f"<SalesOrder id={self.id} number={self.so_number} status={self.status}>"


class SalesOrderItem(Base, TimestampMixin):
    __tablename__ = "sales_order_items"

    id = Column(Integer, primary_key=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity_ordered = Column(Integer, nullable=False)
    quantity_allocated = Column(Integer, nullable=False, default=0)
    quantity_fulfilled = Column(Integer, nullable=False, default=0)
    quantity_shipped = Column(Integer, nullable=False, default=0)
    quantity_backordered = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(12, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    line_total = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_line_total = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(Enum(SalesOrderItemStatus), nullable=False, default=SalesOrderItemStatus.pending)
    notes = Column(Text, nullable=True)
    customer_notes = Column(Text, nullable=True)

    sales_order = relationship("SalesOrder", back_populates="items", lazy="noload")
    product = relationship("Product", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_so_item_qty_positive"),
        CheckConstraint("quantity_fulfilled >= 0", name="ck_so_item_fulfilled_non_negative"),
        CheckConstraint("quantity_fulfilled <= quantity_ordered", name="ck_so_item_fulfilled_within_ordered"),
        CheckConstraint("unit_price >= 0", name="ck_so_item_price_non_negative"),
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_so_item_discount_range",
        ),
    )

    def calculate_line_totals(self) -> None:
        line_total = to_decimal(to_decimal(self.unit_price) * self.quantity_ordered)
        pct = to_decimal(self.discount_percentage)
        discount = to_decimal(line_total * pct / HUNDRED) if pct > 0 else to_decimal(0)
        self.line_total = line_total
        self.discount_amount = discount
        self.final_line_total = line_total - discount

    @property
    def quantity_remaining(self) -> int:
        return self.quantity_ordered - self.quantity_fulfilled

    def can_fulfill_quantity(self, quantity: int) -> bool:
        if quantity <= 0 or self.status == SalesOrderItemStatus.cancelled:
            return False
        return self.quantity_fulfilled + quantity <= self.quantity_ordered

    def fulfill_quantity(self, quantity: int) -> None:
        if not self.can_fulfill_quantity(quantity):
            raise ValueError(f"Cannot fulfill {quantity} units on item {self.id}")

        self.quantity_fulfilled += quantity
        self.quantity_allocated = max(0, self.quantity_allocated - quantity)
        if self.quantity_fulfilled < self.quantity_ordered:
            self.status = SalesOrderItemStatus.partially_fulfilled
        else:
            self.status = SalesOrderItemStatus.fully_fulfilled

    def __repr__(self):
        return f"<SalesOrderItem id={self.id} product_id={self.product_id} {self.quantity_fulfilled}/{self.quantity_ordered}>"
