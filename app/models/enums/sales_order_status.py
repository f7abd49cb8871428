# app/models/enums/sales_order_status.py
import enum


class SalesOrderStatus(str, enum.Enum):
    draft = "draft"
    pending_approval = "pending_approval"
    approved = "approved"
    confirmed = "confirmed"
    partially_fulfilled = "partially_fulfilled"
    fully_fulfilled = "fully_fulfilled"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    closed = "closed"


class SalesOrderItemStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    allocated = "allocated"
    partially_fulfilled = "partially_fulfilled"
    fully_fulfilled = "fully_fulfilled"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    backordered = "backordered"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    partial = "partial"
    paid = "paid"
    overdue = "overdue"
    cancelled = "cancelled"
