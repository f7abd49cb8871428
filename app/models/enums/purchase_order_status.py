# app/models/enums/purchase_order_status.py
import enum


class PurchaseOrderStatus(str, enum.Enum):
    draft = "draft"
    pending_approval = "pending_approval"
    approved = "approved"
    sent_to_supplier = "sent_to_supplier"
    partially_received = "partially_received"
    fully_received = "fully_received"
    cancelled = "cancelled"
    closed = "closed"


class PurchaseOrderItemStatus(str, enum.Enum):
    pending = "pending"
    partially_received = "partially_received"
    fully_received = "fully_received"
    cancelled = "cancelled"
    backordered = "backordered"
