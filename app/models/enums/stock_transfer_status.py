import enum


class TransferStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    in_transit = "in_transit"
    completed = "completed"
    cancelled = "cancelled"
