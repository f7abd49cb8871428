import enum


class StockMovementStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    applied = "applied"


class StockMovementType(str, enum.Enum):
    adjustment_increase = "adjustment_increase"
    adjustment_decrease = "adjustment_decrease"
    damage = "damage"
    return_ = "return"
    correction = "correction"
