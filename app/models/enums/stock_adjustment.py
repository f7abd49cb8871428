import enum


class AdjustmentType(str, enum.Enum):
    increase = "increase"
    decrease = "decrease"


class AdjustmentReason(str, enum.Enum):
    damage = "damage"
    theft = "theft"
    found = "found"
    expired = "expired"
    returned = "returned"
    transfer_in = "transfer_in"
    transfer_out = "transfer_out"
    correction = "correction"
    recount = "recount"
    other = "other"
