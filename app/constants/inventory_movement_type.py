# app/constants/inventory_movement_type.py

from enum import Enum


class InventoryMovementType(str, Enum):
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    ADJUSTMENT_IN = "adjustment_in"
    ADJUSTMENT_OUT = "adjustment_out"


class InventoryReferenceType(str, Enum):
    PURCHASE_ORDER = "PURCHASE_ORDER"
    SALES_ORDER = "SALES_ORDER"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    STOCK_MOVEMENT = "STOCK_MOVEMENT"
    OPENING = "OPENING"
