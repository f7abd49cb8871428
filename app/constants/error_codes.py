# app/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---------------- GENERIC ----------------
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NO_CHANGES_DETECTED = "NO_CHANGES_DETECTED"
    VERSION_CONFLICT = "VERSION_CONFLICT"

    # ---------------- USERS ----------------
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    USER_ROLE_INVALID = "USER_ROLE_INVALID"
    USER_VERSION_CONFLICT = "USER_VERSION_CONFLICT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # ---------------- WAREHOUSES ----------------
    WAREHOUSE_NOT_FOUND = "WAREHOUSE_NOT_FOUND"
    WAREHOUSE_CODE_EXISTS = "WAREHOUSE_CODE_EXISTS"
    WAREHOUSE_INACTIVE = "WAREHOUSE_INACTIVE"
    WAREHOUSE_HAS_STOCK = "WAREHOUSE_HAS_STOCK"

    # ---------------- PRODUCTS ----------------
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_SKU_EXISTS = "PRODUCT_SKU_EXISTS"
    PRODUCT_BARCODE_EXISTS = "PRODUCT_BARCODE_EXISTS"
    PRODUCT_INACTIVE = "PRODUCT_INACTIVE"
    PRODUCT_HAS_STOCK = "PRODUCT_HAS_STOCK"

    # ---------------- INVENTORY ----------------
    INVENTORY_NOT_FOUND = "INVENTORY_NOT_FOUND"
    INVENTORY_EXISTS = "INVENTORY_EXISTS"
    INVENTORY_HAS_RESERVATIONS = "INVENTORY_HAS_RESERVATIONS"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_MOVEMENT = "INVALID_MOVEMENT"

    # ---------------- ADJUSTMENTS ----------------
    STOCK_ADJUSTMENT_NOT_FOUND = "STOCK_ADJUSTMENT_NOT_FOUND"

    # ---------------- TRANSFERS ----------------
    STOCK_TRANSFER_NOT_FOUND = "STOCK_TRANSFER_NOT_FOUND"
    STOCK_TRANSFER_INVALID_LOCATION = "STOCK_TRANSFER_INVALID_LOCATION"
    STOCK_TRANSFER_INVALID_PRODUCT = "STOCK_TRANSFER_INVALID_PRODUCT"
    STOCK_TRANSFER_INSUFFICIENT_STOCK = "STOCK_TRANSFER_INSUFFICIENT_STOCK"
    STOCK_TRANSFER_DUPLICATE = "STOCK_TRANSFER_DUPLICATE"
    STOCK_TRANSFER_INVALID_STATUS = "STOCK_TRANSFER_INVALID_STATUS"

    # ---------------- STOCK MOVEMENTS ----------------
    STOCK_MOVEMENT_NOT_FOUND = "STOCK_MOVEMENT_NOT_FOUND"
    STOCK_MOVEMENT_INVALID_STATUS = "STOCK_MOVEMENT_INVALID_STATUS"

    # ---------------- SUPPLIERS ----------------
    SUPPLIER_NOT_FOUND = "SUPPLIER_NOT_FOUND"
    SUPPLIER_EMAIL_EXISTS = "SUPPLIER_EMAIL_EXISTS"
    SUPPLIER_HAS_ACTIVE_ORDERS = "SUPPLIER_HAS_ACTIVE_ORDERS"
    SUPPLIER_VERSION_CONFLICT = "SUPPLIER_VERSION_CONFLICT"

    # ---------------- CUSTOMERS ----------------
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    CUSTOMER_HAS_ACTIVE_ORDERS = "CUSTOMER_HAS_ACTIVE_ORDERS"
    CUSTOMER_HAS_BALANCE = "CUSTOMER_HAS_BALANCE"
    CUSTOMER_VERSION_CONFLICT = "CUSTOMER_VERSION_CONFLICT"

    # ---------------- CONTACT LOGS ----------------
    CONTACT_LOG_NOT_FOUND = "CONTACT_LOG_NOT_FOUND"
    CONTACTABLE_NOT_FOUND = "CONTACTABLE_NOT_FOUND"

    # ---------------- PURCHASE ORDERS ----------------
    PURCHASE_ORDER_NOT_FOUND = "PURCHASE_ORDER_NOT_FOUND"
    PURCHASE_ORDER_INVALID_STATUS = "PURCHASE_ORDER_INVALID_STATUS"
    PURCHASE_ORDER_EMPTY_ITEMS = "PURCHASE_ORDER_EMPTY_ITEMS"
    PURCHASE_ORDER_ITEM_NOT_FOUND = "PURCHASE_ORDER_ITEM_NOT_FOUND"
    PURCHASE_ORDER_INVALID_RECEIPT = "PURCHASE_ORDER_INVALID_RECEIPT"

    # ---------------- SALES ORDERS ----------------
    SALES_ORDER_NOT_FOUND = "SALES_ORDER_NOT_FOUND"
    SALES_ORDER_INVALID_STATUS = "SALES_ORDER_INVALID_STATUS"
    SALES_ORDER_EMPTY_ITEMS = "SALES_ORDER_EMPTY_ITEMS"
    SALES_ORDER_ITEM_NOT_FOUND = "SALES_ORDER_ITEM_NOT_FOUND"
    SALES_ORDER_INVALID_FULFILLMENT = "SALES_ORDER_INVALID_FULFILLMENT"
