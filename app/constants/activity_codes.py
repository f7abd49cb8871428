from enum import Enum


class ActivityCode(str, Enum):
    # auth
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    # users
    CREATE_USER = "CREATE_USER"
    UPDATE_USER_ROLE = "UPDATE_USER_ROLE"
    UPDATE_USER_PASSWORD = "UPDATE_USER_PASSWORD"
    DEACTIVATE_USER = "DEACTIVATE_USER"
    REACTIVATE_USER = "REACTIVATE_USER"

    # warehouses
    CREATE_WAREHOUSE = "CREATE_WAREHOUSE"
    UPDATE_WAREHOUSE = "UPDATE_WAREHOUSE"
    DEACTIVATE_WAREHOUSE = "DEACTIVATE_WAREHOUSE"
    REACTIVATE_WAREHOUSE = "REACTIVATE_WAREHOUSE"
    DELETE_WAREHOUSE = "DELETE_WAREHOUSE"

    # products
    CREATE_PRODUCT = "CREATE_PRODUCT"
    UPDATE_PRODUCT = "UPDATE_PRODUCT"
    DEACTIVATE_PRODUCT = "DEACTIVATE_PRODUCT"
    REACTIVATE_PRODUCT = "REACTIVATE_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"

    # inventory
    CREATE_INVENTORY = "CREATE_INVENTORY"
    UPDATE_INVENTORY = "UPDATE_INVENTORY"
    DELETE_INVENTORY = "DELETE_INVENTORY"
    RESERVE_INVENTORY = "RESERVE_INVENTORY"
    RELEASE_INVENTORY = "RELEASE_INVENTORY"
    INVENTORY_MOVEMENT = "INVENTORY_MOVEMENT"

    # stock adjustments
    CREATE_STOCK_ADJUSTMENT = "CREATE_STOCK_ADJUSTMENT"

    # stock transfers
    CREATE_STOCK_TRANSFER = "CREATE_STOCK_TRANSFER"
    APPROVE_STOCK_TRANSFER = "APPROVE_STOCK_TRANSFER"
    SHIP_STOCK_TRANSFER = "SHIP_STOCK_TRANSFER"
    COMPLETE_STOCK_TRANSFER = "COMPLETE_STOCK_TRANSFER"
    CANCEL_STOCK_TRANSFER = "CANCEL_STOCK_TRANSFER"

    # stock movements
    CREATE_STOCK_MOVEMENT = "CREATE_STOCK_MOVEMENT"
    APPROVE_STOCK_MOVEMENT = "APPROVE_STOCK_MOVEMENT"
    REJECT_STOCK_MOVEMENT = "REJECT_STOCK_MOVEMENT"

    # suppliers
    CREATE_SUPPLIER = "CREATE_SUPPLIER"
    UPDATE_SUPPLIER = "UPDATE_SUPPLIER"
    CHANGE_SUPPLIER_STATUS = "CHANGE_SUPPLIER_STATUS"
    DELETE_SUPPLIER = "DELETE_SUPPLIER"

    # customers
    CREATE_CUSTOMER = "CREATE_CUSTOMER"
    UPDATE_CUSTOMER = "UPDATE_CUSTOMER"
    CHANGE_CUSTOMER_STATUS = "CHANGE_CUSTOMER_STATUS"
    DELETE_CUSTOMER = "DELETE_CUSTOMER"

    # contact logs
    CREATE_CONTACT_LOG = "CREATE_CONTACT_LOG"
    UPDATE_CONTACT_LOG = "UPDATE_CONTACT_LOG"
    DELETE_CONTACT_LOG = "DELETE_CONTACT_LOG"
    COMPLETE_FOLLOW_UP = "COMPLETE_FOLLOW_UP"

    # purchase orders
    CREATE_PURCHASE_ORDER = "CREATE_PURCHASE_ORDER"
    UPDATE_PURCHASE_ORDER = "UPDATE_PURCHASE_ORDER"
    DELETE_PURCHASE_ORDER = "DELETE_PURCHASE_ORDER"
    SUBMIT_PURCHASE_ORDER = "SUBMIT_PURCHASE_ORDER"
    APPROVE_PURCHASE_ORDER = "APPROVE_PURCHASE_ORDER"
    SEND_PURCHASE_ORDER = "SEND_PURCHASE_ORDER"
    RECEIVE_PURCHASE_ORDER = "RECEIVE_PURCHASE_ORDER"
    CANCEL_PURCHASE_ORDER = "CANCEL_PURCHASE_ORDER"
    CLOSE_PURCHASE_ORDER = "CLOSE_PURCHASE_ORDER"
    UPDATE_PURCHASE_ORDER_ITEMS = "UPDATE_PURCHASE_ORDER_ITEMS"

    # sales orders
    CREATE_SALES_ORDER = "CREATE_SALES_ORDER"
    UPDATE_SALES_ORDER = "UPDATE_SALES_ORDER"
    DELETE_SALES_ORDER = "DELETE_SALES_ORDER"
    SUBMIT_SALES_ORDER = "SUBMIT_SALES_ORDER"
    APPROVE_SALES_ORDER = "APPROVE_SALES_ORDER"
    CONFIRM_SALES_ORDER = "CONFIRM_SALES_ORDER"
    FULFILL_SALES_ORDER = "FULFILL_SALES_ORDER"
    SHIP_SALES_ORDER = "SHIP_SALES_ORDER"
    DELIVER_SALES_ORDER = "DELIVER_SALES_ORDER"
    CANCEL_SALES_ORDER = "CANCEL_SALES_ORDER"
    UPDATE_SALES_ORDER_ITEMS = "UPDATE_SALES_ORDER_ITEMS"
    UPDATE_PAYMENT_STATUS = "UPDATE_PAYMENT_STATUS"
    FLAG_PAYMENT_OVERDUE = "FLAG_PAYMENT_OVERDUE"
