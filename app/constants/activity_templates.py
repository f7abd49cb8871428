from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- AUTH ----------------
    ActivityCode.LOGIN:
        "{actor_role} ({actor_email}) logged in",

    ActivityCode.LOGOUT:
        "{actor_role} ({actor_email}) logged out",

    # ---------------- USERS ----------------
    ActivityCode.CREATE_USER:
        "{actor_role} ({actor_email}) created user {target_email} with role {target_role}",

    ActivityCode.UPDATE_USER_ROLE:
        "{actor_role} ({actor_email}) changed role of {target_email} to {target_role}",

    ActivityCode.UPDATE_USER_PASSWORD:
        "{actor_role} ({actor_email}) reset password for user {target_email}",

    ActivityCode.DEACTIVATE_USER:
        "{actor_role} ({actor_email}) deactivated user {target_email}",

    ActivityCode.REACTIVATE_USER:
        "{actor_role} ({actor_email}) reactivated user {target_email}",

    # ---------------- WAREHOUSES ----------------
    ActivityCode.CREATE_WAREHOUSE:
        "{actor_role} ({actor_email}) created warehouse {target_name} ({warehouse_code})",

    ActivityCode.UPDATE_WAREHOUSE:
        "{actor_role} ({actor_email}) updated warehouse {target_name}: {changes}",

    ActivityCode.DEACTIVATE_WAREHOUSE:
        "{actor_role} ({actor_email}) deactivated warehouse {target_name}",

    ActivityCode.REACTIVATE_WAREHOUSE:
        "{actor_role} ({actor_email}) reactivated warehouse {target_name}",

    ActivityCode.DELETE_WAREHOUSE:
        "{actor_role} ({actor_email}) deleted warehouse {target_name}",

    # ---------------- PRODUCTS ----------------
    ActivityCode.CREATE_PRODUCT:
        "{actor_role} ({actor_email}) created product {target_name} ({sku})",

    ActivityCode.UPDATE_PRODUCT:
        "{actor_role} ({actor_email}) updated product {target_name}: {changes}",

    ActivityCode.DEACTIVATE_PRODUCT:
        "{actor_role} ({actor_email}) deactivated product {target_name}",

    ActivityCode.REACTIVATE_PRODUCT:
        "{actor_role} ({actor_email}) reactivated product {target_name}",

    ActivityCode.DELETE_PRODUCT:
        "{actor_role} ({actor_email}) deleted product {target_name}",

    # ---------------- INVENTORY ----------------
    ActivityCode.CREATE_INVENTORY:
        "{actor_role} ({actor_email}) created inventory record for {target_name} at {warehouse}",

    ActivityCode.UPDATE_INVENTORY:
        "{actor_role} ({actor_email}) updated inventory record {target_name}: {changes}",

    ActivityCode.DELETE_INVENTORY:
        "{actor_role} ({actor_email}) deleted inventory record {target_name}",

    ActivityCode.RESERVE_INVENTORY:
        "{actor_role} ({actor_email}) reserved {quantity} units of {target_name}",

    ActivityCode.RELEASE_INVENTORY:
        "{actor_role} ({actor_email}) released {quantity} reserved units of {target_name}",

    ActivityCode.INVENTORY_MOVEMENT:
        "{actor_role} ({actor_email}) performed inventory movement "
        "{movement_type} of {quantity_change} units "
        "for product {product_id} at warehouse {warehouse_id} "
        "(ref: {reference_type}:{reference_id})",

    # ---------------- STOCK ADJUSTMENTS ----------------
    ActivityCode.CREATE_STOCK_ADJUSTMENT:
        "{actor_role} ({actor_email}) adjusted stock {target_name} "
        "({adjustment_type} {quantity}, reason {reason})",

    # ---------------- STOCK TRANSFERS ----------------
    ActivityCode.CREATE_STOCK_TRANSFER:
        "{actor_role} ({actor_email}) created stock transfer {target_name}",
    ActivityCode.APPROVE_STOCK_TRANSFER:
        "{actor_role} ({actor_email}) approved stock transfer {target_name}",
    ActivityCode.SHIP_STOCK_TRANSFER:
        "{actor_role} ({actor_email}) shipped stock transfer {target_name}",
    ActivityCode.COMPLETE_STOCK_TRANSFER:
        "{actor_role} ({actor_email}) completed stock transfer {target_name}",
    ActivityCode.CANCEL_STOCK_TRANSFER:
        "{actor_role} ({actor_email}) cancelled stock transfer {target_name}: {reason}",

    # ---------------- STOCK MOVEMENTS ----------------
    ActivityCode.CREATE_STOCK_MOVEMENT:
        "{actor_role} ({actor_email}) recorded stock movement {target_name} ({status})",
    ActivityCode.APPROVE_STOCK_MOVEMENT:
        "{actor_role} ({actor_email}) approved stock movement {target_name}",
    ActivityCode.REJECT_STOCK_MOVEMENT:
        "{actor_role} ({actor_email}) rejected stock movement {target_name}: {reason}",

    # ---------------- SUPPLIERS ----------------
    ActivityCode.CREATE_SUPPLIER:
        "{actor_role} ({actor_email}) created supplier {target_name}",

    ActivityCode.UPDATE_SUPPLIER:
        "{actor_role} ({actor_email}) updated supplier {target_name}: {changes}",

    ActivityCode.CHANGE_SUPPLIER_STATUS:
        "{actor_role} ({actor_email}) changed supplier {target_name} status to {status}",

    ActivityCode.DELETE_SUPPLIER:
        "{actor_role} ({actor_email}) deleted supplier {target_name}",

    # ---------------- CUSTOMERS ----------------
    ActivityCode.CREATE_CUSTOMER:
        "{actor_role} ({actor_email}) created customer {target_name}",

    ActivityCode.UPDATE_CUSTOMER:
        "{actor_role} ({actor_email}) updated customer {target_name}: {changes}",

    ActivityCode.CHANGE_CUSTOMER_STATUS:
        "{actor_role} ({actor_email}) changed customer {target_name} status to {status}",

    ActivityCode.DELETE_CUSTOMER:
        "{actor_role} ({actor_email}) deleted customer {target_name}",

    # ---------------- CONTACT LOGS ----------------
    ActivityCode.CREATE_CONTACT_LOG:
        "{actor_role} ({actor_email}) logged {contact_type} with {target_name}: {subject}",
    ActivityCode.UPDATE_CONTACT_LOG:
        "{actor_role} ({actor_email}) updated contact log #{target_id}: {changes}",
    ActivityCode.DELETE_CONTACT_LOG:
        "{actor_role} ({actor_email}) deleted contact log #{target_id}",
    ActivityCode.COMPLETE_FOLLOW_UP:
        "{actor_role} ({actor_email}) completed follow-up on contact log #{target_id}",

    # ---------------- PURCHASE ORDERS ----------------
    ActivityCode.CREATE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) created purchase order {target_name} for {supplier}",
    ActivityCode.UPDATE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) updated purchase order {target_name}: {changes}",
    ActivityCode.DELETE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) deleted purchase order {target_name}",
    ActivityCode.SUBMIT_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) submitted purchase order {target_name} for approval",
    ActivityCode.APPROVE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) approved purchase order {target_name}",
    ActivityCode.SEND_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) sent purchase order {target_name} to supplier",
    ActivityCode.RECEIVE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) received {quantity} units on purchase order "
        "{target_name} (status {status})",
    ActivityCode.CANCEL_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) cancelled purchase order {target_name}: {reason}",
    ActivityCode.CLOSE_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) closed purchase order {target_name}",
    ActivityCode.UPDATE_PURCHASE_ORDER_ITEMS:
        "{actor_role} ({actor_email}) {action} item on purchase order {target_name}",

    # ---------------- SALES ORDERS ----------------
    ActivityCode.CREATE_SALES_ORDER:
        "{actor_role} ({actor_email}) created sales order {target_name} for {customer}",
    ActivityCode.UPDATE_SALES_ORDER:
        "{actor_role} ({actor_email}) updated sales order {target_name}: {changes}",
    ActivityCode.DELETE_SALES_ORDER:
        "{actor_role} ({actor_email}) deleted sales order {target_name}",
    ActivityCode.SUBMIT_SALES_ORDER:
        "{actor_role} ({actor_email}) submitted sales order {target_name} for approval",
    ActivityCode.APPROVE_SALES_ORDER:
        "{actor_role} ({actor_email}) approved sales order {target_name}",
    ActivityCode.CONFIRM_SALES_ORDER:
        "{actor_role} ({actor_email}) confirmed sales order {target_name} and reserved stock",
    ActivityCode.FULFILL_SALES_ORDER:
        "{actor_role} ({actor_email}) fulfilled {quantity} units on sales order "
        "{target_name} (status {status})",
    ActivityCode.SHIP_SALES_ORDER:
        "{actor_role} ({actor_email}) shipped sales order {target_name} via {carrier}",
    ActivityCode.DELIVER_SALES_ORDER:
        "{actor_role} ({actor_email}) marked sales order {target_name} as delivered",
    ActivityCode.CANCEL_SALES_ORDER:
        "{actor_role} ({actor_email}) cancelled sales order {target_name}: {reason}",
    ActivityCode.UPDATE_SALES_ORDER_ITEMS:
        "{actor_role} ({actor_email}) {action} item on sales order {target_name}",
    ActivityCode.UPDATE_PAYMENT_STATUS:
        "{actor_role} ({actor_email}) set payment of sales order {target_name} to {status}",
    ActivityCode.FLAG_PAYMENT_OVERDUE:
        "System flagged payment of sales order {target_name} as overdue",
}
