# app/routers/__init__.py

from .users.user_router import router as user_router

from .auth.auth_router import router as auth_router
from .auth.activity_router import router as activity_router

from .masters.warehouse_router import router as warehouse_router
from .masters.product_router import router as product_router
from .masters.supplier_router import router as supplier_router
from .masters.customer_router import router as customer_router
from .masters.contact_log_router import router as contact_log_router

from .inventory.inventory_router import router as inventory_router
from .inventory.inventory_movement_router import router as inventory_movement_router
from .inventory.stock_adjustment_router import router as stock_adjustment_router
from .inventory.stock_transfer_router import router as stock_transfer_router
from .inventory.stock_movement_router import router as stock_movement_router

from .purchasing.purchase_order_router import router as purchase_order_router
from .sales.sales_order_router import router as sales_order_router


__all__ = [
"user_router",

"auth_router",
"activity_router",

"warehouse_router",
"product_router",
"supplier_router",
"customer_router",
"contact_log_router",

"inventory_router",
"inventory_movement_router",
"stock_adjustment_router",
"stock_transfer_router",
"stock_movement_router",

"purchase_order_router",
"sales_order_router",
]
