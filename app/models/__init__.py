# Users and audit
from app.models.users.user_models import User, RefreshToken
from app.models.support.activity_models import UserActivity

# Masters
from app.models.masters.warehouse_models import Warehouse
from app.models.masters.product_models import Product
from app.models.masters.supplier_models import Supplier
from app.models.masters.customer_models import Customer
from app.models.masters.contact_log_models import ContactLog

# Inventory
from app.models.inventory.inventory_models import Inventory
from app.models.inventory.inventory_movement_models import InventoryMovement
from app.models.inventory.stock_adjustment_models import StockAdjustment
from app.models.inventory.stock_transfer_models import StockTransfer
from app.models.inventory.stock_movement_models import StockMovement

# Orders
from app.models.purchasing.purchase_order_models import PurchaseOrder, PurchaseOrderItem
from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
