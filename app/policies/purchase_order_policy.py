# app/policies/purchase_order_policy.py
"""Authorization predicates for purchase orders.

Each function answers whether ``user`` may perform one action on ``po``.
Status gating lives on the model guards; ownership and role checks live here.
"""

from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.models.purchasing.purchase_order_models import PurchaseOrder
from app.models.users.user_models import User


def _is_owner(user: User, po: PurchaseOrder) -> bool:
    return po.created_by_id is not None and po.created_by_id == user.id


def can_view_any(user: User) -> bool:
    return user.is_active


def can_view(user: User, po: PurchaseOrder) -> bool:
    return user.is_active


def can_create(user: User) -> bool:
    return user.is_active


def can_update(user: User, po: PurchaseOrder) -> bool:
    if user.is_admin:
        return po.is_editable
    return po.status == PurchaseOrderStatus.draft and _is_owner(user, po)


def can_manage_items(user: User, po: PurchaseOrder) -> bool:
    return not po.items_locked() and (user.is_admin or _is_owner(user, po))


def can_delete(user: User, po: PurchaseOrder) -> bool:
    return po.status == PurchaseOrderStatus.draft and _is_owner(user, po)


def can_submit(user: User, po: PurchaseOrder) -> bool:
    return po.status == PurchaseOrderStatus.draft and (_is_owner(user, po) or user.is_admin)


def can_approve(user: User, po: PurchaseOrder) -> bool:
    return po.status == PurchaseOrderStatus.pending_approval


def can_send(user: User, po: PurchaseOrder) -> bool:
    return po.status == PurchaseOrderStatus.approved


def can_receive(user: User, po: PurchaseOrder) -> bool:
    return po.can_be_received()


def can_cancel(user: User, po: PurchaseOrder) -> bool:
    return po.can_be_cancelled()


def can_close(user: User, po: PurchaseOrder) -> bool:
    return po.can_be_closed()


def can_restore(user: User, po: PurchaseOrder) -> bool:
    return False


def can_force_delete(user: User, po: PurchaseOrder) -> bool:
    return False
