# app/policies/sales_order_policy.py
"""Authorization predicates for sales orders. Admins get wider edit rights."""

from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.sales.sales_order_models import SalesOrder
from app.models.users.user_models import User

S = SalesOrderStatus


def _is_owner(user: User, so: SalesOrder) -> bool:
    return so.created_by_id is not None and so.created_by_id == user.id


def can_view_any(user: User) -> bool:
    return user.is_active


def can_view(user: User, so: SalesOrder) -> bool:
    return user.is_active


def can_create(user: User) -> bool:
    return user.is_active


def can_update(user: User, so: SalesOrder) -> bool:
    if user.is_admin:
        return so.status in (S.draft, S.pending_approval)
    return so.status == S.draft and _is_owner(user, so)


def can_delete(user: User, so: SalesOrder) -> bool:
    if user.is_admin:
        return so.status == S.draft
    return so.status == S.draft and _is_owner(user, so)


def can_submit(user: User, so: SalesOrder) -> bool:
    return so.status == S.draft and (_is_owner(user, so) or user.is_admin)


def can_approve(user: User, so: SalesOrder) -> bool:
    return so.status == S.pending_approval


def can_confirm(user: User, so: SalesOrder) -> bool:
    return so.status in (S.approved, S.draft)


def can_fulfill(user: User, so: SalesOrder) -> bool:
    return so.status in (S.confirmed, S.partially_fulfilled)


def can_ship(user: User, so: SalesOrder) -> bool:
    return so.status == S.fully_fulfilled


def can_deliver(user: User, so: SalesOrder) -> bool:
    return so.status == S.shipped


def can_cancel(user: User, so: SalesOrder) -> bool:
    return so.status not in (S.delivered, S.closed, S.cancelled)


def can_restore(user: User, so: SalesOrder) -> bool:
    return False


def can_force_delete(user: User, so: SalesOrder) -> bool:
    return False
