from app.models.enums.purchase_order_status import PurchaseOrderStatus
from app.models.enums.sales_order_status import SalesOrderStatus
from app.models.masters.contact_log_models import ContactLog
from app.models.purchasing.purchase_order_models import PurchaseOrder
from app.models.sales.sales_order_models import SalesOrder
from app.models.users.user_models import User
from app.policies import contact_log_policy, purchase_order_policy, sales_order_policy


def make_user(user_id=1, role="purchasing", active=True):
    return User(id=user_id, username=f"u{user_id}@example.com", role=role, is_active=active)


def make_po(status=PurchaseOrderStatus.draft, owner=1):
    return PurchaseOrder(status=status, created_by_id=owner)


def make_so(status=SalesOrderStatus.draft, owner=1):
    return SalesOrder(status=status, created_by_id=owner)


# -------------------------------------------------------------------
# purchase orders
# -------------------------------------------------------------------
def test_po_owner_can_update_draft_only():
    owner = make_user(1)
    assert purchase_order_policy.can_update(owner, make_po())
    assert not purchase_order_policy.can_update(owner, make_po(PurchaseOrderStatus.pending_approval))


def test_po_non_owner_cannot_update_draft():
    assert not purchase_order_policy.can_update(make_user(2), make_po(owner=1))


def test_po_admin_can_update_pending_approval():
    admin = make_user(9, role="admin")
    assert purchase_order_policy.can_update(admin, make_po(PurchaseOrderStatus.pending_approval))
    assert not purchase_order_policy.can_update(admin, make_po(PurchaseOrderStatus.approved))


def test_po_delete_requires_owner_and_draft():
    assert purchase_order_policy.can_delete(make_user(1), make_po())
    assert not purchase_order_policy.can_delete(make_user(2), make_po())
    assert not purchase_order_policy.can_delete(make_user(1), make_po(PurchaseOrderStatus.approved))


def test_po_items_locked_once_sent():
    admin = make_user(9, role="admin")
    assert purchase_order_policy.can_manage_items(admin, make_po(PurchaseOrderStatus.approved))
    assert not purchase_order_policy.can_manage_items(admin, make_po(PurchaseOrderStatus.sent_to_supplier))


def test_po_receive_follows_status():
    user = make_user(3, role="inventory")
    assert purchase_order_policy.can_receive(user, make_po(PurchaseOrderStatus.sent_to_supplier))
    assert purchase_order_policy.can_receive(user, make_po(PurchaseOrderStatus.partially_received))
    assert not purchase_order_policy.can_receive(user, make_po(PurchaseOrderStatus.approved))


def test_po_cancel_blocked_when_terminal():
    user = make_user()
    for status in (PurchaseOrderStatus.fully_received, PurchaseOrderStatus.closed, PurchaseOrderStatus.cancelled):
        assert not purchase_order_policy.can_cancel(user, make_po(status))
    assert purchase_order_policy.can_cancel(user, make_po(PurchaseOrderStatus.sent_to_supplier))


# -------------------------------------------------------------------
# sales orders
# -------------------------------------------------------------------
def test_so_update_rules():
    owner = make_user(1, role="sales")
    admin = make_user(9, role="admin")
    assert sales_order_policy.can_update(owner, make_so())
    assert not sales_order_policy.can_update(make_user(2, role="sales"), make_so())
    assert sales_order_policy.can_update(admin, make_so(SalesOrderStatus.pending_approval))
    assert not sales_order_policy.can_update(admin, make_so(SalesOrderStatus.confirmed))


def test_so_confirm_allowed_from_draft_or_approved():
    user = make_user(role="sales")
    assert sales_order_policy.can_confirm(user, make_so(SalesOrderStatus.draft))
    assert sales_order_policy.can_confirm(user, make_so(SalesOrderStatus.approved))
    assert not sales_order_policy.can_confirm(user, make_so(SalesOrderStatus.pending_approval))


def test_so_cannot_cancel_delivered():
    user = make_user(role="manager")
    assert not sales_order_policy.can_cancel(user, make_so(SalesOrderStatus.delivered))
    assert sales_order_policy.can_cancel(user, make_so(SalesOrderStatus.shipped))


def test_so_restore_and_force_delete_never_allowed():
    admin = make_user(role="admin")
    assert not sales_order_policy.can_restore(admin, make_so())
    assert not sales_order_policy.can_force_delete(admin, make_so())


# -------------------------------------------------------------------
# contact logs
# -------------------------------------------------------------------
def test_contact_log_author_or_admin_may_edit():
    log = ContactLog(contact_person_id=1)
    assert contact_log_policy.can_update(make_user(1, role="sales"), log)
    assert contact_log_policy.can_delete(make_user(9, role="admin"), log)
    assert not contact_log_policy.can_update(make_user(2, role="sales"), log)
    assert not contact_log_policy.can_delete(make_user(2, role="sales"), log)
