from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.models.enums.party import PaymentTerms
from app.models.enums.purchase_order_status import PurchaseOrderItemStatus, PurchaseOrderStatus
from app.models.enums.sales_order_status import SalesOrderItemStatus, SalesOrderStatus
from app.models.masters.contact_log_models import format_duration
from app.models.purchasing.purchase_order_models import PurchaseOrder, PurchaseOrderItem
from app.models.sales.sales_order_models import SalesOrder, SalesOrderItem
from app.services.sales.sales_order_service import payment_due_date
from app.utils.decimal_utils import percentage, to_decimal, to_rate


def po_item(qty=10, cost="12.50", discount="0", received=0):
    item = PurchaseOrderItem(
        quantity_ordered=qty,
        quantity_received=received,
        quantity_rejected=0,
        unit_cost=Decimal(cost),
        discount_percentage=Decimal(discount),
        status=PurchaseOrderItemStatus.pending,
    )
    item.calculate_line_totals()
    return item


def so_item(qty=4, price="20.00", discount="0"):
    item = SalesOrderItem(
        quantity_ordered=qty,
        quantity_allocated=qty,
        quantity_fulfilled=0,
        quantity_shipped=0,
        quantity_backordered=0,
        unit_price=Decimal(price),
        discount_percentage=Decimal(discount),
        status=SalesOrderItemStatus.allocated,
    )
    item.calculate_line_totals()
    return item


# -------------------------------------------------------------------
# money helpers
# -------------------------------------------------------------------
def test_to_decimal_rounds_half_up():
    assert to_decimal("2.345") == Decimal("2.35")
    assert to_decimal(None) == Decimal("0.00")


def test_to_rate_keeps_four_places():
    assert to_rate("0.08255") == Decimal("0.0826")


def test_percentage_of_zero_whole():
    assert percentage(3, 0) == 0.0
    assert percentage(1, 3) == 33.33


def test_format_duration():
    assert format_duration(None) == "N/A"
    assert format_duration(45) == "45m"
    assert format_duration(125) == "2h 5m"


# -------------------------------------------------------------------
# purchase order math
# -------------------------------------------------------------------
def test_po_line_totals_apply_discount():
    item = po_item(qty=10, cost="12.50", discount="10")
    assert item.line_total == Decimal("125.00")
    assert item.discount_amount == Decimal("12.50")
    assert item.final_line_total == Decimal("112.50")


def test_po_header_totals():
    po = PurchaseOrder(
        status=PurchaseOrderStatus.draft,
        tax_rate=Decimal("0.1"),
        shipping_cost=Decimal("15"),
        discount_amount=Decimal("5"),
    )
    po.items = [po_item(qty=10, cost="10.00"), po_item(qty=2, cost="50.00")]
    po.recalculate_totals()

    assert po.subtotal == Decimal("200.00")
    assert po.tax_amount == Decimal("20.00")
    assert po.total_amount == Decimal("230.00")


def test_po_receiving_status_progression():
    po = PurchaseOrder(status=PurchaseOrderStatus.sent_to_supplier)
    item = po_item(qty=10)
    po.items = [item]

    item.receive_quantity(4)
    po.update_receiving_status()
    assert po.status == PurchaseOrderStatus.partially_received
    assert item.status == PurchaseOrderItemStatus.partially_received
    assert po.receiving_progress == 40.0

    item.receive_quantity(6)
    po.update_receiving_status()
    assert po.status == PurchaseOrderStatus.fully_received
    assert po.received_at is not None


def test_po_item_rejects_over_receipt():
    item = po_item(qty=5, received=4)
    assert not item.can_receive_quantity(2)
    with pytest.raises(ValueError):
        item.receive_quantity(2)


def test_po_overdue_ignores_terminal_orders():
    yesterday = date.today() - timedelta(days=1)
    assert PurchaseOrder(status=PurchaseOrderStatus.approved, expected_delivery_date=yesterday).is_overdue()
    assert not PurchaseOrder(status=PurchaseOrderStatus.closed, expected_delivery_date=yesterday).is_overdue()


# -------------------------------------------------------------------
# sales order math
# -------------------------------------------------------------------
def test_so_fulfillment_moves_status_and_reservation():
    so = SalesOrder(status=SalesOrderStatus.confirmed)
    item = so_item(qty=4)
    so.items = [item]

    item.fulfill_quantity(3)
    so.update_fulfillment_status()
    assert item.quantity_allocated == 1
    assert item.status == SalesOrderItemStatus.partially_fulfilled
    assert so.status == SalesOrderStatus.partially_fulfilled

    item.fulfill_quantity(1)
    so.update_fulfillment_status()
    assert so.status == SalesOrderStatus.fully_fulfilled
    assert so.fulfilled_at is not None
    assert so.fulfillment_progress == 100.0


def test_so_item_cannot_overfulfill():
    item = so_item(qty=2)
    assert not item.can_fulfill_quantity(3)
    assert not item.can_fulfill_quantity(0)


def test_so_guards():
    empty = SalesOrder(status=SalesOrderStatus.draft)
    empty.items = []
    assert not empty.can_be_confirmed()

    so = SalesOrder(status=SalesOrderStatus.approved)
    so.items = [so_item()]
    assert so.can_be_confirmed()
    assert not so.can_be_shipped()
    assert so.can_be_cancelled()

    so.status = SalesOrderStatus.delivered
    assert not so.can_be_cancelled()


def test_so_delivery_date_prefers_promised():
    so = SalesOrder(
        status=SalesOrderStatus.confirmed,
        requested_delivery_date=date(2026, 1, 10),
        promised_delivery_date=date(2026, 1, 12),
    )
    assert so.delivery_date == date(2026, 1, 12)
    assert so.is_overdue(today=date(2026, 1, 13))
    assert not so.is_overdue(today=date(2026, 1, 12))


@pytest.mark.parametrize(
    "terms, days",
    [
        (PaymentTerms.cod, 0),
        (PaymentTerms.prepaid, 0),
        (PaymentTerms.net_15, 15),
        (PaymentTerms.net_60, 60),
        (None, 30),
    ],
)
def test_payment_due_date(terms, days):
    delivered = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert payment_due_date(delivered, terms) == delivered + timedelta(days=days)


def test_payment_due_date_accepts_naive_timestamps():
    due = payment_due_date(datetime(2026, 3, 1), PaymentTerms.net_15)
    assert due.tzinfo is not None
