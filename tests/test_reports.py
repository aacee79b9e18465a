from datetime import timedelta

import pytest

from app.api.reports.services.service_reports import ReportService
from app.core.exceptions import ValidationError
from app.utils.database_utils import today_local


def line(product_id, quantity=1):
    return {"product_id": product_id, "quantity": quantity}


@pytest.fixture
def report_service(coordinator):
    return ReportService(coordinator)


@pytest.fixture
def sales(order_service, pad_thai, tom_yum, iced_tea):
    """Dois pedidos pagos, um cancelado e um aberto."""
    # mesa 1: 2198 pagos com 10%, chá estornado
    first = order_service.create_order(1, [line(pad_thai, 2), line(iced_tea)])
    first = order_service.confirm_order(first.id)
    order_service.void_item(first.id, first.items[1].id, "acabou o gelo")
    order_service.checkout(first.id, "PERCENT", 10)

    # mesa 2: 19000 com 1000 fixo
    second = order_service.create_order(2, [line(tom_yum), line(iced_tea, 2)])
    order_service.confirm_order(second.id)
    order_service.checkout(second.id, "FIXED", 1000)

    cancelled = order_service.create_order(3, [line(pad_thai)])
    order_service.cancel_order(cancelled.id)

    order_service.create_order(4, [line(pad_thai)])
    return {"pad_thai": pad_thai, "tom_yum": tom_yum, "iced_tea": iced_tea}


def test_sales_report(report_service, sales):
    report = report_service.sales_report()
    assert report.summary.total_orders == 2
    assert report.summary.total_sales == "21198"
    assert report.summary.total_discount == "1219"
    assert report.summary.net_sales == "19979"
    assert report.summary.average_order_value == "9989"

    assert len(report.daily_breakdown) == 1
    day = report.daily_breakdown[0]
    assert day.date == today_local()
    assert (day.order_count, day.net_sales) == (2, "19979")


def test_sales_report_date_filter(report_service, sales):
    tomorrow = today_local() + timedelta(days=1)
    empty = report_service.sales_report(tomorrow, tomorrow)
    assert empty.summary.total_orders == 0
    assert empty.summary.average_order_value == "0"
    assert empty.daily_breakdown == []

    today = report_service.sales_report(today_local(), today_local())
    assert today.summary.total_orders == 2


def test_invalid_date_range(report_service):
    with pytest.raises(ValidationError):
        report_service.sales_report(today_local(), today_local() - timedelta(days=1))


def test_category_breakdown(report_service, sales):
    rows = report_service.category_breakdown()
    assert [(r.category, r.quantity, r.revenue) for r in rows] == [
        ("FOOD", 3, "12198"),
        ("DRINK", 2, "9000"),
    ]


def test_top_products(report_service, sales):
    rows = report_service.top_products()
    assert [(r.product_id, r.quantity, r.revenue) for r in rows] == [
        (sales["iced_tea"], 2, "9000"),
        (sales["pad_thai"], 2, "2198"),
        (sales["tom_yum"], 1, "10000"),
    ]
    assert report_service.top_products(limit=1)[0].product_name == "Thai Iced Tea"


@pytest.mark.parametrize("limit", [0, 101])
def test_top_products_limit(report_service, limit):
    with pytest.raises(ValidationError):
        report_service.top_products(limit=limit)


def test_peak_hours(report_service, sales):
    rows = report_service.peak_hours()
    assert sum(r.order_count for r in rows) == 2
    assert all(0 <= r.hour <= 23 for r in rows)


def test_table_performance(report_service, sales):
    rows = report_service.table_performance()
    assert [(r.table_number, r.order_count, r.revenue) for r in rows] == [
        (2, 1, "18000"),
        (1, 1, "1979"),
    ]


def test_void_analysis(report_service, sales):
    rows = report_service.void_analysis()
    assert [(r.product_id, r.void_count, r.quantity, r.amount) for r in rows] == [
        (sales["iced_tea"], 1, 1, "4500"),
    ]


def test_dashboard(report_service, sales):
    dashboard = report_service.dashboard()
    assert dashboard.sales_report.summary.total_orders == 2
    assert dashboard.today_summary.paid_orders == 2
    assert dashboard.today_summary.revenue == "19979"
    assert dashboard.today_summary.open_orders == 1
    assert dashboard.today_summary.confirmed_orders == 0
    assert len(dashboard.top_products) == 3


def test_empty_dashboard(report_service):
    dashboard = report_service.dashboard()
    assert dashboard.sales_report.summary.net_sales == "0"
    assert dashboard.category_breakdown == []
    assert dashboard.today_summary.paid_orders == 0
