"""
Relatórios de vendas.

Somente leitura: cada método abre UMA transação read-only no
OrderLockCoordinator, então os agregados de um mesmo dashboard enxergam
o mesmo snapshot do banco. Vendas = pedidos PAID; valores são os totais
inteiros gravados no pedido, nunca recalculados aqui.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional

from app.api.orders.models.model_order import OrderStatus
from app.api.orders.services.service_calculation import to_money_string
from app.api.orders.services.service_order_query import validate_date_range
from app.api.reports.repositories.repo_reports import ReportRepository
from app.api.reports.schemas.schema_reports import (
    CategoryBreakdownItem,
    DailySales,
    DashboardResponse,
    DashboardSummary,
    PeakHourItem,
    SalesReportResponse,
    SalesSummary,
    TablePerformanceItem,
    TopProductItem,
    VoidAnalysisItem,
)
from app.core.exceptions import ValidationError
from app.database.order_lock import OrderLockCoordinator
from app.utils.database_utils import to_local, today_local
from app.utils.logger import logger

DEFAULT_TOP_PRODUCTS = 10
MAX_TOP_PRODUCTS = 100


def _average(total: int, count: int) -> int:
    return total // count if count else 0


class ReportService:
    def __init__(self, coordinator: OrderLockCoordinator):
        self.coordinator = coordinator

    def _read(self, fn):
        return self.coordinator.run_read_only(lambda session: fn(ReportRepository(session)))

    # ---------------- builders (recebem o repositório da transação) ----------------
    @staticmethod
    def _sales_report(repo: ReportRepository, start_date, end_date) -> SalesReportResponse:
        orders = repo.paid_orders(start_date, end_date)

        daily: "OrderedDict[date, Dict[str, int]]" = OrderedDict()
        total_sales = total_net = 0
        for order in orders:
            total_sales += order.subtotal
            total_net += order.grand_total
            day = to_local(order.created_at).date()
            bucket = daily.setdefault(day, {"count": 0, "sales": 0, "net": 0})
            bucket["count"] += 1
            bucket["sales"] += order.subtotal
            bucket["net"] += order.grand_total

        return SalesReportResponse(
            start_date=start_date,
            end_date=end_date,
            summary=SalesSummary(
                total_orders=len(orders),
                total_sales=to_money_string(total_sales),
                total_discount=to_money_string(total_sales - total_net),
                net_sales=to_money_string(total_net),
                average_order_value=to_money_string(_average(total_net, len(orders))),
            ),
            daily_breakdown=[
                DailySales(
                    date=day,
                    order_count=b["count"],
                    total_sales=to_money_string(b["sales"]),
                    total_discount=to_money_string(b["sales"] - b["net"]),
                    net_sales=to_money_string(b["net"]),
                )
                for day, b in sorted(daily.items())
            ],
        )

    @staticmethod
    def _category_breakdown(repo: ReportRepository, start_date, end_date) -> List[CategoryBreakdownItem]:
        return [
            CategoryBreakdownItem(category=r.category, quantity=r.quantity, revenue=to_money_string(r.revenue))
            for r in repo.category_totals(start_date, end_date)
        ]

    @staticmethod
    def _top_products(repo: ReportRepository, limit, start_date, end_date) -> List[TopProductItem]:
        return [
            TopProductItem(
                product_id=r.product_id,
                product_name=r.product_name,
                quantity=r.quantity,
                revenue=to_money_string(r.revenue),
                order_count=r.order_count,
            )
            for r in repo.product_totals(limit, start_date, end_date)
        ]

    @staticmethod
    def _peak_hours(repo: ReportRepository, start_date, end_date) -> List[PeakHourItem]:
        # agrupado em Python: a hora local depende do timezone configurado
        hours: Dict[int, Dict[str, int]] = {}
        for order in repo.paid_orders(start_date, end_date):
            hour = to_local(order.created_at).hour
            bucket = hours.setdefault(hour, {"count": 0, "revenue": 0})
            bucket["count"] += 1
            bucket["revenue"] += order.grand_total
        return [
            PeakHourItem(hour=h, order_count=b["count"], revenue=to_money_string(b["revenue"]))
            for h, b in sorted(hours.items(), key=lambda kv: (-kv[1]["count"], kv[0]))
        ]

    @staticmethod
    def _table_performance(repo: ReportRepository, start_date, end_date) -> List[TablePerformanceItem]:
        return [
            TablePerformanceItem(
                table_number=r.table_number,
                order_count=r.order_count,
                revenue=to_money_string(r.revenue),
                average_order_value=to_money_string(_average(r.revenue, r.order_count)),
            )
            for r in repo.table_totals(start_date, end_date)
        ]

    @staticmethod
    def _void_analysis(repo: ReportRepository, start_date, end_date) -> List[VoidAnalysisItem]:
        return [
            VoidAnalysisItem(
                product_id=r.product_id,
                product_name=r.product_name,
                void_count=r.void_count,
                quantity=r.quantity,
                amount=to_money_string(r.amount),
            )
            for r in repo.void_totals(start_date, end_date)
        ]

    @staticmethod
    def _dashboard_summary(repo: ReportRepository) -> DashboardSummary:
        today = today_local()
        paid_today = repo.paid_orders(today, today)
        counts = repo.status_counts()
        return DashboardSummary(
            date=today,
            paid_orders=len(paid_today),
            revenue=to_money_string(sum((o.grand_total for o in paid_today), 0)),
            open_orders=counts.get(OrderStatus.OPEN.value, 0),
            confirmed_orders=counts.get(OrderStatus.CONFIRMED.value, 0),
        )

    # ---------------- API ----------------
    def sales_report(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> SalesReportResponse:
        validate_date_range(start_date, end_date)
        return self._read(lambda repo: self._sales_report(repo, start_date, end_date))

    def category_breakdown(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        validate_date_range(start_date, end_date)
        return self._read(lambda repo: self._category_breakdown(repo, start_date, end_date))

    def top_products(
        self,
        limit: int = DEFAULT_TOP_PRODUCTS,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TopProductItem]:
        if not 1 <= limit <= MAX_TOP_PRODUCTS:
            raise ValidationError(f"O limite deve estar entre 1 e {MAX_TOP_PRODUCTS}.", field="limit")
        validate_date_range(start_date, end_date)
        return self._read(lambda repo: self._top_products(repo, limit, start_date, end_date))

    def peak_hours(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        validate_date_range(start_date, end_date)
        return self._read(lambda repo: self._peak_hours(repo, start_date, end_date))

    def table_performance(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        validate_date_range(start_date, end_date)
        return self._read(lambda repo: self._table_performance(repo, start_date, end_date))

    def void_analysis(self, start_date: Optional[date] = None, end_date: Optional[date] = None):
        validate_date_range(start_date, end_date)
        return self._read(lambda repo: self._void_analysis(repo, start_date, end_date))

    def dashboard_summary(self) -> DashboardSummary:
        return self._read(self._dashboard_summary)

    def dashboard(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> DashboardResponse:
        """Todos os agregados numa única transação (mesmo snapshot)."""
        validate_date_range(start_date, end_date)
        logger.info(f"[Relatorios] Dashboard - periodo={start_date}..{end_date}")

        def _build(repo: ReportRepository) -> DashboardResponse:
            return DashboardResponse(
                sales_report=self._sales_report(repo, start_date, end_date),
                category_breakdown=self._category_breakdown(repo, start_date, end_date),
                top_products=self._top_products(repo, DEFAULT_TOP_PRODUCTS, start_date, end_date),
                peak_hours=self._peak_hours(repo, start_date, end_date),
                table_performance=self._table_performance(repo, start_date, end_date),
                void_analysis=self._void_analysis(repo, start_date, end_date),
                today_summary=self._dashboard_summary(repo),
            )

        return self._read(_build)
