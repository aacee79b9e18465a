from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.catalog.models.model_product import ProductModel
from app.api.orders.models.model_order import OrderModel, OrderStatus
from app.api.orders.models.model_order_item import OrderItemModel, OrderItemStatus
from app.api.orders.repositories.repo_orders import day_end_exclusive, day_start

UNCATEGORIZED = "UNCATEGORIZED"


@dataclass
class PaidOrderRow:
    id: int
    table_number: int
    subtotal: int
    grand_total: int
    created_at: datetime


@dataclass
class CategoryRow:
    category: str
    quantity: int
    revenue: int


@dataclass
class ProductSalesRow:
    product_id: int
    product_name: str
    quantity: int
    revenue: int
    order_count: int


@dataclass
class TableRow:
    table_number: int
    order_count: int
    revenue: int


@dataclass
class VoidRow:
    product_id: int
    product_name: str
    void_count: int
    quantity: int
    amount: int


class ReportRepository:
    """
    Queries de relatório. Tudo em inteiros na menor unidade da moeda;
    vendas consideram apenas pedidos PAID.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _in_range(self, query, start_date: Optional[date], end_date: Optional[date]):
        if start_date:
            query = query.filter(OrderModel.created_at >= day_start(start_date))
        if end_date:
            query = query.filter(OrderModel.created_at < day_end_exclusive(end_date))
        return query

    def paid_orders(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[PaidOrderRow]:
        query = self.db.query(
            OrderModel.id,
            OrderModel.table_number,
            OrderModel.subtotal,
            OrderModel.grand_total,
            OrderModel.created_at,
        ).filter(OrderModel.status == OrderStatus.PAID.value)
        query = self._in_range(query, start_date, end_date)
        return [
            PaidOrderRow(
                id=r.id,
                table_number=int(r.table_number),
                subtotal=int(r.subtotal),
                grand_total=int(r.grand_total),
                created_at=r.created_at,
            )
            for r in query.order_by(OrderModel.created_at.asc(), OrderModel.id.asc()).all()
        ]

    def category_totals(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[CategoryRow]:
        line_total = OrderItemModel.price_per_unit * OrderItemModel.quantity
        query = (
            self.db.query(
                ProductModel.category,
                func.coalesce(func.sum(OrderItemModel.quantity), 0).label("quantity"),
                func.coalesce(func.sum(line_total), 0).label("revenue"),
            )
            .select_from(OrderItemModel)
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .outerjoin(ProductModel, ProductModel.id == OrderItemModel.product_id)
            .filter(
                OrderModel.status == OrderStatus.PAID.value,
                OrderItemModel.status == OrderItemStatus.ACTIVE.value,
            )
        )
        query = self._in_range(query, start_date, end_date)
        rows = query.group_by(ProductModel.category).all()
        result = [
            CategoryRow(category=r.category or UNCATEGORIZED, quantity=int(r.quantity), revenue=int(r.revenue))
            for r in rows
        ]
        return sorted(result, key=lambda r: (-r.revenue, r.category))

    def product_totals(
        self,
        limit: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[ProductSalesRow]:
        line_total = OrderItemModel.price_per_unit * OrderItemModel.quantity
        quantity = func.sum(OrderItemModel.quantity)
        revenue = func.sum(line_total)
        query = (
            self.db.query(
                OrderItemModel.product_id,
                func.max(OrderItemModel.product_name).label("product_name"),
                quantity.label("quantity"),
                revenue.label("revenue"),
                func.count(func.distinct(OrderItemModel.order_id)).label("order_count"),
            )
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .filter(
                OrderModel.status == OrderStatus.PAID.value,
                OrderItemModel.status == OrderItemStatus.ACTIVE.value,
            )
        )
        query = self._in_range(query, start_date, end_date)
        rows = (
            query.group_by(OrderItemModel.product_id)
            .order_by(quantity.desc(), revenue.desc(), OrderItemModel.product_id.asc())
            .limit(limit)
            .all()
        )
        return [
            ProductSalesRow(
                product_id=r.product_id,
                product_name=r.product_name,
                quantity=int(r.quantity),
                revenue=int(r.revenue),
                order_count=int(r.order_count),
            )
            for r in rows
        ]

    def table_totals(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[TableRow]:
        revenue = func.sum(OrderModel.grand_total)
        query = self.db.query(
            OrderModel.table_number,
            func.count(OrderModel.id).label("order_count"),
            revenue.label("revenue"),
        ).filter(OrderModel.status == OrderStatus.PAID.value)
        query = self._in_range(query, start_date, end_date)
        rows = query.group_by(OrderModel.table_number).order_by(revenue.desc(), OrderModel.table_number.asc()).all()
        return [
            TableRow(table_number=int(r.table_number), order_count=int(r.order_count), revenue=int(r.revenue))
            for r in rows
        ]

    def void_totals(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[VoidRow]:
        """Itens estornados de pedidos em qualquer status."""
        line_total = OrderItemModel.price_per_unit * OrderItemModel.quantity
        amount = func.sum(line_total)
        query = (
            self.db.query(
                OrderItemModel.product_id,
                func.max(OrderItemModel.product_name).label("product_name"),
                func.count(OrderItemModel.id).label("void_count"),
                func.sum(OrderItemModel.quantity).label("quantity"),
                amount.label("amount"),
            )
            .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
            .filter(OrderItemModel.status == OrderItemStatus.VOIDED.value)
        )
        query = self._in_range(query, start_date, end_date)
        rows = query.group_by(OrderItemModel.product_id).order_by(amount.desc(), OrderItemModel.product_id.asc()).all()
        return [
            VoidRow(
                product_id=r.product_id,
                product_name=r.product_name,
                void_count=int(r.void_count),
                quantity=int(r.quantity),
                amount=int(r.amount),
            )
            for r in rows
        ]

    def status_counts(self) -> Dict[str, int]:
        rows = self.db.query(OrderModel.status, func.count(OrderModel.id)).group_by(OrderModel.status).all()
        return {str(status): int(count) for status, count in rows}
