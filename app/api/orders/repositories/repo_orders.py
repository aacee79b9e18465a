from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.api.orders.models.model_order import ACTIVE_ORDER_STATUSES, OrderModel
from app.api.orders.models.model_order_item import OrderItemModel, OrderItemStatus
from app.utils.database_utils import DB_ZONE


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=DB_ZONE)


def day_end_exclusive(day: date) -> datetime:
    return day_start(day + timedelta(days=1))


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    # ------------- Queries -------------
    def get_with_details(self, order_id: int) -> Optional[OrderModel]:
        """Pedido com itens (lote, criação) e logs (mais recente primeiro)."""
        return (
            self.db.query(OrderModel)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.logs))
            .filter(OrderModel.id == order_id)
            .first()
        )

    def find_active_by_table(self, table_number: int) -> Optional[OrderModel]:
        return (
            self.db.query(OrderModel)
            .options(selectinload(OrderModel.items))
            .filter(
                OrderModel.table_number == table_number,
                OrderModel.status.in_(ACTIVE_ORDER_STATUSES),
            )
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .first()
        )

    def exists_active_for_table(self, table_number: int) -> bool:
        return (
            self.db.query(OrderModel.id)
            .filter(
                OrderModel.table_number == table_number,
                OrderModel.status.in_(ACTIVE_ORDER_STATUSES),
            )
            .first()
            is not None
        )

    def list(
        self,
        *,
        status: Optional[str] = None,
        table_number: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[OrderModel], int]:
        query = self.db.query(OrderModel)
        if status:
            query = query.filter(OrderModel.status == status)
        if table_number is not None:
            query = query.filter(OrderModel.table_number == table_number)
        if start_date:
            query = query.filter(OrderModel.created_at >= day_start(start_date))
        if end_date:
            query = query.filter(OrderModel.created_at < day_end_exclusive(end_date))

        total = query.count()
        rows = (
            query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def active_item_counts(self, order_ids: Iterable[int]) -> Dict[int, int]:
        ids = list(order_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(OrderItemModel.order_id, func.count(OrderItemModel.id))
            .filter(
                OrderItemModel.order_id.in_(ids),
                OrderItemModel.status == OrderItemStatus.ACTIVE.value,
            )
            .group_by(OrderItemModel.order_id)
            .all()
        )
        return {order_id: int(count) for order_id, count in rows}

    # ------------- Mutations -------------
    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order
