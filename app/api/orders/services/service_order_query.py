from __future__ import annotations

from datetime import date
from typing import Optional

from app.api.orders.models.model_order import OrderStatus
from app.api.orders.repositories.repo_orders import OrderRepository
from app.api.orders.schemas.schema_order import (
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    PaginationMeta,
)
from app.api.orders.contracts.order_snapshot import OrderSnapshot
from app.api.orders.services.service_order import validate_table_number
from app.api.orders.services.service_order_responses import OrderResponseBuilder
from app.config.settings import DEFAULT_PAGE_SIZE
from app.core.exceptions import ErrorMessage, NotFoundError, ValidationError
from app.database.order_lock import OrderLockCoordinator
from app.utils.pagination import total_pages, validate_pagination


def validate_date_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationError(ErrorMessage.INVALID_DATE_RANGE, field="start_date")


class OrderQueryService:
    """
    Consultas de pedidos, sem lock.

    Cada consulta roda numa única transação somente leitura: pedido, itens
    e logs saem do mesmo snapshot do banco.
    """

    def __init__(self, coordinator: OrderLockCoordinator):
        self.coordinator = coordinator

    def _read(self, fn):
        return self.coordinator.run_read_only(lambda session: fn(OrderRepository(session)))

    def get_order(self, order_id: int) -> OrderDetailResponse:
        def _load(repo: OrderRepository) -> OrderDetailResponse:
            order = repo.get_with_details(order_id)
            if not order:
                raise NotFoundError("Pedido", order_id)
            return OrderResponseBuilder.order_to_detail(order)

        return self._read(_load)

    def get_active_order_for_table(self, table_number: int) -> Optional[OrderResponse]:
        validate_table_number(table_number)

        def _load(repo: OrderRepository) -> Optional[OrderResponse]:
            order = repo.find_active_by_table(table_number)
            if not order:
                return None
            return OrderResponseBuilder.order_to_response(OrderSnapshot.from_model(order))

        return self._read(_load)

    def list_orders(
        self,
        *,
        status: Optional[OrderStatus] = None,
        table_number: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> OrderListResponse:
        validate_pagination(page, limit)
        validate_date_range(start_date, end_date)

        status_value = status.value if isinstance(status, OrderStatus) else status

        def _load(repo: OrderRepository) -> OrderListResponse:
            rows, total = repo.list(
                status=status_value,
                table_number=table_number,
                start_date=start_date,
                end_date=end_date,
                offset=(page - 1) * limit,
                limit=limit,
            )
            counts = repo.active_item_counts(o.id for o in rows)
            return OrderListResponse(
                data=[OrderResponseBuilder.order_to_summary(o, counts) for o in rows],
                pagination=PaginationMeta(
                    page=page,
                    limit=limit,
                    total=total,
                    total_pages=total_pages(total, limit),
                ),
            )

        return self._read(_load)
