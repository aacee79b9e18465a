"""
Service de mutação de pedidos.

Regra de ouro: toda checagem de status acontece sobre o snapshot obtido
COM o lock (OrderLockCoordinator). Validações de entrada (quantidade,
motivo, desconto) rodam antes do lock só para falhar rápido; nada que
dependa do estado do pedido é decidido fora dele.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.catalog.repositories.repo_products import ProductRepository
from app.api.orders.contracts.order_snapshot import OrderSnapshot
from app.api.orders.models.model_order import DiscountType, OrderModel, OrderStatus
from app.api.orders.models.model_order_item import OrderItemModel, OrderItemStatus
from app.api.orders.models.model_order_log import OrderAction
from app.api.orders.repositories.repo_orders import OrderRepository
from app.api.orders.services import order_state_machine as states
from app.api.orders.services.service_audit_log import OrderAuditLogWriter
from app.api.orders.services.service_calculation import (
    OrderTotals,
    recalculate,
    subtotal as calc_subtotal,
    to_money_string,
)
from app.config.settings import (
    MAX_DISCOUNT_PERCENT,
    MAX_ITEM_QUANTITY,
    MAX_TABLE_NUMBER,
    MAX_VOID_REASON_LENGTH,
)
from app.core.exceptions import (
    AppError,
    ConflictError,
    ErrorMessage,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.database.order_lock import OrderLockCoordinator
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.prometheus_metrics import record_order_operation


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class ResolvedProduct:
    """Cópia do produto no momento do lançamento (nome e preço congelados)."""
    id: int
    name: str
    price: int


# ======================================================================
# Validações de entrada (sem estado, antes do lock)
# ======================================================================
def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_table_number(table_number: Any) -> int:
    if not _is_int(table_number) or not 1 <= table_number <= MAX_TABLE_NUMBER:
        raise ValidationError(
            ErrorMessage.INVALID_TABLE_NUMBER.format(max=MAX_TABLE_NUMBER),
            field="table_number",
        )
    return table_number


def validate_quantity(quantity: Any) -> int:
    if not _is_int(quantity) or not 1 <= quantity <= MAX_ITEM_QUANTITY:
        raise ValidationError(
            ErrorMessage.QUANTITY_RANGE.format(max=MAX_ITEM_QUANTITY),
            field="quantity",
        )
    return quantity


def validate_void_reason(reason: Any) -> str:
    text = reason.strip() if isinstance(reason, str) else ""
    if not text:
        raise ValidationError(ErrorMessage.VOID_REASON_REQUIRED, field="reason")
    if len(text) > MAX_VOID_REASON_LENGTH:
        raise ValidationError(
            ErrorMessage.VOID_REASON_TOO_LONG.format(max=MAX_VOID_REASON_LENGTH),
            field="reason",
        )
    return text


def _line_attr(raw: Any, name: str) -> Any:
    if isinstance(raw, dict):
        return raw.get(name)
    return getattr(raw, name, None)


def validate_lines(items: Optional[Iterable[Any]]) -> List[OrderLine]:
    """Aceita OrderLine, schemas Pydantic ou dicts com product_id/quantity."""
    raw_items = list(items or [])
    if not raw_items:
        raise ValidationError(ErrorMessage.ITEMS_EMPTY, field="items")

    lines: List[OrderLine] = []
    for raw in raw_items:
        product_id = _line_attr(raw, "product_id")
        if not _is_int(product_id) or product_id < 1:
            raise ValidationError("Produto inválido.", field="product_id")
        lines.append(OrderLine(product_id=product_id, quantity=validate_quantity(_line_attr(raw, "quantity"))))
    return lines


def _discount_as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(ErrorMessage.DISCOUNT_NOT_INTEGER, field="discount_value")
    if _is_int(value):
        return value
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(ErrorMessage.DISCOUNT_NOT_INTEGER, field="discount_value")
    if not parsed.is_finite() or parsed != parsed.to_integral_value():
        raise ValidationError(ErrorMessage.DISCOUNT_NOT_INTEGER, field="discount_value")
    return int(parsed)


def validate_discount(discount_type: Any, discount_value: Any) -> Tuple[Optional[str], Optional[int]]:
    """
    Normaliza o desconto do checkout.

    PERCENT: inteiro entre 0 e MAX_DISCOUNT_PERCENT.
    FIXED: inteiro >= 0 na menor unidade (teto = subtotal, checado sob lock).
    """
    if discount_type is None and discount_value is None:
        return None, None
    if discount_type is None:
        raise ValidationError(ErrorMessage.DISCOUNT_TYPE_REQUIRED, field="discount_type")
    if discount_value is None:
        raise ValidationError(ErrorMessage.DISCOUNT_VALUE_REQUIRED, field="discount_value")

    kind = discount_type.value if isinstance(discount_type, DiscountType) else str(discount_type)
    if kind not in (DiscountType.PERCENT.value, DiscountType.FIXED.value):
        raise ValidationError(ErrorMessage.DISCOUNT_INVALID_TYPE, field="discount_type")

    value = _discount_as_int(discount_value)
    if value < 0:
        raise ValidationError(ErrorMessage.DISCOUNT_NEGATIVE, field="discount_value")
    if kind == DiscountType.PERCENT.value and value > MAX_DISCOUNT_PERCENT:
        raise ValidationError(
            ErrorMessage.DISCOUNT_PERCENT_RANGE.format(max=MAX_DISCOUNT_PERCENT),
            field="discount_value",
        )
    return kind, value


# ======================================================================
# Service
# ======================================================================
class OrderService:
    def __init__(self, coordinator: OrderLockCoordinator):
        self.coordinator = coordinator

    # ---------------- helpers ----------------
    @contextmanager
    def _track(self, operation: str):
        try:
            yield
        except AppError as exc:
            record_order_operation(operation, exc.kind.value)
            raise
        record_order_operation(operation, "ok")

    def _resolve_products(self, lines: List[OrderLine]) -> Dict[int, ResolvedProduct]:
        """Busca em lote; NotFound no primeiro produto inexistente ou inativo."""

        def _load(session: Session) -> Dict[int, ResolvedProduct]:
            found = ProductRepository(session).get_active_by_ids(line.product_id for line in lines)
            return {
                pid: ResolvedProduct(id=p.id, name=p.name, price=int(p.price))
                for pid, p in found.items()
            }

        products = self.coordinator.run_read_only(_load)
        for line in lines:
            if line.product_id not in products:
                raise NotFoundError("Produto", line.product_id)
        return products

    @staticmethod
    def _build_item(product: ResolvedProduct, quantity: int, batch_sequence: int, now) -> OrderItemModel:
        return OrderItemModel(
            product_id=product.id,
            product_name=product.name,
            price_per_unit=product.price,
            quantity=quantity,
            batch_sequence=batch_sequence,
            status=OrderItemStatus.ACTIVE.value,
            void_reason=None,
            created_at=now,
        )

    @staticmethod
    def _apply_totals(order: OrderModel, totals: OrderTotals) -> None:
        order.subtotal = totals.subtotal
        order.grand_total = totals.grand_total
        order.updated_at = now_trimmed()

    @staticmethod
    def _locked_order(session: Session, snapshot: OrderSnapshot) -> OrderModel:
        # já carregado pelo coordinator (identity map), sem nova query
        return session.get(OrderModel, snapshot.id)

    # ---------------- operações ----------------
    def create_order(self, table_number: int, items: Iterable[Any]) -> OrderSnapshot:
        with self._track("create"):
            table_number = validate_table_number(table_number)
            lines = validate_lines(items)
            products = self._resolve_products(lines)

            logger.info(f"[Pedidos] Criando pedido - mesa={table_number} itens={len(lines)}")

            def _create(session: Session) -> OrderSnapshot:
                repo = OrderRepository(session)
                if repo.exists_active_for_table(table_number):
                    raise ConflictError(
                        ErrorMessage.TABLE_HAS_ACTIVE_ORDER.format(table_number=table_number),
                        details={"table_number": table_number},
                        field="table_number",
                    )

                now = now_trimmed()
                order = OrderModel(
                    table_number=table_number,
                    status=OrderStatus.OPEN.value,
                    subtotal=0,
                    grand_total=0,
                    created_at=now,
                    updated_at=now,
                )
                order.items = [
                    self._build_item(products[line.product_id], line.quantity, 1, now)
                    for line in lines
                ]
                try:
                    repo.add_order(order)
                except IntegrityError as exc:
                    # índice parcial uq_orders_active_table
                    raise ConflictError(
                        ErrorMessage.TABLE_HAS_ACTIVE_ORDER.format(table_number=table_number),
                        details={"table_number": table_number},
                        field="table_number",
                    ) from exc

                totals = recalculate(order.items, None, None)
                self._apply_totals(order, totals)
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.CREATE,
                    {
                        "table_number": table_number,
                        "item_count": len(lines),
                        "subtotal": to_money_string(totals.subtotal),
                    },
                )
                return OrderSnapshot.from_model(order)

            result = self.coordinator.with_table_lock(table_number, _create)
            logger.info(
                f"[Pedidos] Pedido {result.id} criado - mesa={table_number} subtotal={result.subtotal}"
            )
            return result

    def add_items(self, order_id: int, items: Iterable[Any]) -> OrderSnapshot:
        with self._track("add_items"):
            lines = validate_lines(items)
            products = self._resolve_products(lines)

            logger.info(f"[Pedidos] Adicionando itens - pedido={order_id} itens={len(lines)}")

            def _add(session: Session, snapshot: OrderSnapshot) -> OrderSnapshot:
                if not states.can_add_items(snapshot.status):
                    raise InvalidStateError(
                        ErrorMessage.MUST_BE_IN_STATE.format(
                            required="OPEN ou CONFIRMED", current=snapshot.status
                        )
                    )

                batch = states.next_batch_sequence(snapshot.items)
                order = self._locked_order(session, snapshot)
                now = now_trimmed()
                order.items.extend(
                    self._build_item(products[line.product_id], line.quantity, batch, now)
                    for line in lines
                )
                totals = recalculate(order.items, order.discount_type, order.discount_value)
                self._apply_totals(order, totals)
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.ADD_ITEMS,
                    {
                        "batch_sequence": batch,
                        "item_count": len(lines),
                        "new_subtotal": to_money_string(totals.subtotal),
                    },
                )
                logger.info(
                    f"[Pedidos] Itens adicionados - pedido={order.id} lote={batch} "
                    f"subtotal={totals.subtotal}"
                )
                return OrderSnapshot.from_model(order)

            return self.coordinator.with_order_lock(order_id, _add)

    def confirm_order(self, order_id: int) -> OrderSnapshot:
        with self._track("confirm"):
            logger.info(f"[Pedidos] Confirmando pedido {order_id}")

            def _confirm(session: Session, snapshot: OrderSnapshot) -> OrderSnapshot:
                if not states.can_transition(snapshot.status, OrderStatus.CONFIRMED):
                    raise InvalidStateError(
                        ErrorMessage.INVALID_STATE_TRANSITION.format(
                            current=snapshot.status, target=OrderStatus.CONFIRMED.value
                        )
                    )
                active = snapshot.active_items
                if not active:
                    raise ValidationError(ErrorMessage.CANNOT_CONFIRM_EMPTY)

                order = self._locked_order(session, snapshot)
                order.status = OrderStatus.CONFIRMED.value
                order.updated_at = now_trimmed()
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.CONFIRM,
                    {
                        "active_item_count": len(active),
                        "subtotal": to_money_string(snapshot.subtotal),
                    },
                )
                logger.info(f"[Pedidos] Pedido {order.id} confirmado - itens ativos={len(active)}")
                return OrderSnapshot.from_model(order)

            return self.coordinator.with_order_lock(order_id, _confirm)

    def void_item(self, order_id: int, item_id: int, reason: str) -> OrderSnapshot:
        with self._track("void_item"):
            reason = validate_void_reason(reason)
            logger.info(f"[Pedidos] Estornando item {item_id} do pedido {order_id}")

            def _void(session: Session, snapshot: OrderSnapshot) -> OrderSnapshot:
                if not states.can_void_item(snapshot.status):
                    raise InvalidStateError(
                        ErrorMessage.CANNOT_VOID_IN_STATE.format(status=snapshot.status)
                    )
                item_snapshot = snapshot.find_item(item_id)
                if item_snapshot is None:
                    raise NotFoundError("Item do pedido", item_id)
                if not item_snapshot.is_active:
                    raise InvalidStateError(ErrorMessage.ALREADY_VOIDED)

                order = self._locked_order(session, snapshot)
                item = session.get(OrderItemModel, item_id)
                item.status = OrderItemStatus.VOIDED.value
                item.void_reason = reason

                totals = recalculate(order.items, order.discount_type, order.discount_value)
                self._apply_totals(order, totals)
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.VOID_ITEM,
                    {
                        "item_id": item_id,
                        "product_name": item_snapshot.product_name,
                        "quantity": item_snapshot.quantity,
                        "price_per_unit": to_money_string(item_snapshot.price_per_unit),
                        "reason": reason,
                        "new_subtotal": to_money_string(totals.subtotal),
                    },
                )
                logger.info(
                    f"[Pedidos] Item {item_id} estornado - pedido={order.id} "
                    f"produto={item_snapshot.product_name} subtotal={totals.subtotal}"
                )
                return OrderSnapshot.from_model(order)

            return self.coordinator.with_order_lock(order_id, _void)

    def update_item_quantity(self, order_id: int, item_id: int, quantity: int) -> OrderSnapshot:
        with self._track("update_quantity"):
            quantity = validate_quantity(quantity)

            def _update(session: Session, snapshot: OrderSnapshot) -> OrderSnapshot:
                if not states.can_modify_items(snapshot.status):
                    raise InvalidStateError(
                        ErrorMessage.MUST_BE_IN_STATE.format(
                            required=OrderStatus.OPEN.value, current=snapshot.status
                        )
                    )
                item_snapshot = snapshot.find_item(item_id)
                if item_snapshot is None:
                    raise NotFoundError("Item do pedido", item_id)
                if not item_snapshot.is_active:
                    raise InvalidStateError(ErrorMessage.CANNOT_MODIFY_VOIDED)

                order = self._locked_order(session, snapshot)
                item = session.get(OrderItemModel, item_id)
                item.quantity = quantity

                totals = recalculate(order.items, order.discount_type, order.discount_value)
                self._apply_totals(order, totals)
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.UPDATE_QUANTITY,
                    {
                        "item_id": item_id,
                        "product_name": item_snapshot.product_name,
                        "previous_quantity": item_snapshot.quantity,
                        "new_quantity": quantity,
                        "new_subtotal": to_money_string(totals.subtotal),
                    },
                )
                logger.info(
                    f"[Pedidos] Quantidade alterada - pedido={order.id} item={item_id} "
                    f"{item_snapshot.quantity}->{quantity}"
                )
                return OrderSnapshot.from_model(order)

            return self.coordinator.with_order_lock(order_id, _update)

    def checkout(
        self,
        order_id: int,
        discount_type: Optional[Any] = None,
        discount_value: Optional[Any] = None,
    ) -> OrderSnapshot:
        with self._track("checkout"):
            kind, value = validate_discount(discount_type, discount_value)
            logger.info(f"[Pedidos] Finalizando pedido {order_id} - desconto={kind}:{value}")

            def _checkout(session: Session, snapshot: OrderSnapshot) -> OrderSnapshot:
                # guarda contra checkout duplo: o status vem do snapshot travado
                if not states.can_checkout(snapshot.status):
                    if snapshot.status == OrderStatus.OPEN.value:
                        raise InvalidStateError(ErrorMessage.CANNOT_CHECKOUT_UNCONFIRMED)
                    raise InvalidStateError(
                        ErrorMessage.INVALID_STATE_TRANSITION.format(
                            current=snapshot.status, target=OrderStatus.PAID.value
                        )
                    )
                if not snapshot.active_items:
                    raise ValidationError(ErrorMessage.CANNOT_CHECKOUT_EMPTY)

                if kind == DiscountType.FIXED.value and value > calc_subtotal(snapshot.items):
                    raise ValidationError(
                        ErrorMessage.DISCOUNT_EXCEEDS_SUBTOTAL,
                        details={"subtotal": to_money_string(calc_subtotal(snapshot.items))},
                        field="discount_value",
                    )

                totals = recalculate(snapshot.items, kind, value)

                order = self._locked_order(session, snapshot)
                order.status = OrderStatus.PAID.value
                order.discount_type = kind
                order.discount_value = value
                self._apply_totals(order, totals)
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.CHECKOUT,
                    {
                        "subtotal": to_money_string(totals.subtotal),
                        "discount_type": kind,
                        "discount_value": value,
                        "discount_amount": to_money_string(totals.discount),
                        "grand_total": to_money_string(totals.grand_total),
                    },
                )
                logger.info(
                    f"[Pedidos] Pedido {order.id} pago - total={totals.grand_total} "
                    f"desconto={totals.discount}"
                )
                return OrderSnapshot.from_model(order)

            return self.coordinator.with_order_lock(order_id, _checkout)

    def cancel_order(self, order_id: int) -> OrderSnapshot:
        with self._track("cancel"):
            logger.info(f"[Pedidos] Cancelando pedido {order_id}")

            def _cancel(session: Session, snapshot: OrderSnapshot) -> OrderSnapshot:
                if not states.can_cancel(snapshot.status):
                    if snapshot.status == OrderStatus.PAID.value:
                        raise InvalidStateError(ErrorMessage.CANNOT_CANCEL_PAID)
                    raise InvalidStateError(
                        ErrorMessage.INVALID_STATE_TRANSITION.format(
                            current=snapshot.status, target=OrderStatus.CANCELLED.value
                        )
                    )

                order = self._locked_order(session, snapshot)
                order.status = OrderStatus.CANCELLED.value
                order.updated_at = now_trimmed()
                session.flush()

                OrderAuditLogWriter(session).write(
                    order.id,
                    OrderAction.CANCEL,
                    {
                        "previous_status": snapshot.status,
                        "grand_total": to_money_string(snapshot.grand_total),
                    },
                )
                logger.info(f"[Pedidos] Pedido {order.id} cancelado - status anterior={snapshot.status}")
                return OrderSnapshot.from_model(order)

            return self.coordinator.with_order_lock(order_id, _cancel)
