# app/api/orders/models/model_order.py
from sqlalchemy import (
    Column, Integer, BigInteger, DateTime, Enum as SAEnum, Index, CheckConstraint, text
)
from sqlalchemy.orm import relationship
import enum

from app.database.db_connection import Base
from app.utils.database_utils import now_trimmed


class OrderStatus(str, enum.Enum):
    """Status possíveis para um pedido.

    - OPEN: aberto, itens podem ser lançados e editados
    - CONFIRMED: enviado para a cozinha
    - PAID: pago (terminal)
    - CANCELLED: cancelado (terminal)
    """
    OPEN = "OPEN"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class DiscountType(str, enum.Enum):
    PERCENT = "PERCENT"
    FIXED = "FIXED"


ACTIVE_ORDER_STATUSES = (OrderStatus.OPEN.value, OrderStatus.CONFIRMED.value)

OrderStatusEnum = SAEnum(
    "OPEN", "CONFIRMED", "PAID", "CANCELLED",
    name="order_status_enum",
)

DiscountTypeEnum = SAEnum(
    "PERCENT", "FIXED",
    name="discount_type_enum",
)


class OrderModel(Base):
    """
    Pedido de mesa.

    Valores monetários em inteiros na menor unidade da moeda.
    Invariantes mantidas pelo OrderService (sempre sob lock):
    - subtotal = soma dos itens ACTIVE
    - grand_total = max(0, subtotal - desconto)
    """
    __tablename__ = "orders"
    __table_args__ = (
        Index("idx_orders_status", "status"),
        Index("idx_orders_table_number", "table_number"),
        Index("idx_orders_created_at", "created_at"),
        # No máximo um pedido ativo (OPEN/CONFIRMED) por mesa
        Index(
            "uq_orders_active_table",
            "table_number",
            unique=True,
            postgresql_where=text("status IN ('OPEN', 'CONFIRMED')"),
            sqlite_where=text("status IN ('OPEN', 'CONFIRMED')"),
        ),
        CheckConstraint("table_number > 0", name="chk_orders_table_number"),
        CheckConstraint("subtotal >= 0 AND grand_total >= 0", name="chk_orders_totals"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_number = Column(Integer, nullable=False)
    status = Column(OrderStatusEnum, nullable=False, default=OrderStatus.OPEN.value)

    # Valores
    subtotal = Column(BigInteger, nullable=False, default=0)
    discount_type = Column(DiscountTypeEnum, nullable=True)
    discount_value = Column(BigInteger, nullable=True)  # % inteiro ou valor fixo
    grand_total = Column(BigInteger, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=now_trimmed, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_trimmed, onupdate=now_trimmed, nullable=False)

    # Relacionamentos
    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[OrderItemModel.batch_sequence, OrderItemModel.id]",
    )
    logs = relationship(
        "OrderLogModel",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderLogModel.id.desc()",
    )
