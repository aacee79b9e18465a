# app/api/orders/models/model_order_item.py
from sqlalchemy import (
    Column, Integer, BigInteger, String, Text, DateTime, ForeignKey, Enum as SAEnum, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
import enum

from app.database.db_connection import Base
from app.utils.database_utils import now_trimmed


class OrderItemStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    VOIDED = "VOIDED"


OrderItemStatusEnum = SAEnum(
    "ACTIVE", "VOIDED",
    name="order_item_status_enum",
)


class OrderItemModel(Base):
    """
    Item de pedido com preço congelado.

    `product_name` e `price_per_unit` são copiados do produto no momento do
    lançamento e nunca mudam. Itens não são apagados: o estorno (VOIDED)
    é uma exclusão lógica com motivo obrigatório.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        Index("idx_order_items_order", "order_id"),
        Index("idx_order_items_status", "status"),
        Index("idx_order_items_batch_sequence", "batch_sequence"),
        CheckConstraint("quantity >= 1", name="chk_order_items_quantity"),
        CheckConstraint("batch_sequence >= 1", name="chk_order_items_batch_sequence"),
        # void_reason presente se e somente se o item está estornado
        CheckConstraint(
            """
            (status = 'VOIDED' AND void_reason IS NOT NULL) OR
            (status = 'ACTIVE' AND void_reason IS NULL)
            """,
            name="chk_order_items_void_reason",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Relacionamento com pedido
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )
    order = relationship("OrderModel", back_populates="items")

    # Referência ao produto (sem FK: o item vive da cópia congelada)
    product_id = Column(Integer, nullable=False)
    product_name = Column(String(200), nullable=False)
    price_per_unit = Column(BigInteger, nullable=False)

    quantity = Column(Integer, nullable=False)
    batch_sequence = Column(Integer, nullable=False, default=1)
    status = Column(OrderItemStatusEnum, nullable=False, default=OrderItemStatus.ACTIVE.value)
    void_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_trimmed, nullable=False)

    @property
    def item_total(self) -> int:
        return int(self.price_per_unit) * int(self.quantity)
