# app/api/orders/models/model_order_log.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
import enum

from app.database.db_connection import Base
from app.core.exceptions import InternalError
from app.utils.database_utils import now_trimmed


class OrderAction(str, enum.Enum):
    """Ações registradas na trilha de auditoria do pedido."""
    CREATE = "CREATE"
    ADD_ITEMS = "ADD_ITEMS"
    CONFIRM = "CONFIRM"
    VOID_ITEM = "VOID_ITEM"
    UPDATE_QUANTITY = "UPDATE_QUANTITY"
    CHECKOUT = "CHECKOUT"
    CANCEL = "CANCEL"


class OrderLogModel(Base):
    """
    Registro imutável de auditoria (append-only).

    `details` guarda os fatos financeiros/contextuais da ação; valores
    monetários vão como string decimal para não perder precisão.
    """
    __tablename__ = "order_logs"
    __table_args__ = (
        Index("idx_order_logs_order", "order_id"),
        Index("idx_order_logs_action", "action"),
        Index("idx_order_logs_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )
    order = relationship("OrderModel", back_populates="logs")

    action = Column(String(30), nullable=False)
    details = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=now_trimmed, nullable=False)


@event.listens_for(OrderLogModel, "before_update")
def _block_log_update(mapper, connection, target):
    raise InternalError(f"order_logs é append-only (tentativa de UPDATE no log {target.id})")
