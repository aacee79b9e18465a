from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from app.api.orders.models.model_order_log import OrderAction, OrderLogModel
from app.utils.logger import logger


class OrderAuditLogWriter:
    """
    Grava a trilha de auditoria do pedido na MESMA transação da mutação.

    Só existe `write`: logs nunca são atualizados nem apagados.
    Valores monetários devem chegar em `details` como string (ver
    service_calculation.to_money_string).
    """

    def __init__(self, db: Session):
        self.db = db

    def write(
        self,
        order_id: int,
        action: OrderAction,
        details: Optional[Mapping[str, Any]] = None,
    ) -> OrderLogModel:
        action_value = action.value if isinstance(action, OrderAction) else OrderAction(action).value
        payload: Dict[str, Any] = dict(details or {})

        log = OrderLogModel(order_id=order_id, action=action_value, details=payload)
        self.db.add(log)
        self.db.flush()
        logger.debug(f"[Pedidos] Auditoria {action_value} registrada para o pedido {order_id}")
        return log
