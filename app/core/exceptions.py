"""
Taxonomia de erros do domínio de pedidos.

Cada erro carrega um `kind` estável (lido pela camada HTTP para escolher o
status code) e uma mensagem legível. Nenhum erro é engolido na camada de
serviço: a transação é desfeita e o erro sobe para quem chamou.
"""
from __future__ import annotations

import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    TIMEOUT = "TIMEOUT"
    INTERNAL = "INTERNAL_ERROR"


ERROR_STATUS_MAP = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.TIMEOUT: 503,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def __init__(self, message: str, *, details: Any = None, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.field = field

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_MAP[self.kind]

    def to_dict(self) -> dict:
        return {
            "code": self.kind.value,
            "message": self.message,
            "details": self.details,
            "field": self.field,
            "retryable": self.retryable,
        }


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, resource_id: Any = None):
        message = (
            f"{resource} com ID '{resource_id}' não encontrado(a)."
            if resource_id is not None
            else f"{resource} não encontrado(a)."
        )
        super().__init__(message, details={"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class InvalidStateError(AppError):
    kind = ErrorKind.INVALID_STATE


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT


class LockTimeoutError(AppError):
    """Lock do pedido não foi obtido dentro do tempo limite. Pode ser repetido."""
    kind = ErrorKind.TIMEOUT
    retryable = True


class TransactionConflictError(AppError):
    """Transação abortada por conflito de serialização/deadlock. Pode ser repetida."""
    kind = ErrorKind.TIMEOUT
    retryable = True


class InternalError(AppError):
    kind = ErrorKind.INTERNAL


class ErrorMessage:
    """Mensagens centralizadas (mesmo texto em toda a API)."""

    # Pedido
    INVALID_STATE_TRANSITION = "Não é possível alterar o status do pedido de {current} para {target}."
    MUST_BE_IN_STATE = "O pedido precisa estar {required}, mas está {current}."
    CANNOT_CANCEL_PAID = "Não é possível cancelar um pedido pago."
    CANNOT_CHECKOUT_EMPTY = "Não é possível finalizar um pedido sem itens ativos."
    CANNOT_CONFIRM_EMPTY = "Não é possível confirmar um pedido sem itens ativos."
    CANNOT_CHECKOUT_UNCONFIRMED = "Não é possível finalizar: o pedido precisa estar confirmado."
    TABLE_HAS_ACTIVE_ORDER = "A mesa {table_number} já possui um pedido ativo."
    INVALID_TABLE_NUMBER = "O número da mesa deve estar entre 1 e {max}."
    ITEMS_EMPTY = "Informe pelo menos um item."

    # Itens
    ALREADY_VOIDED = "O item já foi estornado."
    CANNOT_MODIFY_VOIDED = "Não é possível alterar a quantidade de um item estornado."
    CANNOT_VOID_IN_STATE = "Não é possível estornar itens com o pedido {status}."
    VOID_REASON_REQUIRED = "O motivo do estorno é obrigatório."
    VOID_REASON_TOO_LONG = "O motivo do estorno deve ter no máximo {max} caracteres."
    QUANTITY_RANGE = "A quantidade deve estar entre 1 e {max}."

    # Desconto
    DISCOUNT_VALUE_REQUIRED = "O valor do desconto é obrigatório quando o tipo é informado."
    DISCOUNT_TYPE_REQUIRED = "O tipo do desconto é obrigatório quando o valor é informado."
    DISCOUNT_INVALID_TYPE = "O tipo de desconto deve ser 'PERCENT' ou 'FIXED'."
    DISCOUNT_NOT_INTEGER = "O valor do desconto deve ser um número inteiro."
    DISCOUNT_NEGATIVE = "O valor do desconto não pode ser negativo."
    DISCOUNT_PERCENT_RANGE = "O desconto percentual deve estar entre 0 e {max}."
    DISCOUNT_EXCEEDS_SUBTOTAL = "O desconto fixo não pode ser maior que o subtotal."

    # Produto
    PRODUCT_INVALID_PRICE = "O preço do produto deve ser maior que 0."

    # Paginação / relatórios
    INVALID_PAGE = "A página deve ser no mínimo 1."
    INVALID_LIMIT = "O limite deve estar entre 1 e {max}."
    INVALID_DATE_RANGE = "A data inicial deve ser anterior ou igual à data final."
