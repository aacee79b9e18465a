"""
Coordenação de locks e transações de pedido.

Toda mutação de pedido roda dentro de `with_order_lock` (ou variantes):

1. abre uma transação SERIALIZABLE;
2. trava o pedido e os itens (SELECT ... FOR UPDATE no PostgreSQL, mutex
   por pedido no modo `mutex`);
3. entrega ao callback um snapshot imutável lido já com o lock;
4. commit se o callback retornar, rollback em qualquer exceção.

Erros de lock/serialização viram LockTimeoutError / TransactionConflictError
(retryable). Nada é repetido automaticamente aqui: quem decide é o chamador.
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Hashable, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.api.orders.contracts.order_snapshot import OrderSnapshot
from app.api.orders.models.model_order import OrderModel
from app.api.orders.models.model_order_item import OrderItemModel
from app.config.settings import (
    ORDER_LOCK_STRATEGY,
    ORDER_LOCK_TIMEOUT_SECONDS,
    ORDER_MULTI_LOCK_TIMEOUT_SECONDS,
    ORDER_TRY_LOCK_TIMEOUT_SECONDS,
)
from app.core.exceptions import (
    AppError,
    InternalError,
    LockTimeoutError,
    NotFoundError,
    TransactionConflictError,
)
from app.utils.logger import logger
from app.utils.prometheus_metrics import observe_lock_wait, record_lock_failure

T = TypeVar("T")

STRATEGY_ROW = "row"
STRATEGY_MUTEX = "mutex"
STRATEGY_AUTO = "auto"

# SQLSTATE do PostgreSQL
PG_LOCK_NOT_AVAILABLE = "55P03"
PG_QUERY_CANCELED = "57014"
PG_SERIALIZATION_FAILURE = "40001"
PG_DEADLOCK_DETECTED = "40P01"

# Namespace do advisory lock usado para serializar abertura de pedido por mesa
TABLE_ADVISORY_NAMESPACE = 7301


class _LockUnavailable:
    """Sentinela devolvida por try_order_lock quando o pedido já está travado."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "LOCK_UNAVAILABLE"


LOCK_UNAVAILABLE = _LockUnavailable()


class LockUnavailableError(LockTimeoutError):
    """Lock não obtido em modo sem espera (NOWAIT)."""


# ======================================================================
# Mutex por chave (processo)
# ======================================================================
class KeyedMutex:
    """
    Registro de locks por chave com contagem de referências.

    As chaves são sempre adquiridas em ordem crescente, o que impede deadlock
    entre chamadas que travam vários pedidos ao mesmo tempo. A entrada some
    do registro quando ninguém mais está usando a chave.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, List] = {}

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _release_ref(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]

    def held_keys(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, keys: Iterable[Hashable], timeout: float, nowait: bool = False) -> Iterator[None]:
        ordered = sorted(set(keys))
        deadline = time.monotonic() + timeout
        acquired: List[Tuple[Hashable, threading.Lock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                if nowait:
                    ok = lock.acquire(blocking=False)
                else:
                    ok = lock.acquire(timeout=max(0.0, deadline - time.monotonic()))
                if not ok:
                    self._release_ref(key)
                    if nowait:
                        raise LockUnavailableError(
                            "Pedido em uso por outra operação.", details={"key": list(key)}
                        )
                    raise LockTimeoutError(
                        f"Tempo limite de {timeout:g}s excedido aguardando o lock.",
                        details={"key": list(key)},
                    )
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._release_ref(key)


# Compartilhado por todos os coordenadores do processo
_PROCESS_MUTEX = KeyedMutex()


def _order_key(order_id: int) -> Tuple[str, int]:
    return ("order", int(order_id))


def _table_key(table_number: int) -> Tuple[str, int]:
    return ("table", int(table_number))


# ======================================================================
# Coordenador
# ======================================================================
class OrderLockCoordinator:
    """
    Executa callbacks `fn(session, snapshot)` com o pedido travado.

    Estratégias:
    - row: lock de linha do PostgreSQL (FOR UPDATE / NOWAIT) + lock_timeout
    - mutex: lock em memória por pedido (SQLite, testes, processo único)
    - auto: row para PostgreSQL, mutex para o resto
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        strategy: str = ORDER_LOCK_STRATEGY,
        lock_timeout: float = ORDER_LOCK_TIMEOUT_SECONDS,
        multi_lock_timeout: float = ORDER_MULTI_LOCK_TIMEOUT_SECONDS,
        try_lock_timeout: float = ORDER_TRY_LOCK_TIMEOUT_SECONDS,
        mutex: Optional[KeyedMutex] = None,
    ):
        self.session_factory = session_factory
        self.dialect_name = self._dialect_name(session_factory)
        self.strategy = self._resolve_strategy(strategy, self.dialect_name)
        self.lock_timeout = lock_timeout
        self.multi_lock_timeout = multi_lock_timeout
        self.try_lock_timeout = try_lock_timeout
        self.mutex = mutex or _PROCESS_MUTEX

    @staticmethod
    def _dialect_name(session_factory: sessionmaker) -> Optional[str]:
        bind = session_factory.kw.get("bind")
        return bind.dialect.name if bind is not None else None

    @staticmethod
    def _resolve_strategy(strategy: str, dialect_name: Optional[str]) -> str:
        strategy = (strategy or STRATEGY_AUTO).lower()
        if strategy == STRATEGY_AUTO:
            return STRATEGY_ROW if dialect_name == "postgresql" else STRATEGY_MUTEX
        if strategy not in (STRATEGY_ROW, STRATEGY_MUTEX):
            raise ValueError(f"Estratégia de lock inválida: {strategy}")
        if strategy == STRATEGY_ROW and dialect_name != "postgresql":
            raise ValueError("Estratégia 'row' exige PostgreSQL")
        return strategy

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------
    def with_order_lock(self, order_id: int, fn: Callable[[Session, OrderSnapshot], T]) -> T:
        """Trava um pedido (espera até lock_timeout) e executa fn."""
        return self._run_locked(
            [order_id], fn, timeout=self.lock_timeout, nowait=False, mode="single", many=False
        )

    def try_order_lock(self, order_id: int, fn: Callable[[Session, OrderSnapshot], T]):
        """
        Tenta travar sem esperar. Retorna LOCK_UNAVAILABLE se outro
        chamador já estiver com o pedido; NotFoundError continua subindo.
        """
        try:
            return self._run_locked(
                [order_id], fn, timeout=self.try_lock_timeout, nowait=True, mode="try", many=False
            )
        except LockUnavailableError:
            logger.info(f"[Pedidos] Lock indisponível para o pedido {order_id}")
            return LOCK_UNAVAILABLE

    def with_multiple_order_lock(
        self,
        order_ids: Sequence[int],
        fn: Callable[[Session, Tuple[OrderSnapshot, ...]], T],
    ) -> T:
        """Trava vários pedidos em ordem crescente de ID (ids repetidos são ignorados)."""
        if not order_ids:
            raise ValueError("Informe pelo menos um pedido para travar")
        ids = sorted({int(i) for i in order_ids})
        return self._run_locked(
            ids, fn, timeout=self.multi_lock_timeout, nowait=False, mode="multi", many=True
        )

    def with_table_lock(self, table_number: int, fn: Callable[[Session], T]) -> T:
        """Serializa operações por mesa (abertura de pedido)."""
        started = time.monotonic()
        with self._mutex_scope([_table_key(table_number)], self.lock_timeout, nowait=False):
            with self._transaction(self.lock_timeout) as session:
                if self.strategy == STRATEGY_ROW:
                    session.execute(
                        text("SELECT pg_advisory_xact_lock(:ns, :key)"),
                        {"ns": TABLE_ADVISORY_NAMESPACE, "key": int(table_number)},
                    )
                observe_lock_wait("table", time.monotonic() - started)
                return fn(session)

    def run_in_transaction(self, fn: Callable[[Session], T]) -> T:
        """Transação SERIALIZABLE sem lock de pedido."""
        with self._transaction(self.lock_timeout) as session:
            return fn(session)

    def run_read_only(self, fn: Callable[[Session], T]) -> T:
        """Leitura consistente (um único snapshot) para relatórios e consultas."""
        with self._transaction(self.multi_lock_timeout, read_only=True) as session:
            return fn(session)

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------
    def _run_locked(self, order_ids, fn, *, timeout: float, nowait: bool, mode: str, many: bool):
        started = time.monotonic()
        with self._mutex_scope([_order_key(i) for i in order_ids], timeout, nowait=nowait):
            with self._transaction(timeout) as session:
                snapshots = self._lock_orders(session, order_ids, nowait=nowait)
                observe_lock_wait(mode, time.monotonic() - started)
                return fn(session, snapshots if many else snapshots[0])

    @contextmanager
    def _mutex_scope(self, keys, timeout: float, nowait: bool) -> Iterator[None]:
        if self.strategy != STRATEGY_MUTEX:
            yield
            return
        try:
            with self.mutex.hold(keys, timeout, nowait=nowait):
                yield
        except LockUnavailableError:
            record_lock_failure("unavailable")
            raise
        except LockTimeoutError as exc:
            # só conta se veio da aquisição do mutex, não do callback
            if exc.details and "key" in exc.details:
                record_lock_failure("timeout")
                logger.warning(f"[Pedidos] Timeout aguardando lock: {exc.details}")
            raise

    @contextmanager
    def _transaction(self, timeout: float, read_only: bool = False) -> Iterator[Session]:
        session = self.session_factory()
        try:
            session.connection(execution_options={"isolation_level": "SERIALIZABLE"})
            if self.dialect_name == "postgresql":
                if read_only:
                    session.execute(text("SET TRANSACTION READ ONLY"))
                millis = int(timeout * 1000)
                # SET LOCAL não aceita bind params
                session.execute(text(f"SET LOCAL lock_timeout = '{millis}ms'"))
                session.execute(text(f"SET LOCAL statement_timeout = '{millis}ms'"))
                session.execute(text(f"SET LOCAL idle_in_transaction_session_timeout = '{millis}ms'"))
            yield session
            session.commit()
        except AppError:
            session.rollback()
            raise
        except DBAPIError as exc:
            session.rollback()
            translated = self._translate_db_error(exc)
            if translated is None:
                logger.error(f"[Pedidos] Erro de banco na transação: {exc}")
                raise InternalError("Falha ao acessar o banco de dados.") from exc
            raise translated from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(f"[Pedidos] Erro de persistência na transação: {exc}")
            raise InternalError("Falha ao acessar o banco de dados.") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _lock_orders(self, session: Session, order_ids: Sequence[int], nowait: bool) -> List[OrderSnapshot]:
        order_stmt = select(OrderModel).where(OrderModel.id.in_(order_ids)).order_by(OrderModel.id)
        item_stmt = (
            select(OrderItemModel)
            .where(OrderItemModel.order_id.in_(order_ids))
            .order_by(OrderItemModel.order_id, OrderItemModel.batch_sequence, OrderItemModel.id)
        )
        if self.strategy == STRATEGY_ROW:
            order_stmt = order_stmt.with_for_update(nowait=nowait)
            item_stmt = item_stmt.with_for_update(nowait=nowait)

        orders = {o.id: o for o in session.execute(order_stmt).scalars().all()}
        for order_id in order_ids:
            if order_id not in orders:
                raise NotFoundError("Pedido", order_id)

        items_by_order: Dict[int, List[OrderItemModel]] = {order_id: [] for order_id in order_ids}
        for item in session.execute(item_stmt).scalars().all():
            items_by_order[item.order_id].append(item)

        return [OrderSnapshot.from_model(orders[i], items_by_order[i]) for i in order_ids]

    def _translate_db_error(self, exc: DBAPIError) -> Optional[AppError]:
        orig = getattr(exc, "orig", None)
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)

        if code == PG_LOCK_NOT_AVAILABLE:
            record_lock_failure("timeout")
            # NOWAIT e lock_timeout usam o mesmo SQLSTATE
            return LockUnavailableError("Pedido em uso por outra operação.") if self._in_try(exc) \
                else LockTimeoutError("Tempo limite excedido aguardando o lock do pedido.")
        if code == PG_QUERY_CANCELED:
            record_lock_failure("timeout")
            return LockTimeoutError("Tempo limite da transação excedido.")
        if code in (PG_SERIALIZATION_FAILURE, PG_DEADLOCK_DETECTED):
            record_lock_failure("conflict")
            logger.warning(f"[Pedidos] Conflito de transação ({code}), operação pode ser repetida")
            return TransactionConflictError("Conflito de transação, tente novamente.")
        if isinstance(exc, OperationalError) and "database is locked" in str(orig):
            record_lock_failure("timeout")
            return LockTimeoutError("Tempo limite excedido aguardando o banco de dados.")
        return None

    @staticmethod
    def _in_try(exc: DBAPIError) -> bool:
        statement = (exc.statement or "").upper()
        return "NOWAIT" in statement
