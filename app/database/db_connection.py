# app/database/db_connection.py

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from ..config.settings import (
    DB_CONFIG, DB_SSL_MODE, DATABASE_URL, DB_TIMEZONE, ORDER_LOCK_TIMEOUT_SECONDS
)

# Base única para todos os models
Base = declarative_base()


def montar_url_conexao() -> str:
    """Retorna DATABASE_URL ou monta a URL do PostgreSQL a partir de DB_CONFIG."""
    if DATABASE_URL:
        return DATABASE_URL

    # Validação mínima de config
    missing = [k for k in ('database', 'user', 'password', 'host', 'port') if not DB_CONFIG.get(k)]
    if missing:
        raise RuntimeError(f"Configuração do banco inválida, faltando variáveis: {', '.join(missing)}")

    # SSL opcional via query
    ssl_query = f"?sslmode={DB_SSL_MODE}" if DB_SSL_MODE else ""
    return (
        f"postgresql://{DB_CONFIG['user']}:{DB_CONFIG['password']}"
        f"@{DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['database']}{ssl_query}"
    )


def criar_engine(url: str) -> Engine:
    """
    Cria o engine de acordo com o dialeto.

    - PostgreSQL: timezone da sessão configurado via options
    - SQLite: liberado para múltiplas threads, com foreign keys ligadas
      (ON DELETE CASCADE de itens e logs) e transações abertas com
      BEGIN IMMEDIATE: escritas concorrentes esperam o busy timeout em vez
      de falhar no meio da transação
    """
    if url.startswith("sqlite"):
        new_engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": ORDER_LOCK_TIMEOUT_SECONDS},
        )

        @event.listens_for(new_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # transação controlada pelo SQLAlchemy (evento begin abaixo)
            dbapi_connection.isolation_level = None

        @event.listens_for(new_engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return new_engine

    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={
            "options": f"-c timezone={DB_TIMEZONE}"
        }
    )


engine = criar_engine(montar_url_conexao())

# Configura o sessionmaker
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


# Dependency para FastAPI (somente leitura; mutações de pedido usam o OrderLockCoordinator)
def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
