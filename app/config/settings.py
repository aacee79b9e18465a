import os
from dotenv import load_dotenv
from pathlib import Path

# Carrega o .env manualmente se estiver fora do Docker
if not os.getenv("RUNNING_IN_DOCKER"):
    dotenv_path = Path(__file__).resolve().parents[2] / ".env"
    load_dotenv(dotenv_path=dotenv_path)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# Configuração de conexão
DB_CONFIG = {
    'database': os.getenv('DB_NAME'),
    'user': os.getenv('DB_USER'),
    'password': os.getenv('DB_PASSWORD'),
    'host': os.getenv('DB_HOST'),
    'port': int(os.getenv('DB_PORT', 5432)),
}

# SSL do banco (opcional)
DB_SSL_MODE = os.getenv('DB_SSL_MODE')  # ex.: require, verify-ca, verify-full

# URL completa (tem prioridade sobre DB_CONFIG). Ex.: sqlite:///./pos.db
DATABASE_URL = os.getenv("DATABASE_URL")

# Timezone usado nos timestamps e nos agrupamentos por dia/hora dos relatórios
DB_TIMEZONE = os.getenv("DB_TIMEZONE", "Asia/Bangkok")

# Locks de pedido (segundos)
ORDER_LOCK_TIMEOUT_SECONDS = float(os.getenv("ORDER_LOCK_TIMEOUT_SECONDS", 10))
ORDER_MULTI_LOCK_TIMEOUT_SECONDS = float(os.getenv("ORDER_MULTI_LOCK_TIMEOUT_SECONDS", 15))
ORDER_TRY_LOCK_TIMEOUT_SECONDS = float(os.getenv("ORDER_TRY_LOCK_TIMEOUT_SECONDS", 5))
# auto | row | mutex
ORDER_LOCK_STRATEGY = os.getenv("ORDER_LOCK_STRATEGY", "auto").lower()

# Regras de negócio
MAX_DISCOUNT_PERCENT = int(os.getenv("MAX_DISCOUNT_PERCENT", 50))
MAX_ITEM_QUANTITY = int(os.getenv("MAX_ITEM_QUANTITY", 999))
MAX_TABLE_NUMBER = int(os.getenv("MAX_TABLE_NUMBER", 999))
MAX_VOID_REASON_LENGTH = int(os.getenv("MAX_VOID_REASON_LENGTH", 500))

# Paginação
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 20))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))

# CORS
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
CORS_ALLOW_ALL = _env_bool("CORS_ALLOW_ALL")

# FastAPI / App
BASE_URL = os.getenv("BASE_URL", "")
ENABLE_DOCS = _env_bool("ENABLE_DOCS", "true")

# Logs
LOG_DIR = os.getenv("LOG_DIR")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Popula o cardápio padrão no startup quando a tabela de produtos está vazia
SEED_DEFAULT_PRODUCTS = _env_bool("SEED_DEFAULT_PRODUCTS")
