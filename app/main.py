from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.exceptions import AppError
from app.core.exception_handlers import (
    app_error_handler,
    validation_exception_handler,
    http_exception_handler,
    general_exception_handler,
)
from app.core.request_context import RequestIdMiddleware
from app.utils.logger import logger
from app.utils.prometheus_metrics import PrometheusMiddleware, metrics_response
from app.config.settings import CORS_ORIGINS, CORS_ALLOW_ALL, BASE_URL, ENABLE_DOCS

# ───────────────────────────
# Importar modelos antes das rotas
# Garante que todos os modelos estejam registrados no SQLAlchemy
# antes de qualquer query ser executada
# ───────────────────────────
from app.api.catalog.router.router import router as catalog_router
from app.api.orders.router.router import api_orders
from app.api.reports.router.router import router as reports_router


# ──────────────────────────
# Instância FastAPI
# ──────────────────────────
app = FastAPI(
    title="API de PDV - Pedidos de Mesa",
    version="1.0.0",
    description="Pedidos de mesa, fechamento de conta e relatórios de vendas",
    docs_url=("/swagger" if ENABLE_DOCS else None),
    redoc_url=("/redoc" if ENABLE_DOCS else None),
    openapi_url=("/openapi.json" if ENABLE_DOCS else None),
    servers=([{"url": BASE_URL, "description": "Base URL do ambiente"}] if BASE_URL else None),
    redirect_slashes=False  # Evita redirecionamento 307 quando URL não termina com /
)

# ───────────────────────────
# Exception Handlers Globais
# ───────────────────────────
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# ───────────────────────────
# Middlewares
# ───────────────────────────
# IMPORTANTE: A ordem dos middlewares importa!
# Middlewares são executados na ORDEM REVERSA da adição (último adicionado = primeiro executado)
# ───────────────────────────

# Prometheus Middleware (para coletar métricas)
app.add_middleware(PrometheusMiddleware)

# X-Request-ID em todas as respostas (inclusive de erro)
app.add_middleware(RequestIdMiddleware)

# CORS (adicionado por último, será executado primeiro)
# - Se CORS_ALLOW_ALL=true => allow_origins=["*"], allow_credentials=False
# - Caso contrário => allow_origins=CORS_ORIGINS (se vazio cai para ["*"]), allow_credentials=True somente quando houver origens explícitas
if CORS_ALLOW_ALL:
    allowed_origins = ["*"]
    allow_credentials = False
else:
    allowed_origins = CORS_ORIGINS or ["*"]
    allow_credentials = bool(CORS_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ───────────────────────────
# Startup
# ───────────────────────────
@app.on_event("startup")
def startup():
    from app.database.init_db import inicializar_banco

    logger.info("Iniciando API e banco de dados...")
    inicializar_banco()
    logger.info("API iniciada com sucesso.")


@app.on_event("shutdown")
def shutdown():
    logger.info("API encerrada.")

# ───────────────────────────
# Rotas
# ───────────────────────────

@app.get("/")
async def root():
    return {"status": "ok", "message": "API is running"}

@app.get("/health")
async def health():
    return {"status": "healthy"}

@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Endpoint de métricas Prometheus (público)."""
    return metrics_response()

# ───────────────────────────
# Routers
# ───────────────────────────
app.include_router(api_orders)
app.include_router(catalog_router)
app.include_router(reports_router)
