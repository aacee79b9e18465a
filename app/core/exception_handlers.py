"""
Exception handlers globais para capturar e logar erros da API.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import traceback
import json
import math

from app.core.exceptions import AppError
from app.core.request_context import get_request_id
from app.utils.logger import logger


async def app_error_handler(request: Request, exc: AppError):
    """
    Handler para erros tipados do domínio (AppError).
    O `code` da resposta é o kind do erro, estável para o cliente.
    """
    status_code = exc.status_code
    log_message = (
        f"[APP ERROR {exc.kind.value}] {request.method} {request.url.path} - {exc.message}"
    )
    if status_code >= 500:
        logger.error(log_message)
    else:
        logger.warning(log_message)

    content = exc.to_dict()
    content["request_id"] = get_request_id(request)
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content), headers=headers)


def _json_safe(value):
    """Troca floats não finitos (NaN, inf) por texto; JSON não os representa."""
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler para erros de validação (422) do FastAPI/Pydantic.
    Registra os erros detalhados nos logs.
    """
    errors = exc.errors()
    error_details = []

    for error in errors:
        field = ".".join(str(loc) for loc in error.get("loc", []))
        error_details.append({
            "field": field,
            "type": error.get("type", "unknown"),
            "message": error.get("msg", "Erro de validação"),
            "input": _json_safe(error.get("input")),
        })

    # Log detalhado do erro
    logger.error(
        f"[VALIDATION ERROR 422] {request.method} {request.url.path} - "
        f"Erros de validação detectados:\n{json.dumps(jsonable_encoder(error_details), indent=2, ensure_ascii=False)}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({
            "code": "VALIDATION_ERROR",
            "message": "Erro de validação nos dados fornecidos",
            "details": error_details,
            "request_id": get_request_id(request),
        })
    )


async def http_exception_handler(request: Request, exc):
    """
    Handler para HTTPExceptions.
    Registra erros HTTP nos logs com detalhes.
    """
    status_code = exc.status_code

    log_message = (
        f"[HTTP ERROR {status_code}] {request.method} {request.url.path} - "
        f"Detalhes: {exc.detail}"
    )
    if status_code >= 500:
        logger.error(log_message)
    elif status_code >= 400:
        logger.warning(log_message)

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc.detail),
            "status_code": status_code,
            "request_id": get_request_id(request),
        }
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handler para exceções não tratadas.
    Registra erros críticos nos logs.
    """
    logger.error(
        f"[UNHANDLED EXCEPTION] {request.method} {request.url.path} - "
        f"{type(exc).__name__}: {str(exc)}"
    )
    logger.error(f"[UNHANDLED EXCEPTION] Traceback completo:\n{traceback.format_exc()}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "Erro interno do servidor",
            "request_id": get_request_id(request),
        }
    )
