from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-ID"

# Contexto por request (thread/task-local) com o identificador de rastreio.
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def current_request_id() -> Optional[str]:
    return _request_id.get()


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or current_request_id()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Lê o X-Request-ID enviado pelo cliente (ou gera um novo),
    disponibiliza em request.state/contexto e devolve no header da resposta.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = _request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
