# rwms/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rwms.api.problem import make_problem, problem_from_domain
from rwms.services.errors import DomainError

logger = logging.getLogger("rwms.api")

TRACE_HEADER = "X-Trace-Id"


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _req_context(req: Request) -> Dict[str, Any]:
    return {"path": getattr(req.url, "path", ""), "method": req.method}


def _respond(req: Request, status_code: int, content: Dict[str, Any]) -> JSONResponse:
    """
    统一出口：补 trace_id / http_status，并把请求信息并进 context
    （业务 context 的同名键优先）。
    """
    content.setdefault("trace_id", _new_trace_id())
    content.setdefault("http_status", status_code)
    ctx = _req_context(req)
    if isinstance(content.get("context"), dict):
        ctx.update(content["context"])
    content["context"] = ctx
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={TRACE_HEADER: content["trace_id"]},
    )


def _problem_from_http_exc(exc: HTTPException) -> Dict[str, Any]:
    d = exc.detail
    if isinstance(d, dict) and "error_code" in d and "message" in d:
        return dict(d)

    # 框架自身抛的 404 / 405 等：detail 是字符串
    msg = str(d) if d is not None else "Request rejected"
    return make_problem(
        status_code=int(exc.status_code),
        error_code="http_error",
        message=msg,
        details=[{"type": "state", "reason": msg}],
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s] %s %s: %s", trace_id, req.method, req.url.path, exc)
        content = make_problem(
            status_code=500,
            error_code="internal_error",
            message="Internal error, please retry later",
            trace_id=trace_id,
        )
        return _respond(req, 500, content)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(req: Request, exc: RequestValidationError):
        details: List[Dict[str, Any]] = []
        for i, e in enumerate(exc.errors()):
            if not isinstance(e, dict):
                continue
            loc = ".".join(str(x) for x in (e.get("loc") or ()))
            details.append(
                {
                    "type": "validation",
                    "path": loc or f"validation[{i}]",
                    "reason": str(e.get("msg") or e.get("type") or "invalid"),
                }
            )

        content = make_problem(
            status_code=422,
            error_code="request_validation_error",
            message="Invalid request parameters",
            details=details,
        )
        return _respond(req, 422, content)

    @app.exception_handler(HTTPException)
    async def _http_exc(req: Request, exc: HTTPException):
        content = _problem_from_http_exc(exc)
        if exc.status_code < 500:
            logger.info("%s %s -> %s %s", req.method, req.url.path, exc.status_code, content.get("error_code"))
        return _respond(req, int(exc.status_code), content)

    @app.exception_handler(DomainError)
    async def _domain_exc(req: Request, exc: DomainError):
        # GET 路由不包 try，领域错误直接落到这里
        logger.info("%s %s -> %s %s", req.method, req.url.path, exc.http_status, exc.code)
        return _respond(req, int(exc.http_status), problem_from_domain(exc))
