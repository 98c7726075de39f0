from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.eventbus.kafka import close_kafka_event_bus
from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware

from .api.health import router as health_router
from .api.v1 import api_router
from .exceptions import ErrorKind, RewardError


logger = logging.getLogger(__name__)


STATUS_BY_ERROR_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INSUFFICIENT_FUNDS: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.INSUFFICIENT_INVENTORY: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_BUDGET: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_REDEEMED: status.HTTP_409_CONFLICT,
    ErrorKind.EXPIRED: status.HTTP_410_GONE,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _error_body(kind: str, message: str) -> dict[str, dict[str, str]]:
    return {"error": {"kind": kind, "message": message}}


async def handle_reward_error(request: Request, exc: RewardError) -> JSONResponse:
    logger.info(
        "request rejected: %s",
        exc.message,
        extra={"error_kind": exc.kind.value, "path": request.url.path},
    )
    return JSONResponse(
        status_code=STATUS_BY_ERROR_KIND[exc.kind],
        content=_error_body(exc.kind.value, exc.message),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(ErrorKind.VALIDATION.value, message),
    )


HTTP_ERROR_KINDS: dict[int, ErrorKind] = {
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorKind.UNAUTHORIZED,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
}


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # 인증 헤더 누락, 없는 경로 등 프레임워크 단 오류도 같은 바디로 응답한다.
    kind = HTTP_ERROR_KINDS.get(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(kind.value if kind else "http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    # 스택 트레이스는 RequestTraceMiddleware 가 남긴다.
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal", "Internal server error"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    yield
    close_kafka_event_bus()


def create_app() -> FastAPI:
    setup_logger()
    app = FastAPI(
        title="Reward Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)

    app.add_exception_handler(RewardError, handle_reward_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, handle_request_validation_error  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        StarletteHTTPException, handle_http_exception  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn
    from dotenv import load_dotenv

    # 로컬 실행 시 .env 의 MONGO_URI, KAFKA_BOOTSTRAP_SERVERS 등을 읽는다.
    load_dotenv()

    port = int(os.getenv("REWARD_SERVICE_PORT", "8003"))
    uvicorn.run(
        "reward_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
