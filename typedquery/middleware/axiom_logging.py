"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Sends one structured event per query request to Axiom: method, path,
query/path parameters, status code, duration and, for failed requests,
the error detail (query validation message or store diagnostic).
Sensitive parameter names are masked.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from typedquery.config import settings

logger = logging.getLogger(__name__)

# 마스킹 대상 키 패턴 — Keys masked in logged parameters
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

_MAX_ERROR_LEN = 500


def _mask(params: dict[str, Any]) -> dict[str, Any]:
    """민감 키 마스킹 — Mask values whose key looks sensitive."""
    return {key: "***" if _SENSITIVE_KEYS.search(key) else value for key, value in params.items()}


def _error_detail(body: bytes) -> str:
    """에러 응답 body에서 사유 추출 — Extract the detail of an error response."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace")[:_MAX_ERROR_LEN]
    detail = data.get("detail", data) if isinstance(data, dict) else data
    if not isinstance(detail, str):
        detail = json.dumps(detail, default=str)
    if len(detail) > _MAX_ERROR_LEN:
        detail = detail[:_MAX_ERROR_LEN] + "..."
    return detail


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 Axiom에 로깅하는 미들웨어.

    Args:
        app: ASGI 앱 (Wrapped application)
        client: Axiom 클라이언트, None이면 설정으로 생성
                (Axiom client; built from settings when None)
        dataset: 데이터셋 이름, None이면 AXIOM_DATASET (Dataset name)
    """

    def __init__(self, app: Any, client: Any = None, dataset: str | None = None) -> None:
        super().__init__(app)
        self._dataset: str = dataset if dataset is not None else settings.AXIOM_DATASET
        self._client: Any = client
        if self._client is None and settings.AXIOM_API_TOKEN and self._dataset:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    def _ingest(self, event: dict[str, Any]) -> None:
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception:
            # 로깅 실패가 요청 처리에 영향주지 않도록 — Never break a request on log failure
            logger.warning("Axiom ingest failed for %s %s", event["method"], event["path"], exc_info=True)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Axiom 미설정 또는 제외 경로 — Pass through
        if self._client is None or request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        event: dict[str, Any] = {"method": request.method, "path": request.url.path, "status_code": 500}
        if request.query_params:
            event["query_params"] = _mask(dict(request.query_params))

        try:
            response = await call_next(request)
            event["status_code"] = response.status_code
            if request.path_params:
                event["path_params"] = dict(request.path_params)

            if response.status_code >= 400:
                body = b""
                async for chunk in response.body_iterator:
                    body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
                event["error"] = _error_detail(body)

                # 소비한 body를 다시 응답으로 반환 — Re-wrap the consumed body
                response = Response(
                    content=body,
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
        except Exception as exc:
            event["error"] = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            event["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            # 블로킹 SDK 호출 — blocking SDK call, run in a worker thread
            await run_in_threadpool(self._ingest, event)

        return response
