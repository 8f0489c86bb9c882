"""Axiom 로깅 미들웨어 테스트.

Axiom logging middleware tests with a recording client in place of the
Axiom SDK client.
"""

import threading
from typing import Any

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from typedquery.middleware.axiom_logging import AxiomLoggingMiddleware
from typedquery.utils.exceptions import BadRequestError


class RecordingClient:
    """ingest_events 호출을 기록하는 가짜 클라이언트."""

    def __init__(self, fail: bool = False) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []
        self.threads: list[int] = []
        self.fail = fail

    def ingest_events(self, dataset: str, events: list[dict[str, Any]]) -> None:
        self.threads.append(threading.get_ident())
        if self.fail:
            raise ConnectionError("axiom unreachable")
        self.events.extend((dataset, event) for event in events)


def _app(client: RecordingClient) -> FastAPI:
    app = FastAPI()
    app.add_middleware(AxiomLoggingMiddleware, client=client, dataset="queries")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/items/{item_id}")
    async def item(item_id: int, api_key: str = "") -> dict[str, int]:
        if item_id < 0:
            raise BadRequestError("offset must be a non-negative integer")
        return {"id": item_id}

    return app


async def _get(app: FastAPI, url: str, **kwargs: Any):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        return await ac.get(url, **kwargs)


class TestAxiomLogging:
    """요청 로깅 테스트."""

    async def test_logs_request(self):
        recorder = RecordingClient()
        res = await _get(_app(recorder), "/items/3", params={"api_key": "secret-value"})
        assert res.status_code == 200
        dataset, event = recorder.events[0]
        assert dataset == "queries"
        assert event["method"] == "GET"
        assert event["path"] == "/items/3"
        assert event["status_code"] == 200
        assert event["query_params"] == {"api_key": "***"}
        assert "error" not in event

    async def test_logs_error_detail(self):
        recorder = RecordingClient()
        res = await _get(_app(recorder), "/items/-1")
        assert res.status_code == 400
        assert res.json()["detail"] == "offset must be a non-negative integer"
        _, event = recorder.events[0]
        assert event["status_code"] == 400
        assert event["error"] == "offset must be a non-negative integer"

    async def test_skips_health(self):
        recorder = RecordingClient()
        await _get(_app(recorder), "/health")
        assert recorder.events == []

    async def test_ingest_failure_does_not_break_request(self):
        res = await _get(_app(RecordingClient(fail=True)), "/items/1")
        assert res.status_code == 200
        assert res.json() == {"id": 1}

    async def test_ingest_runs_off_event_loop(self):
        """블로킹 ingest는 워커 스레드에서 실행."""
        recorder = RecordingClient()
        await _get(_app(recorder), "/items/2")
        assert len(recorder.threads) == 1
        assert recorder.threads[0] != threading.get_ident()
