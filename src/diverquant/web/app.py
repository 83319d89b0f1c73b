from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from threading import Lock
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from diverquant.config import Settings
from diverquant.engine import SignalHub
from diverquant.rate_limit import SlidingWindowLimiter
from diverquant.signal_log import SignalLog

logger = logging.getLogger(__name__)


class TickRequest(BaseModel):
    instrument: str = Field(min_length=1)
    price: float = Field(gt=0)
    highs: list[float] | None = None
    lows: list[float] | None = None
    closes: list[float] | None = None
    timestamp: datetime | None = None

    @model_validator(mode="after")
    def _check_windows(self) -> TickRequest:
        lengths = {len(w) for w in (self.highs, self.lows, self.closes) if w is not None}
        if len(lengths) > 1:
            raise ValueError("highs, lows and closes must have the same length")
        if 0 in lengths:
            raise ValueError("price windows must not be empty")
        return self


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title=settings.app_name, version="0.1.0")
    app.state.settings = settings
    app.state.hub = SignalHub(settings.engine_config(), max_instruments=settings.max_instruments)
    app.state.signal_log = SignalLog(max_size=settings.signal_log_size)
    limiter = SlidingWindowLimiter(settings.rate_limit_per_minute)
    hub_lock = Lock()

    @app.middleware("http")
    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid4().hex)
        started = time.perf_counter()
        response: Response
        if request.url.path.startswith("/api/"):
            decision = limiter.check(_client_key(request))
            if not decision.allowed:
                response = JSONResponse(status_code=429, content={"detail": "Rate limit exceeded"})
                response.headers["Retry-After"] = str(max(1, int(decision.retry_after)))
            else:
                response = await call_next(request)
        else:
            response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.2f}"
        logger.info(
            "%s %s status=%s request_id=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            request_id,
            elapsed_ms,
        )
        return response

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok", "env": settings.env, "app": settings.app_name}

    @app.get("/readyz")
    def readyz() -> dict[str, str]:
        return {"status": "ready"}

    @app.post("/api/ticks")
    def ingest_tick(req: TickRequest) -> dict[str, object]:
        try:
            with hub_lock:
                signal = app.state.hub.process_tick(
                    req.instrument,
                    req.price,
                    highs=req.highs,
                    lows=req.lows,
                    closes=req.closes,
                    timestamp=req.timestamp,
                )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if signal is None:
            return {"signal": None}
        app.state.signal_log.record(signal)
        return {"signal": signal.to_payload()}

    @app.get("/api/instruments")
    def instruments() -> dict[str, list[str]]:
        with hub_lock:
            return {"instruments": app.state.hub.instruments()}

    @app.post("/api/instruments/{instrument:path}/reset")
    def reset_instrument(instrument: str) -> dict[str, str]:
        try:
            with hub_lock:
                app.state.hub.reset(instrument)
        except KeyError as exc:
            raise HTTPException(
                status_code=404,
                detail=f"Unknown instrument '{instrument}'",
            ) from exc
        return {"instrument": instrument, "status": "reset"}

    @app.get("/api/signals")
    def signals(
        limit: int = Query(default=50, gt=0, le=1000),
        instrument: str | None = None,
    ) -> dict[str, object]:
        recent = app.state.signal_log.recent(limit=limit, instrument=instrument)
        return {"signals": [s.to_payload() for s in recent]}

    @app.get("/api/stats")
    def stats() -> dict[str, float | int]:
        return app.state.signal_log.stats().to_dict()

    @app.get("/api/export")
    def export() -> dict[str, object]:
        return app.state.signal_log.export()

    return app


def run(host: str = "127.0.0.1", port: int = 8000) -> None:
    uvicorn.run("diverquant.web.app:create_app", factory=True, host=host, port=port)
