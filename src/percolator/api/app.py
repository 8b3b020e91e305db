# src/percolator/api/app.py
from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse

from src.percolator.core.errors import PaperTradingError
from src.percolator.service import PaperTradingService

DEFAULT_SYMBOL = "BTCUSDT"

# idle wait between queue polls; waits on the event loop, not in the threadpool
STREAM_IDLE_SEC = 0.05


def _symbol(raw: Optional[str], default: str = DEFAULT_SYMBOL) -> str:
    return (raw or default).strip().upper()


def create_app(service: PaperTradingService) -> FastAPI:
    app = FastAPI(title="percolator-sim")
    app.state.service = service

    @app.exception_handler(PaperTradingError)
    async def _paper_trading_error(_request: Request, exc: PaperTradingError):
        return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})

    # ------------------------------------------------------------------
    # market data
    # ------------------------------------------------------------------
    @app.get("/api/tickers")
    def tickers():
        return {s: (t.to_payload() if t is not None else None) for s, t in service.get_tickers().items()}

    @app.get("/api/candles")
    def candles(symbol: Optional[str] = Query(None)):
        return [c.to_payload() for c in service.get_candles(_symbol(symbol))]

    @app.get("/api/orderbook")
    def orderbook(symbol: Optional[str] = Query(None)):
        return service.get_order_book(_symbol(symbol)).to_payload()

    @app.get("/api/trades")
    def trades(symbol: Optional[str] = Query(None), limit: Optional[int] = Query(None, ge=0)):
        sym = _symbol(symbol, default="") or None
        return [t.to_payload() for t in service.get_trades(sym, limit)]

    # ------------------------------------------------------------------
    # portfolio / orders
    # ------------------------------------------------------------------
    @app.get("/api/portfolio")
    def portfolio():
        return service.get_snapshot().to_payload()

    @app.post("/api/order")
    async def order(request: Request):
        try:
            body: Any = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return JSONResponse(status_code=400, content={"ok": False, "error": "JSON object body required"})

        symbol = body.get("symbol")
        symbol = symbol.strip().upper() if isinstance(symbol, str) else symbol

        result = await run_in_threadpool(service.place_order, symbol, body.get("side"), body.get("qty"))
        return {"ok": True, "fill": result.fill.to_payload(), "snapshot": result.snapshot.to_payload()}

    # ------------------------------------------------------------------
    # SSE
    # ------------------------------------------------------------------
    @app.get("/events")
    async def events(request: Request):
        async def gen() -> AsyncIterator[bytes]:
            # registered only once the response is actually streaming
            sub = service.subscribe()
            try:
                while not sub.closed:
                    if await request.is_disconnected():
                        return
                    if sub.snapshot_due():
                        # ledger lock: keep it off the event loop
                        evt = await run_in_threadpool(sub.take_snapshot)
                    else:
                        evt = sub.poll()
                    if evt is None:
                        await asyncio.sleep(STREAM_IDLE_SEC)
                        continue
                    yield evt.to_sse().encode("utf-8")
            finally:
                service.unsubscribe(sub)

        return StreamingResponse(
            gen(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @app.get("/health")
    def health():
        return {"ok": True}

    return app
