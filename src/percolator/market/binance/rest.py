# src/percolator/market/binance/rest.py
from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

BASE_URL = "https://api.binance.com"
USER_AGENT = "percolator-sim/1.0"

log = logging.getLogger("src.percolator.market.binance.rest")


class BinanceSpotREST:
    """
    Binance spot REST client (public endpoints only), with retry/backoff for 429/5xx.
    """

    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.max_retries = max(1, int(max_retries))
        self.backoff_base = float(backoff_base)
        self._sleep = sleep

        self.sess = session or requests.Session()
        self.sess.headers.update({"User-Agent": USER_AGENT})

    # ---------------------------------------------------------------------
    # CORE REQUEST (WITH BACKOFF)
    # ---------------------------------------------------------------------

    def _request(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        req_params = dict(params or {})

        last_err: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                r = self.sess.request(
                    method=method,
                    url=url,
                    params=req_params,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                last_err = e
                sleep = self.backoff_base * attempt
                log.warning(
                    "Binance request error (%s %s), retry %d/%d, sleep %.1fs | %r",
                    method, path, attempt, self.max_retries, sleep, e,
                )
                self._sleep(sleep)
                continue

            # --- RATE LIMIT / TEMP SERVER ERRORS ---
            if r.status_code == 429 or r.status_code >= 500:
                last_err = RuntimeError(f"Binance HTTP {r.status_code} {method} {path}")
                sleep = self.backoff_base * attempt
                log.warning(
                    "Binance %d (%s %s), retry %d/%d, sleep %.1fs",
                    r.status_code, method, path, attempt, self.max_retries, sleep,
                )
                self._sleep(sleep)
                continue

            # --- OTHER ERRORS (not retried) ---
            if r.status_code >= 400:
                try:
                    payload = r.json()
                except ValueError:
                    raise RuntimeError(
                        f"Binance HTTP {r.status_code} {method} {path}: {r.text[:500]}"
                    )
                raise RuntimeError(
                    f"Binance HTTP {r.status_code} {method} {path}: "
                    f"code={payload.get('code')} msg={payload.get('msg')}"
                )

            # --- OK ---
            if r.text:
                return r.json()
            return {}

        raise RuntimeError(
            f"Binance request failed after {self.max_retries} retries: {method} {path} | last_err={last_err!r}"
        )

    def _get(self, path: str, *, params: dict[str, Any] | None = None):
        return self._request("GET", path, params=params)

    # ---------------------------------------------------------------------
    # API METHODS
    # ---------------------------------------------------------------------

    def ticker_prices(self) -> list[dict]:
        # [{"symbol": "BTCUSDT", "price": "50000.00"}, ...]
        return self._get("/api/v3/ticker/price")

    def klines(self, symbol: str, *, interval: str = "1m", limit: int = 500) -> list[list]:
        params = {"symbol": symbol, "interval": interval, "limit": int(limit)}
        return self._get("/api/v3/klines", params=params)
