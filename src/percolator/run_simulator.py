# src/percolator/run_simulator.py
from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from src.percolator.api.app import create_app
from src.percolator.core.prints.ambient_prints import AmbientPrintGenerator
from src.percolator.market.binance.price_poller import PricePoller
from src.percolator.market.binance.rest import BinanceSpotREST
from src.percolator.market.price_cache import MarketPriceCache
from src.percolator.service import PaperTradingService
from src.percolator.settings import load_config

log = logging.getLogger("percolator.run_simulator")


# ============================================================
# LOGGING
# ============================================================

def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s",
    )


# ============================================================
# MAIN
# ============================================================

def main() -> None:
    # .env first: HOST / PORT / SIMULATOR_CONFIG may come from there
    load_dotenv()
    _setup_logging()

    cfg = load_config()
    log.info("=== RUN SIMULATOR START ===")
    log.info("Config: %s", cfg.path or "<defaults>")

    prices = MarketPriceCache(stale_after_sec=cfg.feed.stale_after_sec)
    service = PaperTradingService.from_config(cfg, prices=prices)
    log.info(
        "[BOOT] ledger cash=%.2f leverage=%.1f symbols=%s",
        cfg.ledger.cash,
        cfg.ledger.leverage,
        ",".join(service.instruments.symbols),
    )

    poller: PricePoller | None = None
    if cfg.feed.enabled:
        rest = BinanceSpotREST(
            base_url=cfg.feed.base_url,
            timeout=cfg.feed.timeout_sec,
            max_retries=cfg.feed.max_retries,
        )
        poller = PricePoller(
            rest=rest,
            cache=prices,
            symbols=service.instruments.symbols,
            price_poll_sec=cfg.feed.price_poll_sec,
            candles_poll_sec=cfg.feed.candles_poll_sec,
            candle_interval=cfg.feed.candle_interval,
            candle_limit=cfg.feed.candle_limit,
        )
        poller.prime()
        poller.start()
    else:
        log.warning("[BOOT] feed disabled -> every symbol stays PriceUnavailable")

    prints = AmbientPrintGenerator(
        instruments=service.instruments,
        prices=prices,
        tape=service.tape,
        period_sec=cfg.ambient_period_sec,
    )
    prints.start()

    app = create_app(service)
    log.info("Sim dashboard running on http://%s:%d", cfg.server.host, cfg.server.port)
    try:
        uvicorn.run(app, host=cfg.server.host, port=cfg.server.port, log_level="info")
    finally:
        prints.stop()
        if poller is not None:
            poller.stop()
        log.info("=== RUN SIMULATOR STOP ===")


if __name__ == "__main__":
    main()
