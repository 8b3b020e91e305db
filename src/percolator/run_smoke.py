# src/percolator/run_smoke.py
import logging

from src.percolator.core.errors import PaperTradingError
from src.percolator.market.price_cache import MarketPriceCache
from src.percolator.service import PaperTradingService
from src.percolator.settings import load_config


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("percolator.smoke")

    logger.info("=== SIMULATOR SMOKE START ===")

    # offline: fixed marks, no feed
    cfg = load_config()
    prices = MarketPriceCache()
    prices.update_price("BTCUSDT", 50_000.0)
    prices.update_price("ETHUSDT", 3_000.0)

    service = PaperTradingService.from_config(cfg, prices=prices)
    sub = service.subscribe()

    steps = [
        ("BTCUSDT", "buy", 0.1),
        ("ETHUSDT", "sell", 1.0),
        ("BTCUSDT", "sell", 5.0),   # expected: insufficient margin
    ]
    for symbol, side, qty in steps:
        try:
            result = service.place_order(symbol, side, qty)
            logger.info("fill: %s", result.fill.to_payload())
        except PaperTradingError as e:
            logger.info("rejected: %s", e)

    prices.update_price("BTCUSDT", 51_000.0)
    service.place_order("BTCUSDT", "sell", 0.1)

    snap = service.get_snapshot()
    logger.info("snapshot: %s", snap.to_payload())
    logger.info("tape: %d trades, subscriber queue: %d events", len(service.tape), sub.pending())

    # drain what a viewer would have seen: initial snapshot, then trades + snapshots
    kinds = []
    evt = sub.next_event(0)
    while evt is not None:
        kinds.append(evt.type.value)
        evt = sub.next_event(0)
    logger.info("stream: %s", " ".join(kinds))

    book = service.get_order_book("BTCUSDT")
    logger.info("book mid=%s best bid=%s best ask=%s", book.mid, book.bids[-1].price, book.asks[-1].price)

    service.unsubscribe(sub)
    logger.info("=== SIMULATOR SMOKE OK ===")


if __name__ == "__main__":
    main()
