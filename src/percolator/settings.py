# src/percolator/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from src.percolator.core.instruments import DEFAULT_INSTRUMENTS, Instrument

CONFIG_ENV = "SIMULATOR_CONFIG"
CONFIG_RELPATH = Path("config") / "simulator.yaml"


@dataclass(frozen=True)
class LedgerConfig:
    cash: float = 10_000.0
    leverage: float = 10.0
    initial_margin_rate: float = 0.1
    maintenance_margin_rate: float = 0.05


@dataclass(frozen=True)
class FeedConfig:
    enabled: bool = True
    base_url: str = "https://api.binance.com"
    price_poll_sec: float = 1.0
    candles_poll_sec: float = 15.0
    candle_interval: str = "1m"
    candle_limit: int = 500
    # None -> a price never goes stale
    stale_after_sec: Optional[float] = 30.0
    timeout_sec: float = 10.0
    max_retries: int = 3


@dataclass(frozen=True)
class StreamConfig:
    snapshot_interval_sec: float = 1.0
    queue_size: int = 256


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3000


@dataclass(frozen=True)
class SimulatorConfig:
    instruments: tuple[Instrument, ...] = DEFAULT_INSTRUMENTS
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    tape_capacity: int = 400
    ambient_period_sec: float = 1.2
    trades_default_limit: int = 120
    path: Optional[str] = None


# ============================================================
# parsing
# ============================================================

def _section(raw: dict, key: str) -> dict:
    v = raw.get(key) or {}
    if not isinstance(v, dict):
        raise ValueError(f"config section '{key}' must be a mapping")
    return v


def _float(name: str, v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number (got {v!r})") from None


def _positive(name: str, v: Any) -> float:
    x = _float(name, v)
    if x <= 0:
        raise ValueError(f"{name} must be > 0 (got {v!r})")
    return x


_INSTRUMENT_KEYS = ("symbol", "tick", "base_qty", "print_qty_min", "print_qty_max")


def _parse_instruments(rows: Any) -> tuple[Instrument, ...]:
    if rows is None:
        return DEFAULT_INSTRUMENTS
    if not isinstance(rows, list) or not rows:
        raise ValueError("'instruments' must be a non-empty list")

    out = []
    for i, r in enumerate(rows):
        if not isinstance(r, dict):
            raise ValueError("each instrument must be a mapping")
        missing = [k for k in _INSTRUMENT_KEYS if r.get(k) is None]
        if missing:
            raise ValueError(f"instruments[{i}]: missing {', '.join(missing)}")

        p = f"instruments[{i}]"
        out.append(
            Instrument(
                symbol=str(r["symbol"]).upper(),
                tick=_float(f"{p}.tick", r["tick"]),
                base_qty=_float(f"{p}.base_qty", r["base_qty"]),
                print_qty_min=_float(f"{p}.print_qty_min", r["print_qty_min"]),
                print_qty_max=_float(f"{p}.print_qty_max", r["print_qty_max"]),
                print_qty_decimals=int(_float(f"{p}.print_qty_decimals", r.get("print_qty_decimals", 4))),
                price_decimals=int(_float(f"{p}.price_decimals", r.get("price_decimals", 2))),
            )
        )
    return tuple(out)


def config_from_dict(raw: dict | None, *, path: str | None = None) -> SimulatorConfig:
    """
    Missing keys fall back to the reference deployment values.
    Raises ValueError on malformed values.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValueError("config root must be a mapping")

    lc = _section(raw, "ledger")
    ledger = LedgerConfig(
        cash=_float("ledger.cash", lc.get("cash", LedgerConfig.cash)),
        leverage=_positive("ledger.leverage", lc.get("leverage", LedgerConfig.leverage)),
        initial_margin_rate=_float(
            "ledger.initial_margin_rate",
            lc.get("initial_margin_rate", LedgerConfig.initial_margin_rate),
        ),
        maintenance_margin_rate=_float(
            "ledger.maintenance_margin_rate",
            lc.get("maintenance_margin_rate", LedgerConfig.maintenance_margin_rate),
        ),
    )
    for name, rate in (
        ("ledger.initial_margin_rate", ledger.initial_margin_rate),
        ("ledger.maintenance_margin_rate", ledger.maintenance_margin_rate),
    ):
        if not (0 < rate < 1):
            raise ValueError(f"{name} must be in (0, 1)")

    fc = _section(raw, "feed")
    stale = fc.get("stale_after_sec", FeedConfig.stale_after_sec)
    feed = FeedConfig(
        enabled=bool(fc.get("enabled", FeedConfig.enabled)),
        base_url=str(fc.get("base_url", FeedConfig.base_url)),
        price_poll_sec=_positive("feed.price_poll_sec", fc.get("price_poll_sec", FeedConfig.price_poll_sec)),
        candles_poll_sec=_positive("feed.candles_poll_sec", fc.get("candles_poll_sec", FeedConfig.candles_poll_sec)),
        candle_interval=str(fc.get("candle_interval", FeedConfig.candle_interval)),
        candle_limit=int(_positive("feed.candle_limit", fc.get("candle_limit", FeedConfig.candle_limit))),
        stale_after_sec=None if stale is None else _positive("feed.stale_after_sec", stale),
        timeout_sec=_positive("feed.timeout_sec", fc.get("timeout_sec", FeedConfig.timeout_sec)),
        max_retries=int(_positive("feed.max_retries", fc.get("max_retries", FeedConfig.max_retries))),
    )

    sc = _section(raw, "stream")
    stream = StreamConfig(
        snapshot_interval_sec=_positive(
            "stream.snapshot_interval_sec",
            sc.get("snapshot_interval_sec", StreamConfig.snapshot_interval_sec),
        ),
        queue_size=int(_positive("stream.queue_size", sc.get("queue_size", StreamConfig.queue_size))),
    )

    srv = _section(raw, "server")
    server = ServerConfig(
        host=str(os.getenv("HOST") or srv.get("host", ServerConfig.host)),
        port=int(_positive("server.port", os.getenv("PORT") or srv.get("port", ServerConfig.port))),
    )

    return SimulatorConfig(
        instruments=_parse_instruments(raw.get("instruments")),
        ledger=ledger,
        feed=feed,
        stream=stream,
        server=server,
        tape_capacity=int(_positive("tape_capacity", raw.get("tape_capacity", 400))),
        ambient_period_sec=_positive("ambient_period_sec", raw.get("ambient_period_sec", 1.2)),
        trades_default_limit=int(_positive("trades_default_limit", raw.get("trades_default_limit", 120))),
        path=path,
    )


# ============================================================
# locating / loading
# ============================================================

def _find_cfg_candidate(base: Path) -> Optional[Path]:
    base = base.resolve()
    for _ in range(0, 12):
        p = (base / CONFIG_RELPATH).resolve()
        if p.exists():
            return p
        if base.parent == base:
            break
        base = base.parent
    return None


def resolve_config_path() -> Optional[Path]:
    """
    SIMULATOR_CONFIG env first (must exist), then config/simulator.yaml
    found by walking up from the CWD and from this module.
    """
    p_env = os.environ.get(CONFIG_ENV)
    if p_env:
        cand = Path(p_env).expanduser()
        cand = (Path.cwd() / cand).resolve() if not cand.is_absolute() else cand.resolve()
        if not cand.exists():
            raise FileNotFoundError(f"{CONFIG_ENV} points to a missing file: {cand}")
        return cand

    return _find_cfg_candidate(Path.cwd()) or _find_cfg_candidate(Path(__file__).resolve().parent)


def load_config(path: Path | str | None = None) -> SimulatorConfig:
    """No file found -> built-in defaults."""
    p = Path(path) if path is not None else resolve_config_path()
    if p is None:
        return config_from_dict({})

    with Path(p).open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return config_from_dict(raw, path=str(p))
