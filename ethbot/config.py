"""ethbot — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


_REQUIRED_VARS = [
    "COINCHECK_ACCESS_KEY",
    "COINCHECK_SECRET_KEY",
]

SUPPORTED_PAIR = "eth_jpy"

DEFAULT_STRATEGIES = "breakout,moving_average,rsi,retry_open_orders"

_HISTORY_MODES = ("memory", "seeded")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    access_key: str
    secret_key: str = field(repr=False)
    base_url: str = "https://coincheck.com/api"
    trade_pair: str = SUPPORTED_PAIR
    risk_per_trade_pct: float = 5.0
    ma_short_term: int = 10
    ma_long_term: int = 50
    rsi_period: int = 14
    pacing_seconds: float = 2.0
    poll_interval_seconds: int = 300
    request_timeout_seconds: float = 10.0
    timezone: str = "Asia/Tokyo"
    strategies: tuple[str, ...] = tuple(DEFAULT_STRATEGIES.split(","))
    price_history_mode: str = "memory"  # "memory" or "seeded"
    db_path: str = "data/ethbot.db"
    log_level: str = "INFO"
    health_port: int = 8080


def _parse_strategies(raw: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent, or when a value is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    trade_pair = os.environ.get("TRADE_PAIR", SUPPORTED_PAIR)
    if trade_pair != SUPPORTED_PAIR:
        raise ValueError(
            f"Unsupported TRADE_PAIR '{trade_pair}' (only {SUPPORTED_PAIR})"
        )

    short_term = int(os.environ.get("MA_SHORT_TERM", "10"))
    long_term = int(os.environ.get("MA_LONG_TERM", "50"))
    if not 0 < short_term < long_term:
        raise ValueError(
            f"MA_SHORT_TERM must be positive and below MA_LONG_TERM, "
            f"got {short_term} / {long_term}"
        )

    history_mode = os.environ.get("PRICE_HISTORY_MODE", "memory")
    if history_mode not in _HISTORY_MODES:
        raise ValueError(
            f"PRICE_HISTORY_MODE must be one of {', '.join(_HISTORY_MODES)}, "
            f"got '{history_mode}'"
        )

    return Config(
        access_key=os.environ["COINCHECK_ACCESS_KEY"],
        secret_key=os.environ["COINCHECK_SECRET_KEY"],
        base_url=os.environ.get("COINCHECK_BASE_URL", "https://coincheck.com/api"),
        trade_pair=trade_pair,
        risk_per_trade_pct=float(os.environ.get("RISK_PER_TRADE_PCT", "5.0")),
        ma_short_term=short_term,
        ma_long_term=long_term,
        rsi_period=int(os.environ.get("RSI_PERIOD", "14")),
        pacing_seconds=float(os.environ.get("PACING_SECONDS", "2.0")),
        poll_interval_seconds=int(os.environ.get("POLL_INTERVAL_SECONDS", "300")),
        request_timeout_seconds=float(
            os.environ.get("REQUEST_TIMEOUT_SECONDS", "10.0")
        ),
        timezone=os.environ.get("TIMEZONE", "Asia/Tokyo"),
        strategies=_parse_strategies(
            os.environ.get("STRATEGIES", DEFAULT_STRATEGIES)
        ),
        price_history_mode=history_mode,
        db_path=os.environ.get("DB_PATH", "data/ethbot.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        health_port=int(os.environ.get("HEALTH_PORT", "8080")),
    )
