"""Internal API routers — /status, /decisions, /trades endpoints.

No business logic.  Holds the shared status dict and the decision ring
buffer that detectors and the orchestrator push into.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query

from ethbot.strategy.models import DecisionEvent

logger = logging.getLogger("ethbot")
router = APIRouter()

_MAX_DECISIONS = 50

# ── Shared state (set during app startup) ────────────────────────────────

_DEFAULT_STATUS: dict = {
    "running": False,
    "pair": "eth_jpy",
    "strategies": [],
    "cycle_count": 0,
    "last_cycle_at": None,
    "last_error": None,
    "started_at": None,
}

_bot_status: dict = {**_DEFAULT_STATUS}
_decisions: list[dict] = []  # Ring buffer of decision events (max 50)
_trade_log = None  # Set via configure_routers()


def configure_routers(trade_log=None, bot_status: Optional[dict] = None) -> None:
    """Inject dependencies from the application startup.

    Args:
        trade_log: A ``TradeLogRepo`` instance (or duck-type for tests).
        bot_status: Optional fields to merge into the status dict.
    """
    global _trade_log  # noqa: PLW0603
    _trade_log = trade_log
    if bot_status is not None:
        _bot_status.update(bot_status)


def update_bot_status(**fields) -> None:
    """Update individual fields of the bot status dict."""
    _bot_status.update(fields)


def push_decision(event: DecisionEvent) -> None:
    """Default observability hook: log *event* and keep it in the ring buffer."""
    level = logging.ERROR if event.signal == "error" else logging.INFO
    logger.log(
        level,
        "Decision %s → %s @ %s (%s) %s",
        event.strategy, event.signal, event.price, event.reason, event.indicators,
    )
    _decisions.append(event.to_dict())
    if len(_decisions) > _MAX_DECISIONS:
        del _decisions[0]


def reset_state() -> None:
    """Clear status and decisions.  Used between tests and on restart."""
    global _trade_log  # noqa: PLW0603
    _bot_status.clear()
    _bot_status.update(_DEFAULT_STATUS)
    _decisions.clear()
    _trade_log = None


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Return the scheduler and strategy status."""
    return dict(_bot_status)


@router.get("/decisions")
async def get_decisions(
    limit: int = Query(default=20, ge=1, le=_MAX_DECISIONS),
    strategy: Optional[str] = Query(default=None),
):
    """Return recent detector decisions, newest first."""
    recent = [d for d in _decisions if strategy is None or d["strategy"] == strategy]
    recent = recent[-limit:]
    recent.reverse()
    return {"decisions": recent}


@router.get("/trades")
async def get_trades(
    limit: int = Query(default=20, ge=1, le=100),
    tag: Optional[str] = Query(default=None),
):
    """Return recent trade log entries."""
    if _trade_log is None:
        return {"records": [], "total": 0}
    return _trade_log.get_records(limit=limit, tag=tag)
