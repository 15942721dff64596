"""Strategy data models — typed representations for detector inputs and outputs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class PriceSample:
    """One observed price.  Immutable once recorded."""

    price: float
    timestamp: datetime


class CrossState(str, Enum):
    """Last crossover a moving-average detector acted on."""

    NONE = "none"
    GOLDEN = "golden"
    DEAD = "dead"


@dataclass(frozen=True)
class TradeSignal:
    """A buy or sell decision produced by a detector."""

    direction: str  # "buy" or "sell"
    price: float
    reason: str
    indicators: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DecisionEvent:
    """One detector (or orchestrator) decision, for the observability hook."""

    strategy: str
    signal: str  # "buy", "sell", "hold" or "error"
    price: Optional[float]
    evaluated_at: str
    reason: str = ""
    indicators: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "signal": self.signal,
            "price": self.price,
            "evaluated_at": self.evaluated_at,
            "reason": self.reason,
            "indicators": dict(self.indicators),
        }
