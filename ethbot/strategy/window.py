"""Bounded rolling price window shared by the detectors.

Immutable: every operation returns a new window, so detector state can be
passed in and handed back without aliasing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ethbot.errors import InsufficientDataError
from ethbot.strategy.models import PriceSample


@dataclass(frozen=True)
class PriceWindow:
    """Chronological price samples bounded by age and/or count.

    ``max_age`` evicts samples older than ``newest - max_age``; ``max_len``
    evicts the oldest samples beyond that count.  The window never holds a
    sample outside its bound.
    """

    samples: tuple[PriceSample, ...] = ()
    max_age: Optional[timedelta] = None
    max_len: Optional[int] = None

    @classmethod
    def time_bounded(cls, max_age: timedelta) -> PriceWindow:
        return cls(max_age=max_age)

    @classmethod
    def count_bounded(cls, max_len: int) -> PriceWindow:
        if max_len <= 0:
            raise ValueError(f"max_len must be positive, got {max_len}")
        return cls(max_len=max_len)

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def prices(self) -> list[float]:
        return [s.price for s in self.samples]

    def push(self, sample: PriceSample) -> PriceWindow:
        """Append *sample* and evict whatever falls outside the bounds."""
        if self.samples and sample.timestamp < self.samples[-1].timestamp:
            raise ValueError(
                f"Sample at {sample.timestamp.isoformat()} is older than the "
                f"newest sample at {self.samples[-1].timestamp.isoformat()}"
            )
        return self._with(self.samples + (sample,)).evict(sample.timestamp)

    def stamp(self, timestamp: datetime) -> datetime:
        """Return *timestamp*, raised to the newest sample's if it is older."""
        if self.samples and timestamp < self.samples[-1].timestamp:
            return self.samples[-1].timestamp
        return timestamp

    def extend(self, samples: Iterable[PriceSample]) -> PriceWindow:
        window = self
        for sample in samples:
            window = window.push(sample)
        return window

    def evict(self, now) -> PriceWindow:
        """Drop samples older than ``now - max_age`` and beyond ``max_len``."""
        kept = self.samples
        if self.max_age is not None:
            cutoff = now - self.max_age
            kept = tuple(s for s in kept if s.timestamp >= cutoff)
        if self.max_len is not None and len(kept) > self.max_len:
            kept = kept[-self.max_len:]
        if kept is self.samples:
            return self
        return self._with(kept)

    def cleared(self) -> PriceWindow:
        return self._with(())

    def high(self) -> float:
        self._require(1)
        return max(self.prices)

    def low(self) -> float:
        self._require(1)
        return min(self.prices)

    def mean(self, last_n: Optional[int] = None) -> float:
        """Average of the most recent *last_n* prices (all when ``None``)."""
        n = len(self.samples) if last_n is None else last_n
        self._require(max(n, 1))
        recent = self.prices[-n:]
        return sum(recent) / n

    def _require(self, n: int) -> None:
        if len(self.samples) < n:
            raise InsufficientDataError(
                f"Need at least {n} samples, window holds {len(self.samples)}"
            )

    def _with(self, samples: tuple[PriceSample, ...]) -> PriceWindow:
        return PriceWindow(samples=samples, max_age=self.max_age, max_len=self.max_len)
