"""Exponential backoff bounded by a total elapsed-time ceiling."""

from __future__ import annotations

import random
import time
from collections.abc import Callable

DEFAULT_INITIAL_INTERVAL_SECONDS = 0.5
DEFAULT_RANDOMIZATION_FACTOR = 0.5
DEFAULT_MULTIPLIER = 1.5
DEFAULT_MAX_INTERVAL_SECONDS = 60.0
DEFAULT_MAX_ELAPSED_SECONDS = 900.0

# Returned by next_interval() once the elapsed-time budget is spent.
STOP = None


class ExponentialBackoff:
    """Generates growing, randomized wait intervals.

    ``max_elapsed_seconds`` caps the total time since construction (or the last
    ``reset``), not a single interval. Zero means retry forever.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        max_elapsed_seconds: float = DEFAULT_MAX_ELAPSED_SECONDS,
        initial_interval_seconds: float = DEFAULT_INITIAL_INTERVAL_SECONDS,
        randomization_factor: float = DEFAULT_RANDOMIZATION_FACTOR,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_interval_seconds: float = DEFAULT_MAX_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        if max_elapsed_seconds < 0:
            raise ValueError("max_elapsed_seconds must be >= 0")
        if initial_interval_seconds <= 0:
            raise ValueError("initial_interval_seconds must be > 0")
        if not 0 <= randomization_factor < 1:
            raise ValueError("randomization_factor must be in [0, 1)")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        self.max_elapsed_seconds = max_elapsed_seconds
        self.initial_interval_seconds = initial_interval_seconds
        self.randomization_factor = randomization_factor
        self.multiplier = multiplier
        self.max_interval_seconds = max(max_interval_seconds, initial_interval_seconds)
        self._clock = clock
        self._random = rng or random.Random()  # noqa: S311
        self._current_interval = initial_interval_seconds
        self._started_at = clock()

    @property
    def elapsed_seconds(self) -> float:
        return self._clock() - self._started_at

    @property
    def remaining_seconds(self) -> float | None:
        """Budget left before exhaustion, ``None`` when unbounded."""

        if self.max_elapsed_seconds == 0:
            return None
        return max(0.0, self.max_elapsed_seconds - self.elapsed_seconds)

    def reset(self) -> None:
        self._current_interval = self.initial_interval_seconds
        self._started_at = self._clock()

    def next_interval(self) -> float | None:
        """Return the next wait in seconds, or ``STOP`` when the ceiling is reached."""

        elapsed = self.elapsed_seconds
        delta = self.randomization_factor * self._current_interval
        low = self._current_interval - delta
        high = self._current_interval + delta
        interval = low + self._random.random() * (high - low)
        self._increment()
        if self.max_elapsed_seconds != 0 and elapsed + interval > self.max_elapsed_seconds:
            return STOP
        return interval

    def _increment(self) -> None:
        self._current_interval = min(
            self._current_interval * self.multiplier,
            self.max_interval_seconds,
        )


def create_backoff(max_elapsed_seconds: float, **kwargs: object) -> ExponentialBackoff:
    """Backoff with the given ceiling and default growth parameters."""

    return ExponentialBackoff(max_elapsed_seconds=max_elapsed_seconds, **kwargs)  # type: ignore[arg-type]


def create_infinite_backoff(**kwargs: object) -> ExponentialBackoff:
    """Backoff that never signals exhaustion, for long-lived polling callers."""

    return create_backoff(0, **kwargs)
