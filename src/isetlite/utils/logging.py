from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter

from rich.logging import RichHandler


def get_logger(name: str = "isetlite", level: int | str = logging.INFO) -> logging.Logger:
    """Return a Rich-configured logger for the project."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    return logging.getLogger(name)


@dataclass(slots=True)
class FrameTiming:
    """Wall-clock statistics for a batch of computed frames."""

    frames: int
    elapsed_s: float

    @property
    def frames_per_s(self) -> float:
        return self.frames / max(self.elapsed_s, 1e-12)


class FrameTimer:
    """Lightweight helper to time on-demand frame generation."""

    def __init__(self) -> None:
        self._start_time: float | None = None

    def start(self) -> None:
        """Mark the beginning of a measured section."""
        self._start_time = perf_counter()

    def stop(self, frames: int) -> FrameTiming:
        """Mark the end of a measured section and return the timing."""
        if self._start_time is None:
            raise RuntimeError("FrameTimer.stop() called before start().")
        elapsed = perf_counter() - self._start_time
        self._start_time = None
        return FrameTiming(frames=frames, elapsed_s=elapsed)

    def log(  # pragma: no cover - thin wrapper around logger
        self,
        logger: logging.Logger,
        timing: FrameTiming,
        *,
        prefix: str = "sequence",
    ) -> None:
        """Log a standardised timing line."""
        logger.info(
            "%s frames=%d elapsed=%.3fs frames/s=%.1f",
            prefix,
            timing.frames,
            timing.elapsed_s,
            timing.frames_per_s,
        )
