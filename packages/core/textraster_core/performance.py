"""Render timing and memory budget checks."""

from __future__ import annotations

import time
from dataclasses import dataclass

try:
    import psutil
except Exception:  # pragma: no cover
    psutil = None


@dataclass(frozen=True)
class PerformanceTargets:
    render_ms_max: float = 50.0
    rss_mb_max: float = 300.0


@dataclass(frozen=True)
class BudgetStatus:
    renders: int
    mean_render_ms: float
    max_render_ms: float
    rss_mb: float
    overloaded: bool
    warning: str | None


class PerformanceController:
    """Collects per-render timings and compares them with the budget."""

    def __init__(self, targets: PerformanceTargets | None = None) -> None:
        self.targets = targets or PerformanceTargets()
        self._process = psutil.Process() if psutil is not None else None
        self._timings_ms: list[float] = []

    def measure(self, func, *args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        self._timings_ms.append((time.perf_counter() - start) * 1000.0)
        return result

    def reset(self) -> None:
        self._timings_ms = []

    def sample(self) -> BudgetStatus:
        rss_mb = 0.0 if self._process is None else float(self._process.memory_info().rss) / (1024 * 1024)
        count = len(self._timings_ms)
        mean_ms = sum(self._timings_ms) / count if count else 0.0
        max_ms = max(self._timings_ms, default=0.0)

        warning = None
        if rss_mb > self.targets.rss_mb_max:
            warning = "memory_over_budget"
        elif mean_ms > self.targets.render_ms_max:
            warning = "render_over_budget"

        return BudgetStatus(
            renders=count,
            mean_render_ms=mean_ms,
            max_render_ms=max_ms,
            rss_mb=rss_mb,
            overloaded=warning is not None,
            warning=warning,
        )
