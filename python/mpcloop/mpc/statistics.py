"""
MPC Cycle Statistics
====================

Per-cycle timing records and aggregate summaries, owned by a single
controller instance.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Tuple

import numpy as np


@dataclass(frozen=True)
class CycleRecord:
    """
    Measurements of one optimizing MPC cycle.

    Attributes:
        index: Cycle number (0-based)
        time: current_time passed to run()
        solve_time: Wall clock time spent in the optimizer [s]
        delay: Delay compensation tau used for the cycle [s]
        warm_started: Whether the guess was built from the previous policy
        success: Whether the cycle produced a new policy
        status: Optimizer status string
        iterations: Optimizer iterations
        horizon_steps: Steps of the optimized horizon
        truncated_steps: Steps dropped by post truncation
    """
    index: int
    time: float
    solve_time: float
    delay: float
    warm_started: bool
    success: bool
    status: str
    iterations: int
    horizon_steps: int
    truncated_steps: int = 0


class MpcStatistics:
    """
    Aggregate statistics over all cycles of a controller.

    Read-only for callers; the owning controller appends one record per
    optimizing cycle.

    Example:
        >>> stats = controller.statistics
        >>> print(stats.summary())
        >>> stats.num_failures
        0
    """

    def __init__(self, records: Iterable[CycleRecord] = ()) -> None:
        self._records: List[CycleRecord] = list(records)

    def _append(self, record: CycleRecord) -> None:
        # Only the owning controller records cycles
        self._records.append(record)

    @property
    def records(self) -> Tuple[CycleRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def num_cycles(self) -> int:
        return len(self._records)

    @property
    def num_successes(self) -> int:
        return sum(1 for r in self._records if r.success)

    @property
    def num_failures(self) -> int:
        return self.num_cycles - self.num_successes

    def _solve_times(self) -> np.ndarray:
        return np.array([r.solve_time for r in self._records], dtype=np.float64)

    def _delays(self) -> np.ndarray:
        return np.array([r.delay for r in self._records], dtype=np.float64)

    @property
    def mean_solve_time(self) -> float:
        return float(self._solve_times().mean()) if self._records else 0.0

    @property
    def max_solve_time(self) -> float:
        return float(self._solve_times().max()) if self._records else 0.0

    @property
    def min_solve_time(self) -> float:
        return float(self._solve_times().min()) if self._records else 0.0

    @property
    def mean_delay(self) -> float:
        return float(self._delays().mean()) if self._records else 0.0

    @property
    def max_delay(self) -> float:
        return float(self._delays().max()) if self._records else 0.0

    @property
    def warm_start_ratio(self) -> float:
        """Fraction of cycles that were warm started."""
        if not self._records:
            return 0.0
        return sum(1 for r in self._records if r.warm_started) / len(self._records)

    def as_dict(self) -> Dict[str, Any]:
        """Aggregates plus the raw records."""
        return {
            "num_cycles": self.num_cycles,
            "num_successes": self.num_successes,
            "num_failures": self.num_failures,
            "mean_solve_time": self.mean_solve_time,
            "max_solve_time": self.max_solve_time,
            "min_solve_time": self.min_solve_time,
            "mean_delay": self.mean_delay,
            "max_delay": self.max_delay,
            "warm_start_ratio": self.warm_start_ratio,
            "records": [asdict(r) for r in self._records],
        }

    def summary(self) -> str:
        """Return a formatted summary of the run."""
        lines = [
            "=" * 50,
            "MPC Summary",
            "=" * 50,
            f"Cycles:           {self.num_cycles}",
            f"Successful:       {self.num_successes}",
            f"Failed:           {self.num_failures}",
            f"Warm started:     {100.0 * self.warm_start_ratio:.1f} %",
            "-" * 50,
            f"Mean solve time:  {1e3 * self.mean_solve_time:.3f} ms",
            f"Max solve time:   {1e3 * self.max_solve_time:.3f} ms",
            f"Min solve time:   {1e3 * self.min_solve_time:.3f} ms",
            f"Mean delay:       {1e3 * self.mean_delay:.3f} ms",
            f"Max delay:        {1e3 * self.max_delay:.3f} ms",
            "=" * 50,
        ]
        return "\n".join(lines)
