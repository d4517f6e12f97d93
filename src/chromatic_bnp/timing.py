"""Timing utilities for master and pricing solver instrumentation."""

from dataclasses import dataclass
from typing import Dict, List


@dataclass
class CallRecord:
    """Timing record for a single master solve or pricing call."""

    seconds: float = 0.0
    columns_found: int = 0


class SolveTimer:
    """Accumulates per-call timing records for one solver role.

    Usage::

        timer = SolveTimer("pricing")
        t0 = time.monotonic(); result = oracle.solve(graph, duals)
        timer.record(seconds=time.monotonic() - t0, columns_found=len(result.columns))

        # after the run:
        print(timer.summary())
    """

    def __init__(self, name: str = "solver") -> None:
        self.name = name
        self.calls: List[CallRecord] = []

    def record(self, seconds: float = 0.0, columns_found: int = 0) -> None:
        self.calls.append(CallRecord(seconds=seconds, columns_found=columns_found))

    def reset(self) -> None:
        self.calls.clear()

    @property
    def num_calls(self) -> int:
        return len(self.calls)

    @property
    def total_seconds(self) -> float:
        return sum(c.seconds for c in self.calls)

    @property
    def total_columns_found(self) -> int:
        return sum(c.columns_found for c in self.calls)

    @property
    def avg_seconds(self) -> float:
        return self.total_seconds / self.num_calls if self.calls else 0.0

    def summary(self) -> Dict[str, float]:
        """Return a dict of timing statistics suitable for JSON serialization."""
        return {
            "num_calls": self.num_calls,
            "total_seconds": round(self.total_seconds, 4),
            "avg_seconds": round(self.avg_seconds, 4),
            "total_columns_found": self.total_columns_found,
        }

    def __repr__(self) -> str:
        s = self.summary()
        return (
            f"SolveTimer({self.name}: {s['num_calls']} calls, "
            f"{s['total_seconds']}s, cols={s['total_columns_found']})"
        )
