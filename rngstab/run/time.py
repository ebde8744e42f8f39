"""Simple time control utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple


@dataclass
class TimeControl:
    """Outer-iteration schedule.

    Steady runs perform ``iterations`` corrections without a temporal term;
    transient runs step from ``start`` to ``end`` by ``dt``.
    """

    start: float = 0.0
    end: float = 0.0
    dt: float = 1.0
    steady: bool = True
    iterations: int = 1

    def __iter__(self) -> Iterator[Tuple[int, float]]:
        if self.steady:
            for index in range(self.iterations):
                yield index, float(index + 1)
            return
        t = self.start
        index = 0
        while t + self.dt <= self.end + 1e-12:
            t += self.dt
            yield index, t
            index += 1

    @property
    def delta_t(self) -> Optional[float]:
        return None if self.steady else self.dt

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        mode = data.get("mode", "steady").lower()
        if mode == "steady":
            iterations = int(data.get("iterations", 1))
            if iterations < 1:
                raise ValueError("time.iterations must be at least 1")
            return cls(steady=True, iterations=iterations)
        if mode != "transient":
            raise ValueError(f"Unknown time mode '{mode}'")
        dt = float(data.get("dt", 1.0))
        if dt <= 0.0:
            raise ValueError("time.dt must be positive")
        return cls(
            start=float(data.get("start", 0.0)),
            end=float(data.get("end", 1.0)),
            dt=dt,
            steady=False,
        )
