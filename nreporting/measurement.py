from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from nreporting.hms import format_hms


@dataclass(frozen=True)
class Quantity:
    """A number together with its unit, e.g. `1111.11 it/s`."""

    number: float
    unit: str

    def __str__(self) -> str:
        return f"{self.number} {self.unit}"


class Measurement:
    """
    Named results valid at a given point of a performance test run.

    `percentage` is the progress of the run, `time` the elapsed milliseconds
    and `iteration` the zero-based iteration the results belong to.
    """

    DEFAULT_RESULT = "Result"

    def __init__(self, percentage: int, time: int, iteration: int) -> None:
        self.percentage = percentage
        self.time = time
        self.iteration = iteration
        self._results: dict[str, Any] = {}

    def get(self, name: str = DEFAULT_RESULT) -> Any:
        return self._results.get(name)

    def get_all(self) -> Mapping[str, Any]:
        return MappingProxyType(self._results)

    def set(self, result: Any, name: str = DEFAULT_RESULT) -> None:
        self._results[name] = result

    def __str__(self) -> str:
        # Iterations are indexed from 0 and reported from 1.
        parts = [
            f"[{format_hms(self.time)}][{self.iteration + 1} iterations][{self.percentage}%] [{self.get()}]"
        ]
        for name, value in self._results.items():
            if name != self.DEFAULT_RESULT:
                parts.append(f" [{name} => {value}]")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"Measurement(percentage={self.percentage!r}, time={self.time!r}, "
            f"iteration={self.iteration!r}, results={self._results!r})"
        )
