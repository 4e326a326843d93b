from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable


@dataclass(frozen=True)
class RegressionLine:
    """A line `y = a * x + b` given by its slope `a` and intercept `b`."""

    a: float
    b: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "a", float(self.a))
        object.__setattr__(self, "b", float(self.b))

    @property
    def slope(self) -> float:
        return self.a

    @property
    def intercept(self) -> float:
        return self.b

    def with_slope(self, value: float) -> RegressionLine:
        """Return a copy of this line with the slope replaced."""
        return replace(self, a=value)

    def with_intercept(self, value: float) -> RegressionLine:
        """Return a copy of this line with the intercept replaced."""
        return replace(self, b=value)

    def predict_one(self, x: float) -> float:
        return self.a * float(x) + self.b

    def __str__(self) -> str:
        return f"{self.a} * x +{self.b}"


# The zero line, used as a default where no line has been fitted.
NULL = RegressionLine(0.0, 0.0)


@dataclass(frozen=True)
class LineFit:
    line: RegressionLine
    r2: float
    n_points: int


# Spreads below this fraction of the largest magnitude are rounding noise.
_SPREAD_TOLERANCE = 1e-12


def _negligible(sum_sq: float, values: list[float]) -> bool:
    scale = max(abs(v) for v in values)
    return sum_sq <= len(values) * (_SPREAD_TOLERANCE * scale) ** 2


def fit_line(points: Iterable[tuple[float, float | None]]) -> LineFit:
    """
    Fit `y = a * x + b` to `(x, y)` pairs by ordinary least squares.

    Pairs whose `y` is None are ignored. Raises ValueError when fewer than two
    pairs remain or when every `x` is the same (the line would be vertical).
    Sums are taken around the means so large offsets in `x` do not cancel out.
    """
    xs: list[float] = []
    ys: list[float] = []
    for x, y in points:
        if y is None:
            continue
        xs.append(float(x))
        ys.append(float(y))

    n = len(xs)
    if n < 2:
        raise ValueError(f"At least 2 points are needed to fit a line, got {n}")

    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    ssxx = ssyy = ssxy = 0.0
    for x, y in zip(xs, ys):
        dx = x - mean_x
        dy = y - mean_y
        ssxx += dx * dx
        ssyy += dy * dy
        ssxy += dx * dy

    if _negligible(ssxx, xs):
        raise ValueError("All x values are equal; cannot fit a line")

    a = ssxy / ssxx
    b = mean_y - a * mean_x
    if _negligible(ssyy, ys):
        # Constant y is explained perfectly by a flat line.
        r2 = 1.0
    else:
        r2 = min(1.0, max(0.0, (ssxy * ssxy) / (ssxx * ssyy)))
    return LineFit(line=RegressionLine(a, b), r2=r2, n_points=n)
