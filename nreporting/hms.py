from __future__ import annotations

MILLIS_IN_HOUR = 3600000
MILLIS_IN_MINUTE = 60000
MILLIS_IN_SECOND = 1000

_HOURS = "H"
_MINUTES = "M"
_SECONDS = "S"


def format_hms(millis: float, pattern: str | None = None) -> str:
    """
    Render a duration in milliseconds as hours, minutes and seconds.

    Without a pattern the result is `H:MM:SS`. With a pattern, each `H`, `M`
    and `S` in it is replaced by the hours, minutes and seconds; minutes and
    seconds are always two digits. Fractions of a millisecond are dropped.
    """
    number = int(millis)
    hours = number // MILLIS_IN_HOUR
    number = number % MILLIS_IN_HOUR
    minutes = f"{number // MILLIS_IN_MINUTE:02d}"
    seconds = f"{(number % MILLIS_IN_MINUTE) // MILLIS_IN_SECOND:02d}"

    if pattern is None:
        return f"{hours}:{minutes}:{seconds}"
    return pattern.replace(_HOURS, str(hours)).replace(_MINUTES, minutes).replace(_SECONDS, seconds)


def parse_timestamp(text: str) -> int:
    """Parse `H:M:S` into milliseconds."""
    tokens = (text or "").strip().split(":")
    if len(tokens) != 3:
        raise ValueError(f"Expected a time stamp in the form H:M:S, got {text!r}")
    try:
        hours, minutes, seconds = (int(t) for t in tokens)
    except ValueError as e:
        raise ValueError(f"Invalid time stamp: {text!r}") from e
    return hours * MILLIS_IN_HOUR + minutes * MILLIS_IN_MINUTE + seconds * MILLIS_IN_SECOND


class HMSNumberFormat:
    """Formatter object bound to an optional `H`/`M`/`S` pattern."""

    def __init__(self, pattern: str | None = None) -> None:
        self.pattern = pattern

    def format(self, millis: float) -> str:
        return format_hms(millis, self.pattern)

    def parse(self, text: str) -> int:
        return parse_timestamp(text)
