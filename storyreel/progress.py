"""Progress reporting for long-running operations."""

from dataclasses import dataclass
from typing import Callable


@dataclass
class ProgressReport:
    """A progress update: optional percentage (0-100) and a message."""

    percentage: float | None = None
    message: str = ""


ProgressCallback = Callable[[ProgressReport], None]


def report(callback: ProgressCallback | None, message: str, percentage: float | None = None) -> None:
    """Send a report if a callback is set."""
    if callback:
        callback(ProgressReport(percentage=percentage, message=message))


def scaled(
    callback: ProgressCallback | None,
    start: float,
    end: float,
    prefix: str = "",
) -> ProgressCallback | None:
    """Map a nested operation's 0-100 progress into the range [start, end].

    Args:
        callback: Outer callback receiving the scaled reports.
        start: Outer percentage corresponding to 0.
        end: Outer percentage corresponding to 100.
        prefix: Text prepended to each message.

    Returns:
        A callback for the nested operation, or None when there is no outer one.
    """
    if callback is None:
        return None

    def inner(progress: ProgressReport) -> None:
        percentage = None
        if progress.percentage is not None:
            percentage = start + (end - start) * min(max(progress.percentage, 0.0), 100.0) / 100
        callback(ProgressReport(percentage=percentage, message=f"{prefix}{progress.message}"))

    return inner
