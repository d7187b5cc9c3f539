from __future__ import annotations

from datetime import datetime

from .domain import Status


def status_label(status: Status) -> str:
    if status is Status.NEW:
        return "New"
    if status is Status.PROCESSING:
        return "Processing"
    if status is Status.READY:
        return "Ready"
    if status is Status.COLLECTED:
        return "Collected"
    raise ValueError(f"unknown status: {status!r}")


def action_label(status: Status) -> str:
    """Text of the button that advances an order currently in `status`."""
    if status is Status.NEW:
        return "Mark as Processing"
    if status is Status.PROCESSING:
        return "Mark as Ready"
    if status is Status.READY:
        return "Mark as Collected"
    if status is Status.COLLECTED:
        return "Completed"
    raise ValueError(f"unknown status: {status!r}")


def badge_color(status: Status) -> str:
    if status is Status.NEW:
        return "#BEE3F8"
    if status is Status.PROCESSING:
        return "#FED7AA"
    if status is Status.READY:
        return "#9AE6B4"
    if status is Status.COLLECTED:
        return "#E2E8F0"
    raise ValueError(f"unknown status: {status!r}")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'} ago"


def time_ago(created_at: datetime, now: datetime) -> str:
    minutes = int((now - created_at).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return _plural(minutes, "minute")
    if hours < 24:
        return _plural(hours, "hour")
    return _plural(days, "day")
