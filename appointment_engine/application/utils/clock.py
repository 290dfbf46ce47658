from __future__ import annotations


def to_minutes(clock: str | None) -> int:
    """Parse "HH:MM" (or "HH:MM:SS") into minutes after midnight. Malformed input yields 0."""
    if not clock or ":" not in clock:
        return 0
    parts = clock.strip().split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except (ValueError, IndexError):
        return 0
    return hours * 60 + minutes


def to_clock_string(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
