from __future__ import annotations

from datetime import time


def normalize_subject(value: str | None) -> str | None:
    """Collapse whitespace and case-fold a subject name; ``None`` when blank."""
    if not value:
        return None
    normalized = " ".join(value.split()).casefold()
    return normalized or None


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def clean_lecturer(value: str | None) -> str | None:
    # Upstream pads missing lecturers with dashes.
    if value is None:
        return None
    text = value.strip().lstrip("-").strip()
    return text or None


def parse_time(value: str | None) -> time | None:
    """Parse ``HH:MM``; anything else (including seconds) yields ``None``."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hour = int(parts[0].strip())
        minute = int(parts[1].strip())
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


__all__ = ["clean_lecturer", "clean_text", "normalize_subject", "parse_time"]
