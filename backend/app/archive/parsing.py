"""Helpers for turning raw archive metadata into item descriptors."""

from __future__ import annotations

import re
from typing import Any

# Preferred video files, best first: (extension, format substring or None)
VIDEO_FILE_PRIORITIES: list[tuple[str, str | None]] = [
    (".mp4", "h.264"),
    (".mp4", "mpeg4"),
    (".mp4", None),
    (".ogv", None),
    (".webm", None),
    (".avi", None),
    (".mkv", None),
]

VIDEO_EXTENSION_PATTERN = re.compile(r"\.(mp4|avi|mkv|ogv|webm|mov)$", re.IGNORECASE)
IMAGE_EXTENSION_PATTERN = re.compile(r"\.(jpe?g|png|gif)$", re.IGNORECASE)
SUBTITLE_EXTENSION_PATTERN = re.compile(r"\.(srt|vtt)$", re.IGNORECASE)
SUBTITLE_LANGUAGE_PATTERN = re.compile(r"[._-]([a-z]{2,3})\.(?:srt|vtt)$", re.IGNORECASE)
YEAR_PATTERN = re.compile(r"(\d{4})")

# Ordered keyword rules for deriving a catalog category
CATEGORY_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("Horror", re.compile(r"horror|zombie|vampire|monster|scary|haunted")),
    ("Comedy", re.compile(r"comedy|funny|humor|laugh")),
    ("Action", re.compile(r"action|adventure|fight|war|battle")),
    ("Romance", re.compile(r"romance|love|romantic")),
    ("Sci-Fi", re.compile(r"sci-fi|science fiction|space|alien|future")),
    ("Documentary", re.compile(r"documentary|document|history|historical")),
    ("Drama", re.compile(r"drama")),
    ("Thriller", re.compile(r"thriller|suspense|mystery")),
    ("Western", re.compile(r"western|cowboy")),
    ("Film Noir", re.compile(r"noir|crime|detective")),
]
DEFAULT_CATEGORY = "Classic"


def first_value(value: Any) -> Any:
    """Archive metadata fields may be scalars or lists; take the first value."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def as_text(value: Any, separator: str = ", ") -> str | None:
    """Join list values into one string, dropping empties."""
    if value is None:
        return None
    if isinstance(value, list):
        parts = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return separator.join(parts) or None
    text = str(value).strip()
    return text or None


def as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return [str(value)]


def parse_year(value: Any) -> int | None:
    """Parse a year from "1931", "1931-05-11" or 1931."""
    value = first_value(value)
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = YEAR_PATTERN.search(str(value))
    return int(match.group(1)) if match else None


def parse_int(value: Any) -> int | None:
    value = first_value(value)
    if value is None:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_duration(value: Any) -> int | None:
    """Parse a duration to seconds.

    Accepts seconds as a number or numeric string, "H:MM:SS", "MM:SS" and
    the "90 min" style runtimes found in item metadata.
    """
    value = first_value(value)
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return round(value)

    text = str(value).strip()
    try:
        return round(float(text))
    except ValueError:
        pass

    if ":" in text:
        try:
            parts = [float(p) for p in text.split(":")]
        except ValueError:
            return None
        if len(parts) == 3:
            return round(parts[0] * 3600 + parts[1] * 60 + parts[2])
        if len(parts) == 2:
            return round(parts[0] * 60 + parts[1])
        return None

    minutes = re.match(r"^(\d+)\s*(?:min|mins|minutes)\b", text, re.IGNORECASE)
    if minutes:
        return int(minutes.group(1)) * 60

    return None


def find_best_video_file(files: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick the most playable video file from an item's file list."""
    for extension, fmt in VIDEO_FILE_PRIORITIES:
        for f in files:
            name = (f.get("name") or "").lower()
            if not name.endswith(extension):
                continue
            if fmt and f.get("format"):
                if fmt in str(f["format"]).lower():
                    return f
                continue
            return f

    # Fallback: anything that looks like video
    for f in files:
        if "video" in str(f.get("format") or "").lower():
            return f
        if VIDEO_EXTENSION_PATTERN.search(f.get("name") or ""):
            return f
    return None


def find_thumbnail_file(files: list[dict[str, Any]]) -> dict[str, Any] | None:
    for f in files:
        name = f.get("name") or ""
        if IMAGE_EXTENSION_PATTERN.search(name) or "thumb" in name.lower():
            return f
    return None


def find_subtitle_file(files: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick a subtitle track, preferring SubRip over WebVTT."""
    candidates = [f for f in files if SUBTITLE_EXTENSION_PATTERN.search(f.get("name") or "")]
    candidates.sort(key=lambda f: 0 if (f.get("name") or "").lower().endswith(".srt") else 1)
    return candidates[0] if candidates else None


def subtitle_language(file_name: str) -> str | None:
    """Guess a subtitle language code from names like "movie.en.srt"."""
    match = SUBTITLE_LANGUAGE_PATTERN.search(file_name)
    if match:
        code = match.group(1).lower()
        if code not in ("srt", "vtt"):
            return code
    return None


def categorize(title: str | None, description: str | None, tags: list[str]) -> str:
    """Derive a catalog category from free text.

    Rules are checked in order and the first match wins.
    """
    combined = " ".join(
        [(title or "").lower(), (description or "").lower(), *(t.lower() for t in tags)]
    )
    for category, pattern in CATEGORY_RULES:
        if pattern.search(combined):
            return category
    return DEFAULT_CATEGORY
