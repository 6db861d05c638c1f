from __future__ import annotations

import math
from typing import Any, Dict, Optional
from urllib.parse import quote


UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_DURATION = "N/A"

_PAGE_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"


def format_duration(value: Any) -> str:
    """Render a duration as M:SS.

    Numbers are seconds; colon-delimited strings are already formatted and pass
    through untouched. Everything else is "N/A", including zero and any
    negative or non-finite number.
    """
    if isinstance(value, bool) or not value:
        return UNKNOWN_DURATION
    if isinstance(value, str):
        return value if ":" in value else UNKNOWN_DURATION
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            return UNKNOWN_DURATION
        total = int(value)
        minutes, seconds = divmod(total, 60)
        return f"{minutes}:{seconds:02d}"
    return UNKNOWN_DURATION


def canonical_page_url(video_id: str) -> str:
    return _PAGE_URL_TEMPLATE.format(video_id=quote(video_id, safe=""))


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def first_text(*values: Any, default: str = "") -> str:
    for value in values:
        text = clean_text(value)
        if text:
            return text
    return default


def pick_thumbnail(entry: Dict[str, Any]) -> Optional[str]:
    """Prefer the explicit thumbnail, then the last (largest) listed one."""
    thumbnail = entry.get("thumbnail")
    if isinstance(thumbnail, dict):
        thumbnail = thumbnail.get("url")
    if thumbnail:
        return str(thumbnail)
    thumbnails = entry.get("thumbnails")
    if isinstance(thumbnails, (list, tuple)):
        urls = [t.get("url") for t in thumbnails if isinstance(t, dict) and t.get("url")]
        if urls:
            return str(urls[-1])
    return None


def pick_duration(entry: Dict[str, Any]) -> str:
    duration = entry.get("duration")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool) and duration:
        return format_duration(duration)
    text = format_duration(entry.get("duration_string"))
    if text != UNKNOWN_DURATION:
        return text
    return format_duration(duration)
