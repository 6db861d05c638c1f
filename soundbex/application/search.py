from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from soundbex.domain.entities import SongResult
from soundbex.domain.errors import (
    NotFoundError,
    UpstreamShapeError,
    UpstreamUnavailable,
    ValidationError,
)
from soundbex.domain.normalization import (
    UNKNOWN_ARTIST,
    UNKNOWN_TITLE,
    clean_text,
    first_text,
    pick_duration,
    pick_thumbnail,
)
from soundbex.domain.ports import SearchBackend

logger = logging.getLogger(__name__)


def map_entry(entry: Dict[str, Any], external_id: Optional[str] = None) -> SongResult:
    """Map one raw upstream entry into a SongResult with placeholders filled in."""
    return SongResult(
        title=first_text(entry.get("title"), default=UNKNOWN_TITLE),
        author=first_text(entry.get("channel"), entry.get("uploader"), default=UNKNOWN_ARTIST),
        duration_text=pick_duration(entry),
        thumbnail_url=pick_thumbnail(entry),
        external_id=external_id or clean_text(entry.get("id")),
    )


class SearchService:
    """Search adapter over the upstream video-search capability."""

    def __init__(self, backend: SearchBackend, fetch_limit: int = 25, result_limit: int = 20):
        self._backend = backend
        self._fetch_limit = fetch_limit
        self._result_limit = result_limit

    def search(self, query: str) -> List[SongResult]:
        """Return at most `result_limit` canonical songs for the query.

        Blank queries short-circuit to an empty list without contacting upstream.
        """
        query = (query or "").strip()
        if not query:
            return []

        raw = self._call_backend(lambda: self._backend.search(query, self._fetch_limit))
        if not isinstance(raw, list):
            raise UpstreamShapeError(
                f"Search backend returned {type(raw).__name__}, expected a list"
            )

        results: List[SongResult] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            if not entry.get("id") or not entry.get("title"):
                continue
            external_id = clean_text(entry.get("id"))
            if not external_id:
                continue
            results.append(map_entry(entry, external_id))
            if len(results) >= self._result_limit:
                break

        logger.info(f"Search '{query}' returned {len(results)} of {len(raw)} raw entries")
        return results

    def get_song(self, video_id: str) -> SongResult:
        """Look up metadata for a single video id."""
        video_id = (video_id or "").strip()
        if not video_id:
            raise ValidationError("videoId is required")

        info = self._call_backend(lambda: self._backend.video_info(video_id))
        if not isinstance(info, dict):
            raise UpstreamShapeError(
                f"Video info for {video_id} was {type(info).__name__}, expected an object"
            )
        return map_entry(info, clean_text(info.get("id")) or video_id)

    def _call_backend(self, call):
        try:
            return call()
        except (UpstreamUnavailable, UpstreamShapeError, NotFoundError):
            raise
        except Exception as e:
            logger.error(f"Search backend failed: {e}")
            raise UpstreamUnavailable(str(e)) from e
