from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from .entities import ResolvedStream


class SearchBackend(Protocol):
    """Port for the upstream video-search capability.

    Implementations return the platform's raw entry dictionaries; mapping into
    domain entities is the search service's job.
    """

    def search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Return up to `limit` raw video entries for the query."""

    def video_info(self, video_id: str) -> Dict[str, Any]:
        """Return the raw metadata dictionary for a single video."""


class ExtractionStrategy(Protocol):
    """One independent third-party technique for turning a video id into audio."""

    name: str

    def attempt(self, video_id: str) -> Optional[ResolvedStream]:
        """Try once. Return a stream with a usable direct URL, or None."""
