import logging
from typing import Any, Dict, List, Optional

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from soundbex.domain.errors import NotFoundError, UpstreamShapeError, UpstreamUnavailable
from soundbex.domain.normalization import canonical_page_url
from soundbex.domain.ports import SearchBackend

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = (
    "video unavailable",
    "private video",
    "is not a valid url",
    "incomplete youtube id",
    "this video has been removed",
)


class YouTubeSearchBackend(SearchBackend):
    """YouTube search and metadata through yt-dlp, without downloading anything."""

    def __init__(self, socket_timeout: float = 15.0, cookiefile: Optional[str] = None):
        """Initialize the backend.

        Args:
            socket_timeout: Per-socket timeout handed to yt-dlp, in seconds
            cookiefile: Optional Netscape cookie file for age-gated results
        """
        self._socket_timeout = socket_timeout
        self._cookiefile = cookiefile

    def _options(self, flat: bool) -> Dict[str, Any]:
        opts = {
            'quiet': True,
            'no_warnings': True,
            'skip_download': True,
            'noplaylist': True,
            'socket_timeout': self._socket_timeout,
        }
        if flat:
            opts['extract_flat'] = 'in_playlist'
        if self._cookiefile:
            opts['cookiefile'] = self._cookiefile
        return opts

    def search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Return up to `limit` flat search entries for the query."""
        try:
            with YoutubeDL(self._options(flat=True)) as ydl:
                info = ydl.extract_info(f"ytsearch{limit}:{query}", download=False)
        except DownloadError as e:
            raise UpstreamUnavailable(f"YouTube search failed: {e}") from e

        if not isinstance(info, dict):
            raise UpstreamShapeError("YouTube search returned no result object")
        entries = info.get('entries')
        if entries is None:
            return []
        try:
            return [entry for entry in entries if entry is not None]
        except TypeError as e:
            raise UpstreamShapeError(f"YouTube search entries are not iterable: {e}") from e

    def video_info(self, video_id: str) -> Dict[str, Any]:
        """Return full metadata for a single video."""
        try:
            with YoutubeDL(self._options(flat=False)) as ydl:
                info = ydl.extract_info(canonical_page_url(video_id), download=False)
        except DownloadError as e:
            message = str(e)
            if any(marker in message.lower() for marker in _NOT_FOUND_MARKERS):
                raise NotFoundError(f"Video {video_id} not found") from e
            raise UpstreamUnavailable(f"YouTube lookup failed for {video_id}: {message}") from e

        if not isinstance(info, dict):
            raise UpstreamShapeError(f"YouTube returned no metadata for {video_id}")
        return info
