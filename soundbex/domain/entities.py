from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SongResult:
    """Canonical search result mapped from the upstream video platform."""

    title: str
    author: str
    duration_text: str
    thumbnail_url: Optional[str]
    external_id: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "duration": self.duration_text,
            "thumbnail": self.thumbnail_url,
            "videoId": self.external_id,
        }


@dataclass(frozen=True)
class SongEntry:
    """Denormalized copy of the fields a playlist needs for playback."""

    title: str
    artist: str
    duration: str
    image: Optional[str]
    external_id: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "artist": self.artist,
            "duration": self.duration,
            "image": self.image,
            "videoId": self.external_id,
        }


class StreamKind(Enum):
    """How playable a resolved URL is. Values are the wire `type` strings."""

    DIRECT_AUDIO = "direct_audio"
    RAW_PAGE_FALLBACK = "youtube_direct"


@dataclass(frozen=True)
class ResolvedStream:
    """Result of one resolution request. Never persisted."""

    url: str
    source_name: str
    kind: StreamKind
    bitrate_kbps: Optional[int] = None
    container_format: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.kind is StreamKind.RAW_PAGE_FALLBACK


@dataclass(frozen=True)
class PlaylistPosition:
    """Snapshot of a playlist cursor after a navigation call."""

    song: SongEntry
    cursor: int
    total: int
    has_next: bool
    has_previous: bool

    def to_json(self) -> Dict[str, Any]:
        return {
            "song": self.song.to_json(),
            "currentIndex": self.cursor,
            "totalSongs": self.total,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }
