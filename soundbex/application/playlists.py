from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from soundbex.domain.entities import PlaylistPosition, SongEntry
from soundbex.domain.errors import NotFoundError, ValidationError
from soundbex.domain.normalization import (
    UNKNOWN_ARTIST,
    UNKNOWN_DURATION,
    UNKNOWN_TITLE,
    clean_text,
    first_text,
    format_duration,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 3600.0

SongInput = Union[SongEntry, Mapping[str, Any]]


def parse_song_entry(raw: SongInput, index: int = 0) -> SongEntry:
    """Build a SongEntry from a request mapping, or pass an entry through."""
    if isinstance(raw, SongEntry):
        if not clean_text(raw.external_id):
            raise ValidationError(f"Song at index {index} has no videoId")
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Song at index {index} must be an object")

    external_id = raw.get("videoId", raw.get("externalId"))
    if not isinstance(external_id, str) or not external_id.strip():
        raise ValidationError(f"Song at index {index} has no videoId")

    duration = raw.get("duration")
    image = first_text(raw.get("image"), raw.get("thumbnail")) or None
    return SongEntry(
        title=first_text(raw.get("title"), default=UNKNOWN_TITLE),
        artist=first_text(raw.get("artist"), raw.get("author"), default=UNKNOWN_ARTIST),
        duration=format_duration(duration) if duration is not None else UNKNOWN_DURATION,
        image=image,
        external_id=external_id.strip(),
    )


@dataclass
class Playlist:
    """A live playlist: songs in order, a cursor, and an expiry deadline."""

    id: str
    songs: List[SongEntry]
    created_at: datetime
    expires_at: float
    cursor: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def total(self) -> int:
        return len(self.songs)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def position(self) -> PlaylistPosition:
        return PlaylistPosition(
            song=self.songs[self.cursor],
            cursor=self.cursor,
            total=self.total,
            has_next=self.cursor < self.total - 1,
            has_previous=self.cursor > 0,
        )


class PlaylistStore:
    """In-memory playlists with a cursor each, deleted after a retention window.

    Expiry is checked lazily on every access; `start_reaper` additionally runs
    a daemon thread that purges expired playlists so abandoned ones do not pile
    up. Cursor moves are done under the playlist's own lock.
    """

    def __init__(self, ttl_s: float = DEFAULT_TTL_S,
                 clock: Callable[[], float] = time.monotonic):
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        self._ttl_s = ttl_s
        self._clock = clock
        self._playlists: Dict[str, Playlist] = {}
        self._lock = threading.Lock()
        self._reaper: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for p in self._playlists.values() if not p.is_expired(now))

    def create(self, songs: Sequence[SongInput]) -> str:
        if isinstance(songs, (str, bytes, Mapping)) or not isinstance(songs, Sequence):
            raise ValidationError("songs must be a list")
        if not songs:
            raise ValidationError("songs must not be empty")
        entries = [parse_song_entry(raw, i) for i, raw in enumerate(songs)]

        now = self._clock()
        with self._lock:
            playlist_id = uuid.uuid4().hex
            while playlist_id in self._playlists:
                playlist_id = uuid.uuid4().hex
            self._playlists[playlist_id] = Playlist(
                id=playlist_id,
                songs=entries,
                created_at=datetime.now(timezone.utc),
                expires_at=now + self._ttl_s,
            )
        logger.info(f"Created playlist {playlist_id} with {len(entries)} songs")
        return playlist_id

    def get(self, playlist_id: str) -> Playlist:
        """Return the live playlist or raise NotFoundError, evicting it if expired."""
        now = self._clock()
        with self._lock:
            playlist = self._playlists.get(playlist_id)
            if playlist is None:
                raise NotFoundError(f"Playlist {playlist_id} not found")
            if playlist.is_expired(now):
                del self._playlists[playlist_id]
                logger.info(f"Playlist {playlist_id} expired")
                raise NotFoundError(f"Playlist {playlist_id} not found")
            return playlist

    def next(self, playlist_id: str) -> PlaylistPosition:
        return self._move(playlist_id, 1)

    def previous(self, playlist_id: str) -> PlaylistPosition:
        return self._move(playlist_id, -1)

    def current(self, playlist_id: str) -> PlaylistPosition:
        return self._move(playlist_id, 0)

    def _move(self, playlist_id: str, step: int) -> PlaylistPosition:
        playlist = self.get(playlist_id)
        with playlist.lock:
            if step:
                playlist.cursor = (playlist.cursor + step) % playlist.total
            return playlist.position()

    def delete(self, playlist_id: str) -> bool:
        with self._lock:
            return self._playlists.pop(playlist_id, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired playlist and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [pid for pid, p in self._playlists.items() if p.is_expired(now)]
            for pid in expired:
                del self._playlists[pid]
        if expired:
            logger.info(f"Purged {len(expired)} expired playlists")
        return len(expired)

    def start_reaper(self, interval_s: float = 60.0) -> None:
        if self._reaper is not None and self._reaper.is_alive():
            return
        self._stop_event.clear()
        self._reaper = threading.Thread(
            target=self._reap_loop, args=(interval_s,),
            name="playlist-reaper", daemon=True,
        )
        self._reaper.start()

    def stop_reaper(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._reaper is not None:
            self._reaper.join(timeout)
            self._reaper = None

    def _reap_loop(self, interval_s: float) -> None:
        while not self._stop_event.wait(interval_s):
            try:
                self.purge_expired()
            except Exception as e:
                logger.error(f"Playlist reaper failed: {e}")
