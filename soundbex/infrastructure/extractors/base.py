import logging
import threading
import time
from typing import Any, Dict, Optional

import requests

from soundbex.domain.entities import ResolvedStream, StreamKind
from soundbex.domain.errors import UpstreamShapeError, UpstreamUnavailable
from soundbex.domain.ports import ExtractionStrategy

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'


class AttemptBudget:
    """Wall-clock budget shared by every call made during one attempt."""

    def __init__(self, total_s: float, clock=time.monotonic):
        self._clock = clock
        self._deadline = clock() + total_s

    def remaining(self) -> float:
        return self._deadline - self._clock()

    def call_timeout(self, per_call_s: float) -> float:
        """Timeout for the next call; raises once the budget is spent."""
        remaining = self.remaining()
        if remaining <= 0:
            raise UpstreamUnavailable("Strategy time budget exhausted")
        return min(per_call_s, remaining)


class HttpExtractionStrategy(ExtractionStrategy):
    """Base class for strategies backed by a third-party HTTP conversion service.

    Subclasses implement `_extract`, issuing calls through `_get_json` /
    `_post_form`. Any upstream failure inside an attempt is logged and turned
    into `None`; nothing escapes `attempt`.
    """

    name = 'http'
    container_format: Optional[str] = 'mp3'
    bitrate_kbps: Optional[int] = None

    def __init__(self,
                 timeout_s: float = 15.0,
                 session: Optional[requests.Session] = None,
                 user_agent: str = DEFAULT_USER_AGENT):
        """Initialize strategy.

        Args:
            timeout_s: Total time budget for one attempt, in seconds
            session: Optional requests session (tests inject a mock here)
            user_agent: User-Agent header sent to the service
        """
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({'User-Agent': user_agent})
        self._local = threading.local()

    @property
    def _budget(self) -> Optional[AttemptBudget]:
        # Strategies are shared between request threads; budgets are per attempt.
        return getattr(self._local, "budget", None)

    def attempt(self, video_id: str) -> Optional[ResolvedStream]:
        self._local.budget = AttemptBudget(self.timeout_s)
        try:
            url = self._extract(video_id)
        except (UpstreamUnavailable, UpstreamShapeError) as e:
            logger.warning(f"{self.name} failed for {video_id}: {type(e).__name__}: {e}")
            return None
        finally:
            self._local.budget = None

        if not url:
            return None
        return self._stream(url)

    def _extract(self, video_id: str) -> Optional[str]:
        raise NotImplementedError

    def _stream(self, url: str) -> ResolvedStream:
        return ResolvedStream(
            url=url,
            source_name=self.name,
            kind=StreamKind.DIRECT_AUDIO,
            bitrate_kbps=self.bitrate_kbps,
            container_format=self.container_format,
        )

    def _timeout(self) -> float:
        if self._budget is None:
            return self.timeout_s
        return self._budget.call_timeout(self.timeout_s)

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request('GET', url, params=params)

    def _post_form(self, url: str, data: Dict[str, Any]) -> Dict[str, Any]:
        # requests sets the x-www-form-urlencoded content type for dict data.
        return self._request('POST', url, data=data)

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self._session.request(method, url, timeout=self._timeout(), **kwargs)
        except requests.Timeout as e:
            raise UpstreamUnavailable(f"Timeout calling {url}") from e
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UpstreamUnavailable(f"{url} answered HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamShapeError(f"{url} did not return JSON") from e
        if not isinstance(payload, dict):
            raise UpstreamShapeError(f"{url} returned {type(payload).__name__}, expected an object")
        return payload


def string_field(payload: Dict[str, Any], key: str) -> Optional[str]:
    """Return payload[key] when it is a non-empty string."""
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
