from typing import Optional
from urllib.parse import quote

from .base import HttpExtractionStrategy, string_field


class VeviozStrategy(HttpExtractionStrategy):
    """vevioz button API: a single GET keyed by the bare video id."""

    name = 'vevioz'
    base_url = 'https://api.vevioz.com/api/button/mp3'

    def __init__(self, timeout_s: float = 10.0, **kwargs):
        super().__init__(timeout_s=timeout_s, **kwargs)

    def _extract(self, video_id: str) -> Optional[str]:
        payload = self._get_json(f"{self.base_url}/{quote(video_id, safe='')}")
        return string_field(payload, 'url')
