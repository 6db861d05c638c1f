from typing import Optional

from soundbex.domain.normalization import canonical_page_url

from .base import HttpExtractionStrategy, string_field


class Convert2Mp3Strategy(HttpExtractionStrategy):
    """convert2mp3.cc: one form POST that answers with the MP3 URL."""

    name = 'convert2mp3'
    endpoint = 'https://convert2mp3.cc/api/converter'

    def _extract(self, video_id: str) -> Optional[str]:
        payload = self._post_form(self.endpoint, {
            'url': canonical_page_url(video_id),
            'format': 'mp3',
        })
        return string_field(payload, 'url')
