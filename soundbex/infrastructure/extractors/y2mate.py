from typing import Optional

from soundbex.domain.errors import UpstreamShapeError
from soundbex.domain.normalization import canonical_page_url

from .base import HttpExtractionStrategy, string_field


class Y2MateStrategy(HttpExtractionStrategy):
    """y2mate: analyze the video for an MP3 128 kbps key, then convert it."""

    name = 'y2mate'
    base_url = 'https://www.y2mate.com/mates'
    quality_key = 'mp3128'
    bitrate_kbps = 128

    def _extract(self, video_id: str) -> Optional[str]:
        analyzed = self._post_form(f'{self.base_url}/analyzeV2/ajax', {
            'url': canonical_page_url(video_id),
            'q_auto': '0',
            'ajax': '1',
        })
        result = analyzed.get('result')
        if result is None:
            return None
        if not isinstance(result, dict):
            raise UpstreamShapeError("y2mate analyze result is not an object")

        links = result.get('links') or {}
        mp3_links = links.get('mp3') if isinstance(links, dict) else None
        option = mp3_links.get(self.quality_key) if isinstance(mp3_links, dict) else None
        key = string_field(option, 'k') if isinstance(option, dict) else None
        if not key:
            return None

        converted = self._post_form(f'{self.base_url}/convertV2/index', {
            'vid': video_id,
            'k': key,
        })
        return string_field(converted, 'dlink')
