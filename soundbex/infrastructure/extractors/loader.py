import logging
import time
from typing import Optional

from soundbex.domain.errors import UpstreamShapeError
from soundbex.domain.normalization import canonical_page_url

from .base import HttpExtractionStrategy, string_field

logger = logging.getLogger(__name__)


class LoaderStrategy(HttpExtractionStrategy):
    """loader.to: start an MP3 conversion job, then poll its progress endpoint.

    The conversion is asynchronous on their side, so the attempt polls a
    bounded number of times while the time budget lasts.
    """

    name = 'loader'
    base_url = 'https://loader.to/ajax'

    def __init__(self, *args, max_polls: int = 5, poll_interval_s: float = 1.0,
                 sleep=time.sleep, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_polls = max_polls
        self.poll_interval_s = poll_interval_s
        self._sleep = sleep

    def _extract(self, video_id: str) -> Optional[str]:
        started = self._get_json(f'{self.base_url}/download.php', params={
            'format': 'mp3',
            'url': canonical_page_url(video_id),
        })
        if not started.get('success'):
            logger.info(f"loader.to refused conversion for {video_id}")
            return None
        job_id = string_field(started, 'id')
        if not job_id:
            raise UpstreamShapeError("loader.to response has no job id")

        for poll in range(self.max_polls):
            progress = self._get_json(f'{self.base_url}/progress.php', params={'id': job_id})
            download_url = string_field(progress, 'download_url')
            if download_url:
                return download_url
            if poll + 1 == self.max_polls:
                break
            wait = self.poll_interval_s
            if self._budget is not None:
                wait = min(wait, self._budget.remaining())
            if wait <= 0:
                break
            self._sleep(wait)
        return None
