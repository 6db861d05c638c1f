from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from soundbex.crosscutting.logging import CorrelationContext, log_with_fields
from soundbex.crosscutting.metrics import ResolutionMetrics
from soundbex.domain.entities import ResolvedStream, StreamKind
from soundbex.domain.errors import ResolutionExhausted, ValidationError
from soundbex.domain.normalization import canonical_page_url
from soundbex.domain.ports import ExtractionStrategy

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "youtube_direct"


class ResolutionChain:
    """Ordered fallback chain of extraction strategies.

    Strategies run one at a time in the order given; the first one to produce
    a usable URL wins and the rest are skipped. When all of them fail the
    canonical watch-page URL is returned as a degraded result, so `resolve`
    never raises for upstream trouble.
    """

    def __init__(self, strategies: Sequence[ExtractionStrategy],
                 metrics: Optional[ResolutionMetrics] = None):
        self._strategies: List[ExtractionStrategy] = list(strategies)
        self.metrics = metrics or ResolutionMetrics()

    @property
    def strategy_names(self) -> List[str]:
        return [s.name for s in self._strategies]

    def resolve(self, video_id: str) -> ResolvedStream:
        video_id = (video_id or "").strip()
        if not video_id:
            raise ValidationError("videoId is required")

        self.metrics.record_request()
        with CorrelationContext(video_id=video_id):
            try:
                return self._run_strategies(video_id)
            except ResolutionExhausted as e:
                logger.warning(f"{e}; falling back to page URL")
                self.metrics.record_fallback()
                return ResolvedStream(
                    url=canonical_page_url(video_id),
                    source_name=FALLBACK_SOURCE,
                    kind=StreamKind.RAW_PAGE_FALLBACK,
                )

    def _run_strategies(self, video_id: str) -> ResolvedStream:
        for strategy in self._strategies:
            stream = self._try(strategy, video_id)
            if stream is not None:
                log_with_fields(logger, 'INFO', 'Audio stream resolved',
                                source=stream.source_name, kind=stream.kind.value)
                return stream
        raise ResolutionExhausted(video_id, len(self._strategies))

    def _try(self, strategy: ExtractionStrategy, video_id: str) -> Optional[ResolvedStream]:
        with CorrelationContext(strategy=strategy.name), \
                self.metrics.time_attempt(strategy.name) as outcome:
            try:
                stream = strategy.attempt(video_id)
            except Exception as e:
                # Strategies are third-party glue; a crash is just another failure.
                log_with_fields(logger, 'WARNING', 'Strategy raised',
                                error_type=type(e).__name__, error_message=str(e))
                return None
            if stream is None or not stream.url:
                logger.info(f"Strategy {strategy.name} found no audio URL")
                return None
            outcome['success'] = True
            return stream
