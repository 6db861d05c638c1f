import time
from typing import Optional

import pytest

from soundbex.application.resolution import ResolutionChain
from soundbex.domain.entities import ResolvedStream, StreamKind
from soundbex.domain.errors import UpstreamUnavailable, ValidationError


class StubStrategy:
    """Strategy double that counts calls and returns a canned outcome."""

    def __init__(self, name: str, url: Optional[str] = None, error: Optional[Exception] = None,
                 delay_s: float = 0.0):
        self.name = name
        self.url = url
        self.error = error
        self.delay_s = delay_s
        self.calls = []

    def attempt(self, video_id: str) -> Optional[ResolvedStream]:
        self.calls.append(video_id)
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        if self.url is None:
            return None
        return ResolvedStream(url=self.url, source_name=self.name, kind=StreamKind.DIRECT_AUDIO,
                              bitrate_kbps=128, container_format='mp3')


class TestResolutionChain:
    """Tests for the ordered fallback chain."""

    def test_first_success_short_circuits(self):
        """Test later strategies are never invoked after a success."""
        first = StubStrategy('loader', url='https://cdn/1.mp3')
        second = StubStrategy('y2mate', url='https://cdn/2.mp3')
        third = StubStrategy('convert2mp3', url='https://cdn/3.mp3')
        chain = ResolutionChain([first, second, third])

        stream = chain.resolve('vid')

        assert stream.url == 'https://cdn/1.mp3'
        assert stream.source_name == 'loader'
        assert stream.kind is StreamKind.DIRECT_AUDIO
        assert first.calls == ['vid']
        assert second.calls == []
        assert third.calls == []

    def test_falls_through_to_later_strategy(self):
        """Test failures move on to the next strategy in order."""
        first = StubStrategy('loader')
        second = StubStrategy('y2mate', error=UpstreamUnavailable("HTTP 503"))
        third = StubStrategy('convert2mp3', url='https://cdn/3.mp3')
        chain = ResolutionChain([first, second, third])

        stream = chain.resolve('vid')

        assert stream.source_name == 'convert2mp3'
        assert len(first.calls) == len(second.calls) == len(third.calls) == 1

    def test_all_fail_returns_page_fallback(self):
        """Test exhaustion degrades to the canonical page URL."""
        strategies = [
            StubStrategy('loader'),
            StubStrategy('y2mate', error=RuntimeError("parser crashed")),
            StubStrategy('convert2mp3', error=ValueError("bad json")),
        ]
        chain = ResolutionChain(strategies)

        stream = chain.resolve('dQw4w9WgXcQ')

        assert stream.kind is StreamKind.RAW_PAGE_FALLBACK
        assert stream.url == 'https://www.youtube.com/watch?v=dQw4w9WgXcQ'
        assert stream.source_name == 'youtube_direct'
        assert stream.bitrate_kbps is None
        assert all(len(s.calls) == 1 for s in strategies)

    def test_empty_url_counts_as_failure(self):
        """Test a stream without a URL is not accepted."""
        chain = ResolutionChain([StubStrategy('loader', url=''), StubStrategy('y2mate', url='https://cdn/ok.mp3')])
        assert chain.resolve('vid').source_name == 'y2mate'

    def test_no_strategies_falls_back(self):
        """Test an empty chain still answers."""
        stream = ResolutionChain([]).resolve('vid')
        assert stream.kind is StreamKind.RAW_PAGE_FALLBACK

    def test_blank_video_id_rejected(self):
        """Test blank ids raise ValidationError before any strategy runs."""
        strategy = StubStrategy('loader', url='https://cdn/1.mp3')
        chain = ResolutionChain([strategy])
        with pytest.raises(ValidationError):
            chain.resolve('  ')
        assert strategy.calls == []

    def test_every_request_re_resolves(self):
        """Test results are not cached between calls."""
        strategy = StubStrategy('loader', url='https://cdn/1.mp3')
        chain = ResolutionChain([strategy])
        chain.resolve('vid')
        chain.resolve('vid')
        assert strategy.calls == ['vid', 'vid']

    def test_metrics_recorded(self):
        """Test attempts, successes and fallbacks are counted."""
        chain = ResolutionChain([StubStrategy('loader'), StubStrategy('y2mate', url='https://cdn/2.mp3')])
        chain.resolve('a')
        ResolutionChain([StubStrategy('loader')], metrics=chain.metrics).resolve('b')

        snapshot = chain.metrics.snapshot()
        assert snapshot['requests'] == 2
        assert snapshot['fallbacks'] == 1
        assert snapshot['strategies']['loader']['attempts'] == 2
        assert snapshot['strategies']['loader']['failures'] == 2
        assert snapshot['strategies']['y2mate']['successes'] == 1

    def test_strategies_run_sequentially_within_budget(self):
        """Test total time is bounded by the sum of strategy durations."""
        strategies = [StubStrategy(f's{i}', delay_s=0.05) for i in range(3)]
        chain = ResolutionChain(strategies)

        start = time.monotonic()
        stream = chain.resolve('vid')
        elapsed = time.monotonic() - start

        assert stream.kind is StreamKind.RAW_PAGE_FALLBACK
        assert elapsed >= 0.15
        assert elapsed < 1.0

    def test_strategy_names(self):
        """Test the configured priority order is exposed."""
        chain = ResolutionChain([StubStrategy('loader'), StubStrategy('y2mate')])
        assert chain.strategy_names == ['loader', 'y2mate']
