import time
import threading
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass
class StrategyMetrics:
    """Counters for a single extraction strategy."""
    name: str
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    total_duration_ms: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate for this strategy."""
        if self.attempts == 0:
            return 0.0
        return self.successes / self.attempts

    @property
    def average_duration_ms(self) -> float:
        """Calculate average attempt duration."""
        if self.attempts == 0:
            return 0.0
        return self.total_duration_ms / self.attempts


class ResolutionMetrics:
    """Collects counters for the audio resolution chain."""

    def __init__(self):
        self._lock = threading.Lock()
        self._strategies: Dict[str, StrategyMetrics] = {}
        self.requests = 0
        self.fallbacks = 0

    def _strategy(self, name: str) -> StrategyMetrics:
        if name not in self._strategies:
            self._strategies[name] = StrategyMetrics(name=name)
        return self._strategies[name]

    def record_request(self) -> None:
        with self._lock:
            self.requests += 1

    def record_fallback(self) -> None:
        with self._lock:
            self.fallbacks += 1

    def record_attempt(self, name: str, success: bool, duration_ms: int) -> None:
        """Record the outcome of one strategy attempt."""
        with self._lock:
            metrics = self._strategy(name)
            metrics.attempts += 1
            metrics.total_duration_ms += max(0, duration_ms)
            if success:
                metrics.successes += 1
            else:
                metrics.failures += 1

    @contextmanager
    def time_attempt(self, name: str):
        """Time a strategy attempt; the caller sets `outcome['success']`."""
        outcome = {'success': False}
        start = time.monotonic()
        try:
            yield outcome
        finally:
            duration_ms = int((time.monotonic() - start) * 1000)
            self.record_attempt(name, outcome['success'], duration_ms)

    def snapshot(self) -> Dict[str, Any]:
        """Get a JSON-serializable view of all counters."""
        with self._lock:
            strategies = {
                name: {
                    **asdict(m),
                    'success_rate': round(m.success_rate, 4),
                    'average_duration_ms': round(m.average_duration_ms, 1),
                }
                for name, m in self._strategies.items()
            }
            return {
                'requests': self.requests,
                'fallbacks': self.fallbacks,
                'strategies': strategies,
            }
