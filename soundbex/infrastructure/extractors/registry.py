from typing import Dict, List, Optional, Sequence, Type

import requests

from soundbex.crosscutting.config import ConfigError

from .base import HttpExtractionStrategy
from .convert2mp3 import Convert2Mp3Strategy
from .loader import LoaderStrategy
from .vevioz import VeviozStrategy
from .y2mate import Y2MateStrategy

STRATEGY_REGISTRY: Dict[str, Type[HttpExtractionStrategy]] = {
    LoaderStrategy.name: LoaderStrategy,
    Y2MateStrategy.name: Y2MateStrategy,
    Convert2Mp3Strategy.name: Convert2Mp3Strategy,
    VeviozStrategy.name: VeviozStrategy,
}


def build_strategies(names: Sequence[str],
                     timeout_s: Optional[float] = None,
                     user_agent: Optional[str] = None,
                     session: Optional[requests.Session] = None) -> List[HttpExtractionStrategy]:
    """Instantiate strategies in the given priority order."""
    unknown = [n for n in names if n not in STRATEGY_REGISTRY]
    if unknown:
        raise ConfigError(
            f"Unknown strategies: {', '.join(unknown)} "
            f"(available: {', '.join(sorted(STRATEGY_REGISTRY))})"
        )

    kwargs = {}
    if timeout_s is not None:
        kwargs['timeout_s'] = timeout_s
    if user_agent:
        kwargs['user_agent'] = user_agent
    if session is not None:
        kwargs['session'] = session
    return [STRATEGY_REGISTRY[name](**kwargs) for name in names]
