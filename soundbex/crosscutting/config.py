import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values


DEFAULT_STRATEGIES = ['loader', 'y2mate', 'convert2mp3']
DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0 Safari/537.36'
)


class ConfigError(Exception):
    """Configuration error."""
    pass


@dataclass
class Settings:
    """Runtime settings for the backend service."""

    host: str = '0.0.0.0'
    port: int = 3000
    debug: bool = False
    strategies: List[str] = field(default_factory=lambda: list(DEFAULT_STRATEGIES))
    strategy_timeout_s: float = 15.0
    search_fetch_limit: int = 25
    search_result_limit: int = 20
    playlist_ttl_s: float = 3600.0
    reaper_interval_s: float = 60.0
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    def summary(self) -> Dict[str, object]:
        """Get configuration summary for diagnostics."""
        return {
            'host': self.host,
            'port': self.port,
            'strategies': list(self.strategies),
            'strategy_timeout_s': self.strategy_timeout_s,
            'playlist_ttl_s': self.playlist_ttl_s,
        }


def _parse_int(env: Mapping[str, str], key: str, default: int, minimum: int = 0) -> int:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _parse_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _parse_strategies(env: Mapping[str, str]) -> List[str]:
    raw = env.get('SOUNDBEX_STRATEGIES')
    if not raw:
        return list(DEFAULT_STRATEGIES)
    names = [name.strip().lower() for name in raw.split(',') if name.strip()]
    if not names:
        raise ConfigError("SOUNDBEX_STRATEGIES must name at least one strategy")
    return names


def load_settings(env_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from a .env file overlaid by the process environment.

    Values already present in the environment win over the file, matching
    python-dotenv's default of not overriding.
    """
    env: Dict[str, str] = {}
    if env_file:
        if not os.path.exists(env_file):
            raise ConfigError(f"Env file {env_file} does not exist")
        env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    env.update(os.environ if environ is None else environ)

    log_level = env.get('SOUNDBEX_LOG_LEVEL', 'INFO').upper()
    if log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        raise ConfigError(f"SOUNDBEX_LOG_LEVEL is not a logging level: {log_level}")

    fetch_limit = _parse_int(env, 'SOUNDBEX_SEARCH_FETCH_LIMIT', 25, minimum=1)
    result_limit = _parse_int(env, 'SOUNDBEX_SEARCH_RESULT_LIMIT', 20, minimum=1)
    if result_limit > fetch_limit:
        raise ConfigError("SOUNDBEX_SEARCH_RESULT_LIMIT cannot exceed SOUNDBEX_SEARCH_FETCH_LIMIT")

    return Settings(
        host=env.get('SOUNDBEX_HOST', '0.0.0.0'),
        port=_parse_int(env, 'SOUNDBEX_PORT', 3000, minimum=1),
        debug=_parse_bool(env, 'SOUNDBEX_DEBUG', False),
        strategies=_parse_strategies(env),
        strategy_timeout_s=_parse_float(env, 'SOUNDBEX_STRATEGY_TIMEOUT', 15.0),
        search_fetch_limit=fetch_limit,
        search_result_limit=result_limit,
        playlist_ttl_s=_parse_float(env, 'SOUNDBEX_PLAYLIST_TTL', 3600.0),
        reaper_interval_s=_parse_float(env, 'SOUNDBEX_REAPER_INTERVAL', 60.0),
        user_agent=env.get('SOUNDBEX_USER_AGENT') or DEFAULT_USER_AGENT,
        log_level=log_level,
        log_file=env.get('SOUNDBEX_LOG_FILE') or None,
    )
