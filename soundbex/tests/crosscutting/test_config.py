import os
import tempfile

import pytest

from soundbex.crosscutting.config import (
    ConfigError, DEFAULT_STRATEGIES, Settings, load_settings
)


class TestLoadSettings:
    """Tests for settings loading from environment and .env files."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.env_file = os.path.join(self.temp_dir, '.env')

    def teardown_method(self):
        """Clean up test fixtures."""
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_defaults(self):
        """Test defaults when nothing is configured."""
        settings = load_settings(environ={})

        assert settings.port == 3000
        assert settings.debug is False
        assert settings.strategies == DEFAULT_STRATEGIES
        assert settings.strategy_timeout_s == 15.0
        assert settings.search_fetch_limit == 25
        assert settings.search_result_limit == 20
        assert settings.playlist_ttl_s == 3600.0
        assert settings.log_file is None

    def test_environment_overrides(self):
        """Test environment variables override defaults."""
        settings = load_settings(environ={
            'SOUNDBEX_PORT': '8080',
            'SOUNDBEX_DEBUG': 'true',
            'SOUNDBEX_STRATEGIES': 'Y2Mate, vevioz',
            'SOUNDBEX_STRATEGY_TIMEOUT': '2.5',
            'SOUNDBEX_PLAYLIST_TTL': '60',
            'SOUNDBEX_LOG_LEVEL': 'debug',
        })

        assert settings.port == 8080
        assert settings.debug is True
        assert settings.strategies == ['y2mate', 'vevioz']
        assert settings.strategy_timeout_s == 2.5
        assert settings.playlist_ttl_s == 60.0
        assert settings.log_level == 'DEBUG'

    def test_env_file_is_read_and_environment_wins(self):
        """Test .env values load but process environment takes precedence."""
        with open(self.env_file, 'w') as f:
            f.write("SOUNDBEX_PORT=4000\n")
            f.write("SOUNDBEX_STRATEGY_TIMEOUT=5\n")

        settings = load_settings(env_file=self.env_file, environ={'SOUNDBEX_PORT': '5000'})

        assert settings.port == 5000
        assert settings.strategy_timeout_s == 5.0

    def test_missing_env_file(self):
        """Test a missing .env file is a configuration error."""
        with pytest.raises(ConfigError, match="does not exist"):
            load_settings(env_file=os.path.join(self.temp_dir, 'missing.env'), environ={})

    @pytest.mark.parametrize('key,value', [
        ('SOUNDBEX_PORT', 'abc'),
        ('SOUNDBEX_PORT', '0'),
        ('SOUNDBEX_STRATEGY_TIMEOUT', '-1'),
        ('SOUNDBEX_PLAYLIST_TTL', 'soon'),
        ('SOUNDBEX_LOG_LEVEL', 'LOUD'),
        ('SOUNDBEX_STRATEGIES', ' , '),
    ])
    def test_invalid_values(self, key, value):
        """Test invalid values raise ConfigError."""
        with pytest.raises(ConfigError):
            load_settings(environ={key: value})

    def test_result_limit_cannot_exceed_fetch_limit(self):
        """Test search limits are checked against each other."""
        with pytest.raises(ConfigError, match="cannot exceed"):
            load_settings(environ={
                'SOUNDBEX_SEARCH_FETCH_LIMIT': '10',
                'SOUNDBEX_SEARCH_RESULT_LIMIT': '20',
            })

    def test_summary(self):
        """Test settings summary exposes non-sensitive values."""
        summary = Settings().summary()
        assert summary['strategies'] == DEFAULT_STRATEGIES
        assert summary['port'] == 3000
