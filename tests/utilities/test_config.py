"""
Unit tests for configuration validation.
"""

import pytest
from pydantic import ValidationError

from utilities.config import AppConfig


class TestAppConfig:
    """Test cases for AppConfig."""

    def test_defaults(self):
        config = AppConfig(_env_file=None)

        assert config.port == 3000
        assert config.algorithm == "HS256"
        assert config.get_log_file_path() is None

    def test_log_level_normalized(self):
        assert AppConfig(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError) as exc_info:
            AppConfig(_env_file=None, log_level="verbose")

        assert "log_level must be one of" in str(exc_info.value)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, log_format="xml")

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, port=70000)

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MONGODB_DATABASE", "reviews_test")
        monkeypatch.setenv("PORT", "8080")

        config = AppConfig(_env_file=None)

        assert config.mongodb_database == "reviews_test"
        assert config.port == 8080
