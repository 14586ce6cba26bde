"""
Tests for settings loading and logger setup.

Run:
    python -m pytest tests/test_config_logger.py -v
"""

import logging

import pytest
from pydantic import ValidationError


@pytest.fixture(autouse=True)
def fresh_settings():
    from sitedeploy.utils.config import reset_settings
    reset_settings()
    yield
    reset_settings()


class TestSettings:

    def test_defaults(self, monkeypatch):
        from sitedeploy.utils.config import Settings

        monkeypatch.delenv("LOG_LEVEL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.github_api_url == "https://api.github.com"
        assert settings.http_retry_attempts == 3
        assert settings.log_page_size == 100
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        from sitedeploy.utils.config import Settings

        monkeypatch.setenv("VERCEL_API_URL", "http://localhost:8080/")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.vercel_api_url == "http://localhost:8080"
        assert settings.log_level == "DEBUG"

    def test_invalid_log_level(self):
        from sitedeploy.utils.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_retry_attempts_must_be_positive(self):
        from sitedeploy.utils.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, http_retry_attempts=0)

    def test_get_settings_is_singleton(self):
        from sitedeploy.utils.config import get_settings, reset_settings

        first = get_settings()
        assert get_settings() is first

        reset_settings()
        assert get_settings() is not first


class TestLogger:

    def test_get_logger(self):
        from sitedeploy.utils.logger import get_logger

        logger = get_logger("sitedeploy.test", level="INFO")

        assert logger.name == "sitedeploy.test"
        assert logger.level == logging.INFO

    def test_handlers_not_duplicated(self):
        from sitedeploy.utils.logger import setup_logger

        first = setup_logger("sitedeploy.test.dupes", level="DEBUG")
        count = len(first.handlers)
        second = setup_logger("sitedeploy.test.dupes", level="DEBUG")

        assert second is first
        assert len(second.handlers) == count

    def test_file_logging(self, tmp_path):
        from sitedeploy.utils.logger import setup_logger

        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logger("sitedeploy.test.file", level="INFO", log_file=log_file, console=False)
        logger.info("deployment started")
        for handler in logger.handlers:
            handler.flush()

        assert "deployment started" in log_file.read_text()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
