"""Unit tests for settings validation."""

import pytest
from pydantic import ValidationError

from voiceclone.core.config import Settings, settings


class TestSettings:
    """Test Settings validators."""

    @pytest.mark.parametrize("interval", [0.0, -1.0])
    def test_poll_interval_must_be_positive(self, interval: float) -> None:
        with pytest.raises(ValidationError):
            Settings(poll_interval=interval)

    def test_poll_interval_assignment_is_validated(self) -> None:
        with pytest.raises(ValidationError):
            settings.poll_interval = 0.0
        assert settings.poll_interval > 0

    def test_base_url_is_normalised(self) -> None:
        assert Settings(api_base_url="https://host/api/").api_base_url == "https://host/api"

    def test_base_url_requires_http(self) -> None:
        with pytest.raises(ValidationError):
            Settings(api_base_url="ftp://host/api")

    def test_paths_get_leading_slash(self) -> None:
        config = Settings(clone_path="clone", status_path="status/{task_id}")
        assert config.clone_path == "/clone"
        assert config.status_path == "/status/{task_id}"

    def test_status_path_needs_placeholder(self) -> None:
        with pytest.raises(ValidationError):
            Settings(status_path="/status")
