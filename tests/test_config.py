"""Tests for application configuration."""

import pytest

from resourcemachine import ApplicationConfig, MediaType, ResourceApplication
from resourcemachine.config import (
    ENV_APPLICATION_PATH,
    ENV_DEFAULT_PRODUCES,
    ENV_STRICT_INTERFACES,
)


class TestApplicationConfig:
    """Test precedence of arguments, environment variables and defaults."""

    def test_defaults(self):
        config = ApplicationConfig.load(environ={})
        assert config.application_path == ""
        assert config.strict_interfaces is False
        assert config.default_produces == "application/json"
        assert config.default_media_type == MediaType("application", "json")

    def test_environment_overrides_defaults(self):
        config = ApplicationConfig.load(environ={
            ENV_APPLICATION_PATH: "/api/",
            ENV_STRICT_INTERFACES: "yes",
            ENV_DEFAULT_PRODUCES: "text/plain",
        })
        assert config.application_path == "api"
        assert config.strict_interfaces is True
        assert config.default_produces == "text/plain"

    def test_arguments_override_environment(self):
        config = ApplicationConfig.load(
            application_path="v2",
            strict_interfaces=False,
            default_produces="text/html",
            environ={
                ENV_APPLICATION_PATH: "api",
                ENV_STRICT_INTERFACES: "true",
                ENV_DEFAULT_PRODUCES: "text/plain",
            },
        )
        assert config.application_path == "v2"
        assert config.strict_interfaces is False
        assert config.default_produces == "text/html"

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("1", True), ("ON", True),
        ("false", False), ("0", False), ("off", False),
    ])
    def test_boolean_values(self, value, expected):
        config = ApplicationConfig.load(environ={ENV_STRICT_INTERFACES: value})
        assert config.strict_interfaces is expected

    def test_invalid_boolean_is_ignored(self, caplog):
        config = ApplicationConfig.load(environ={ENV_STRICT_INTERFACES: "maybe"})
        assert config.strict_interfaces is False
        assert ENV_STRICT_INTERFACES in caplog.text

    def test_malformed_default_produces(self):
        with pytest.raises(ValueError):
            ApplicationConfig(default_produces="json")

    def test_application_uses_environment(self, monkeypatch):
        monkeypatch.setenv(ENV_APPLICATION_PATH, "from-env")
        assert ResourceApplication().config.application_path == "from-env"
        assert ResourceApplication(application_path="explicit").config.application_path == "explicit"
