"""
Tests for configuration loading.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from slipway.core.settings import (
    DEFAULT_BUILD_IMAGE,
    DEFAULT_RELEASE_PORT,
    ConfigurationError,
    Settings,
    load_settings,
)

REQUIRED_ENV = {
    "DOMAIN": "https://build.ceroku.test",
    "MAIN_PATH": "/srv/apps",
    "PORT": "9002",
    "TOKEN": "s3cret",
}


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_loads_required_variables(self, tmp_path):
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = load_settings(env_file=tmp_path / "missing.env")

        assert settings.main_path == Path("/srv/apps")
        assert settings.domain == "https://build.ceroku.test"
        assert settings.port == 9002
        assert settings.token == "s3cret"

    def test_defaults(self, tmp_path):
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = load_settings(env_file=tmp_path / "missing.env")

        assert settings.docker_socket == Path("/var/run/docker.sock")
        assert settings.build_image == DEFAULT_BUILD_IMAGE
        assert settings.release_port == DEFAULT_RELEASE_PORT
        assert settings.proxy_network == "web"

    @pytest.mark.parametrize("name", ["DOMAIN", "MAIN_PATH", "PORT", "TOKEN"])
    def test_missing_variable_is_fatal(self, name, tmp_path):
        env = {k: v for k, v in REQUIRED_ENV.items() if k != name}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                load_settings(env_file=tmp_path / "missing.env")

        assert exc_info.value.missing == [name]
        assert name in str(exc_info.value)

    def test_invalid_port(self, tmp_path):
        env = {**REQUIRED_ENV, "PORT": "not-a-port"}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError):
                load_settings(env_file=tmp_path / "missing.env")

    def test_env_file_is_read(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("TOKEN=from-file\nRELEASE_IMAGE=acme/runner\n")
        env = {k: v for k, v in REQUIRED_ENV.items() if k != "TOKEN"}
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings(env_file=env_file)

        assert settings.token == "from-file"
        assert settings.release_image == "acme/runner"


class TestSettingsUrls:
    """Tests for URLs derived from settings."""

    def make(self, **overrides):
        values = {"main_path": "/srv/apps", "domain": "https://build.ceroku.test", "port": 9002, "token": "t"}
        values.update(overrides)
        return Settings(**values)

    def test_release_domain_defaults_to_domain_host(self):
        assert self.make().release_domain == "build.ceroku.test"

    def test_release_domain_without_scheme(self):
        assert self.make(domain="ceroku.test:9002").release_domain == "ceroku.test"

    def test_release_domain_override(self):
        assert self.make(app_domain="ceroku.com").release_domain == "ceroku.com"

    def test_app_url(self):
        assert self.make(app_domain="ceroku.com").app_url("demo") == "http://demo.ceroku.com/"

    def test_log_stream_url(self):
        settings = self.make(domain="https://build.ceroku.test/")
        assert (
            settings.log_stream_url("demo", "abc")
            == "https://build.ceroku.test/apps/demo/builds/abc/logs"
        )
