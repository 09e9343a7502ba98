"""
Tests for configuration loading.
"""

import json
import pytest
from pathlib import Path

from kubelog.utils.config import (
    ConfigLoader, KubeLogConfig, StreamConfig, ApiConfig, OVERRIDE_PRIORITY
)
from kubelog.utils.errors import ConfigurationError


class TestConfigModels:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = KubeLogConfig()

        assert config.api.base_url == "http://localhost:8001"
        assert config.api.request_timeout == 15.0
        assert config.stream.max_retries == 3
        assert config.stream.base_retry_delay == 1.0
        assert config.export.include_timestamps is True

    def test_base_url_normalized(self):
        assert ApiConfig(base_url="https://k8s.example.com/").base_url == "https://k8s.example.com"

    def test_base_url_requires_scheme(self):
        with pytest.raises(ValueError):
            ApiConfig(base_url="k8s.example.com")

    def test_decode_errors_restricted(self):
        with pytest.raises(ValueError):
            StreamConfig(decode_errors="ignore")


class TestConfigLoader:
    """Test source merging and environment overrides."""

    def test_yaml_file(self, tmp_path: Path, clean_env):
        path = tmp_path / "kubelog.yaml"
        path.write_text("api:\n  base_url: https://cluster:6443\nstream:\n  max_retries: 5\n")

        loader = ConfigLoader(environ=clean_env)
        loader.add_source(path)
        config = loader.load()

        assert config.api.base_url == "https://cluster:6443"
        assert config.stream.max_retries == 5

    def test_toml_file(self, tmp_path: Path, clean_env):
        path = tmp_path / "kubelog.toml"
        path.write_text("[logging]\nlevel = \"debug\"\n")

        loader = ConfigLoader(environ=clean_env)
        loader.add_source(path)

        assert loader.load().logging.level == "DEBUG"

    def test_priority_order(self, tmp_path: Path, clean_env):
        low = tmp_path / "low.json"
        low.write_text(json.dumps({"stream": {"max_retries": 1, "base_retry_delay": 2.0}}))

        loader = ConfigLoader(environ=clean_env)
        loader.add_source({"stream": {"max_retries": 7}}, priority=20)
        loader.add_source(low, priority=10)
        config = loader.load()

        assert config.stream.max_retries == 7
        assert config.stream.base_retry_delay == 2.0

    def test_environment_variables(self):
        environ = {
            "KUBELOG_API_BASE_URL": "https://env:6443",
            "KUBELOG_API_VERIFY_SSL": "false",
            "KUBELOG_STREAM_MAX_RETRIES": "2",
            "KUBELOG_DEBUG": "true",
            "UNRELATED": "x",
        }

        config = ConfigLoader(environ=environ).load()

        assert config.api.base_url == "https://env:6443"
        assert config.api.verify_ssl is False
        assert config.stream.max_retries == 2
        assert config.debug is True

    def test_environment_beats_files_not_overrides(self):
        environ = {"KUBELOG_STREAM_MAX_RETRIES": "2"}

        loader = ConfigLoader(environ=environ)
        loader.add_source({"stream": {"max_retries": 9}}, priority=10)
        assert loader.load().stream.max_retries == 2

        loader.add_source({"stream": {"max_retries": 4}}, priority=OVERRIDE_PRIORITY)
        assert loader.load().stream.max_retries == 4

    def test_invalid_values(self, clean_env):
        loader = ConfigLoader(environ=clean_env)
        loader.add_source({"stream": {"max_retries": -1}})

        with pytest.raises(ConfigurationError) as exc_info:
            loader.load()
        assert "stream.max_retries" in str(exc_info.value)

    def test_unparseable_file(self, tmp_path: Path, clean_env):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        loader = ConfigLoader(environ=clean_env)
        loader.add_source(path)

        with pytest.raises(ConfigurationError):
            loader.load()

    def test_unknown_file_type(self, tmp_path: Path, clean_env):
        with pytest.raises(ConfigurationError):
            ConfigLoader(environ=clean_env).add_source(tmp_path / "config.ini")

    def test_get_config_before_load(self, clean_env):
        with pytest.raises(ConfigurationError):
            ConfigLoader(environ=clean_env).get_config()
