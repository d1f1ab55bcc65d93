"""Tests for engine configuration."""

import os
import tempfile
from unittest import mock

import pytest

from catalog_engine.config import CONFIG_FILENAME, EngineConfig, find_config_file, load_config
from catalog_engine.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep config auto-discovery away from any real catalog.config.yaml."""
    monkeypatch.chdir(tmp_path)
    for var in (
        "CATALOG_BASE_URL",
        "CATALOG_API_KEY",
        "CATALOG_HTTP_TIMEOUT",
        "CATALOG_BULK_PATH",
        "CATALOG_SHUTDOWN_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)


def write_yaml(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write(content)
        return f.name


class TestEngineConfig:
    """Tests for EngineConfig dataclass."""

    def test_default_values(self) -> None:
        """Config has expected default values."""
        config = EngineConfig()
        assert config.base_url is None
        assert config.api_key is None
        assert config.http_timeout == 10.0
        assert config.bulk_path == "/api/catalog/{entity}/bulk"
        assert config.shutdown_timeout == 5.0

    def test_custom_values(self) -> None:
        """Config accepts custom values."""
        config = EngineConfig(
            base_url="http://localhost:3000",
            api_key="test-key",
            http_timeout=2.5,
            bulk_path="/bulk/{entity}",
        )
        assert config.base_url == "http://localhost:3000"
        assert config.api_key == "test-key"
        assert config.http_timeout == 2.5
        assert config.bulk_path.format(entity="products") == "/bulk/products"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults_with_no_args(self) -> None:
        """Load config returns defaults when nothing is configured."""
        config = load_config()
        assert config == EngineConfig()

    def test_env_var_override(self) -> None:
        """Environment variables override defaults."""
        env = {
            "CATALOG_BASE_URL": "http://env-url:8080",
            "CATALOG_API_KEY": "env-key",
            "CATALOG_HTTP_TIMEOUT": "3",
            "CATALOG_BULK_PATH": "/v2/{entity}/bulk",
            "CATALOG_SHUTDOWN_TIMEOUT": "1.5",
        }
        with mock.patch.dict(os.environ, env, clear=False):
            config = load_config()

        assert config.base_url == "http://env-url:8080"
        assert config.api_key == "env-key"
        assert config.http_timeout == 3.0
        assert isinstance(config.http_timeout, float)
        assert config.bulk_path == "/v2/{entity}/bulk"
        assert config.shutdown_timeout == 1.5

    def test_kwargs_override_env_vars(self) -> None:
        """Explicit kwargs take priority over env vars."""
        env = {"CATALOG_BASE_URL": "http://env-url:8080"}
        with mock.patch.dict(os.environ, env, clear=False):
            config = load_config(base_url="http://kwarg-url:9090")

        assert config.base_url == "http://kwarg-url:9090"

    def test_flat_yaml_file(self) -> None:
        """Settings may sit at the top level of the YAML file."""
        yaml_path = write_yaml(
            """
base_url: http://yaml-url:8000
api_key: yaml-key
http_timeout: 4
"""
        )
        try:
            config = load_config(config_file=yaml_path)
            assert config.base_url == "http://yaml-url:8000"
            assert config.api_key == "yaml-key"
            assert config.http_timeout == 4.0
        finally:
            os.unlink(yaml_path)

    def test_sectioned_yaml_file(self) -> None:
        """Settings under an engine: section are picked up."""
        yaml_path = write_yaml(
            """
engine:
  base_url: http://section-url:8000
  bulk_path: /x/{entity}
other:
  base_url: http://ignored
"""
        )
        try:
            config = load_config(config_file=yaml_path)
            assert config.base_url == "http://section-url:8000"
            assert config.bulk_path == "/x/{entity}"
        finally:
            os.unlink(yaml_path)

    def test_auto_discovered_yaml(self, tmp_path) -> None:
        """catalog.config.yaml in the cwd is used when no path is given."""
        (tmp_path / "catalog.config.yaml").write_text(
            "engine:\n  base_url: http://discovered:1\n"
        )
        config = load_config()
        assert config.base_url == "http://discovered:1"

    def test_env_vars_override_yaml(self) -> None:
        """Env vars take priority over YAML file."""
        yaml_path = write_yaml("base_url: http://yaml-url:8000\napi_key: yaml-key\n")
        try:
            env = {"CATALOG_BASE_URL": "http://env-url:9000"}
            with mock.patch.dict(os.environ, env, clear=False):
                config = load_config(config_file=yaml_path)

            # Env var wins
            assert config.base_url == "http://env-url:9000"
            # YAML still applies for others
            assert config.api_key == "yaml-key"
        finally:
            os.unlink(yaml_path)

    def test_kwargs_override_yaml_and_env(self) -> None:
        """Kwargs override both YAML and env vars."""
        yaml_path = write_yaml("base_url: http://yaml-url:8000")
        try:
            env = {"CATALOG_BASE_URL": "http://env-url:9000"}
            with mock.patch.dict(os.environ, env, clear=False):
                config = load_config(config_file=yaml_path, base_url="http://kwarg-url:7000")

            assert config.base_url == "http://kwarg-url:7000"
        finally:
            os.unlink(yaml_path)

    def test_nonexistent_yaml_file_ignored(self) -> None:
        """Nonexistent YAML file is silently ignored."""
        config = load_config(config_file="/nonexistent/path.yaml")
        assert config.http_timeout == 10.0

    def test_unknown_keys_ignored(self) -> None:
        """Keys EngineConfig does not know are dropped."""
        config = load_config(colour="blue", base_url="http://x")
        assert config.base_url == "http://x"
        assert not hasattr(config, "colour")

    def test_none_kwargs_ignored(self) -> None:
        """None kwargs don't override existing values."""
        env = {"CATALOG_BASE_URL": "http://env-url:8080"}
        with mock.patch.dict(os.environ, env, clear=False):
            config = load_config(base_url=None)

        assert config.base_url == "http://env-url:8080"

    def test_top_level_list_rejected(self) -> None:
        """A YAML file whose top level is a list raises ConfigError."""
        yaml_path = write_yaml("- base_url\n- api_key\n")
        try:
            with pytest.raises(ConfigError, match="must contain a mapping"):
                load_config(config_file=yaml_path)
        finally:
            os.unlink(yaml_path)

    def test_top_level_scalar_rejected(self) -> None:
        """A YAML file holding a bare scalar raises ConfigError."""
        yaml_path = write_yaml("just a string\n")
        try:
            with pytest.raises(ConfigError):
                load_config(config_file=yaml_path)
        finally:
            os.unlink(yaml_path)

    def test_engine_section_must_be_mapping(self) -> None:
        """An engine: section that is not a mapping raises ConfigError."""
        yaml_path = write_yaml("engine: http://localhost\n")
        try:
            with pytest.raises(ConfigError, match="engine"):
                load_config(config_file=yaml_path)
        finally:
            os.unlink(yaml_path)

    def test_invalid_yaml_rejected(self) -> None:
        """Unparseable YAML raises ConfigError."""
        yaml_path = write_yaml("base_url: [unclosed\n")
        try:
            with pytest.raises(ConfigError, match="Invalid YAML"):
                load_config(config_file=yaml_path)
        finally:
            os.unlink(yaml_path)

    def test_empty_yaml_file(self) -> None:
        """An empty config file means defaults."""
        yaml_path = write_yaml("")
        try:
            assert load_config(config_file=yaml_path) == EngineConfig()
        finally:
            os.unlink(yaml_path)


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_found_in_start_dir(self, tmp_path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("engine: {}\n")
        assert find_config_file(tmp_path) == path

    def test_found_in_parent(self, tmp_path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("engine: {}\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == path

    def test_missing(self, tmp_path) -> None:
        assert find_config_file(tmp_path) is None


class TestConfigImports:
    """Tests for config module imports."""

    def test_importable_from_package(self) -> None:
        """Config classes can be imported from the catalog_engine package."""
        from catalog_engine import EngineConfig, load_config

        assert EngineConfig is not None
        assert load_config is not None
