"""Property-based tests for configuration models and loading.

Feature: akeneo-migrator
"""

from pathlib import Path

import pytest
import structlog
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from akeneo_migrator.models import AkeneoConnectionConfig, AppConfig, SyncConfig
from akeneo_migrator.utils.config_loader import ConfigLoader, ConfigurationError

log = structlog.stdlib.get_logger()

CONNECTION = {
    "url": "https://source.example.com",
    "client_id": "client",
    "secret": "secret",
    "username": "admin",
    "password": "admin",
}

CONFIG_YAML = """
source:
  url: "https://source.example.com"
  client_id: "${TEST_SOURCE_CLIENT_ID}"
  secret: "source-secret"
  username: "admin"
  password: "admin"
destination:
  url: "https://destination.example.com/"
  client_id: "dest-client"
  secret: "dest-secret"
  username: "admin"
  password: "${TEST_DEST_PASSWORD}"
sync:
  batch_size: 50
  max_parent_depth: 20
logging:
  log_level: "DEBUG"
  json_logs: false
"""


@given(st.integers(min_value=1, max_value=100))
def test_property_15_batch_size_bounds(batch_size: int):
    """Property 15: Batch size bounds.

    Any batch size between 1 and the API page maximum is accepted.

    **Feature: akeneo-migrator, Property 15: Batch size bounds**
    """
    log.info("test_property_15_batch_size_bounds", batch_size=batch_size)

    config = SyncConfig(batch_size=batch_size)

    assert config.batch_size == batch_size
    assert config.volatile_fields == ["_links", "created", "updated"]


@given(st.integers().filter(lambda x: x < 1 or x > 100))
def test_property_15_batch_size_bounds_validation_error(invalid_batch_size: int):
    """Batch sizes outside 1..100 are rejected."""
    with pytest.raises(ValidationError) as info:
        SyncConfig(batch_size=invalid_batch_size)

    assert "batch_size" in str(info.value)


@given(st.integers(min_value=1, max_value=100))
def test_sync_override_within_bounds_is_applied(batch_size: int):
    config = AppConfig(source=CONNECTION, destination=CONNECTION, sync={"max_parent_depth": 7})

    overridden = config.with_sync_overrides(batch_size=batch_size)

    assert overridden.sync.batch_size == batch_size
    assert overridden.sync.max_parent_depth == 7
    assert config.sync.batch_size == 100


@pytest.mark.parametrize("batch_size", [0, -5, 101, 1000])
def test_sync_override_out_of_bounds_is_rejected(batch_size: int):
    config = AppConfig(source=CONNECTION, destination=CONNECTION)

    with pytest.raises(ValidationError):
        config.with_sync_overrides(batch_size=batch_size)

    assert config.sync.batch_size == 100


def test_connection_host_has_no_trailing_slash():
    config = AkeneoConnectionConfig(**{**CONNECTION, "url": "https://source.example.com/"})

    assert config.host == "https://source.example.com"
    assert config.timeout_seconds == 30.0


@pytest.mark.parametrize("field", ["client_id", "secret", "username", "password"])
def test_empty_credentials_are_rejected(field):
    with pytest.raises(ValidationError):
        AkeneoConnectionConfig(**{**CONNECTION, field: ""})


def test_property_16_environment_variable_loading(monkeypatch):
    """Property 16: Environment variable loading.

    Both connections and the sync settings can be given entirely through
    ``APP_``-prefixed environment variables.

    **Feature: akeneo-migrator, Property 16: Environment variable loading**
    """
    for prefix, url in (("SOURCE", "https://source.example.com"), ("DESTINATION", "https://dest.example.com")):
        monkeypatch.setenv(f"APP_{prefix}__URL", url)
        monkeypatch.setenv(f"APP_{prefix}__CLIENT_ID", "client")
        monkeypatch.setenv(f"APP_{prefix}__SECRET", "secret")
        monkeypatch.setenv(f"APP_{prefix}__USERNAME", "admin")
        monkeypatch.setenv(f"APP_{prefix}__PASSWORD", "admin")
    monkeypatch.setenv("APP_SYNC__BATCH_SIZE", "25")

    config = AppConfig()

    assert config.source.host == "https://source.example.com"
    assert config.destination.host == "https://dest.example.com"
    assert config.sync.batch_size == 25
    assert config.sync.max_parent_depth == 50


def test_property_17_configuration_file_parsing(tmp_path: Path, monkeypatch):
    """Property 17: Configuration file parsing.

    A YAML file is loaded with ``${VAR}`` references replaced by environment
    values.

    **Feature: akeneo-migrator, Property 17: Configuration file parsing**
    """
    monkeypatch.setenv("TEST_SOURCE_CLIENT_ID", "source-client")
    monkeypatch.setenv("TEST_DEST_PASSWORD", "s3cret")
    config_file = tmp_path / "test.yaml"
    config_file.write_text(CONFIG_YAML)

    config = ConfigLoader().load_config(str(config_file))

    assert config.source.client_id == "source-client"
    assert config.destination.password == "s3cret"
    assert config.destination.host == "https://destination.example.com"
    assert config.sync.batch_size == 50
    assert config.sync.max_parent_depth == 20
    assert config.logging.log_level == "DEBUG"
    assert config.logging.json_logs is False


def test_missing_environment_variable_is_reported(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("TEST_SOURCE_CLIENT_ID", raising=False)
    monkeypatch.setenv("TEST_DEST_PASSWORD", "s3cret")
    config_file = tmp_path / "test.yaml"
    config_file.write_text(CONFIG_YAML)

    with pytest.raises(ConfigurationError, match="TEST_SOURCE_CLIENT_ID"):
        ConfigLoader().load_config(str(config_file))


def test_missing_file_is_reported(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigLoader().load_config(str(tmp_path / "absent.yaml"))


@pytest.mark.parametrize("content", ["", "- just\n- a list\n", "source: [unclosed"])
def test_unusable_yaml_is_reported(tmp_path: Path, content: str):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text(content)

    with pytest.raises(ConfigurationError):
        ConfigLoader().load_config(str(config_file))


def test_invalid_values_are_reported(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TEST_SOURCE_CLIENT_ID", "source-client")
    monkeypatch.setenv("TEST_DEST_PASSWORD", "s3cret")
    config_file = tmp_path / "test.yaml"
    config_file.write_text(CONFIG_YAML.replace("batch_size: 50", "batch_size: 500"))

    with pytest.raises(ConfigurationError, match="validation failed"):
        ConfigLoader().load_config(str(config_file))


def test_environment_selects_the_config_file(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TEST_SOURCE_CLIENT_ID", "source-client")
    monkeypatch.setenv("TEST_DEST_PASSWORD", "s3cret")
    monkeypatch.delenv("APP_CONFIG_PATH", raising=False)
    monkeypatch.setenv("APP_ENV", "staging")
    (tmp_path / "staging.yaml").write_text(CONFIG_YAML)

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.sync.batch_size == 50


def test_validate_config_warnings():
    same_instance = {**CONNECTION}
    config = AppConfig(
        source=same_instance,
        destination=same_instance,
        sync={"volatile_fields": ["created", "updated"]},
    )

    warnings = ConfigLoader().validate_config(config)

    assert len(warnings) == 2
    assert any("same instance" in warning for warning in warnings)
    assert any("_links" in warning for warning in warnings)


def test_default_config_file_loads_with_credentials_from_environment(monkeypatch):
    """The shipped config/default.yaml is valid once its variables are set."""
    for side in ("SOURCE", "DEST"):
        monkeypatch.setenv(f"AKENEO_{side}_URL", f"https://{side.lower()}.example.com")
        for name in ("CLIENT_ID", "SECRET", "USERNAME", "PASSWORD"):
            monkeypatch.setenv(f"AKENEO_{side}_{name}", "value")
    monkeypatch.delenv("APP_CONFIG_PATH", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)

    config = ConfigLoader().load_config()

    assert config.source.host == "https://source.example.com"
    assert config.destination.host == "https://dest.example.com"
    assert ConfigLoader().validate_config(config) == []
