"""Tests for AppSettings loading from environment and YAML."""

from pathlib import Path

from pydantic import ValidationError
import pytest
from pytest import MonkeyPatch
import yaml

from podhoard.config import DEFAULT_USER_AGENT, AppSettings, DebugMode
from podhoard.config.config import YamlFileFromFieldSource
from podhoard.exceptions import ConfigLoadError

SAMPLE_CONFIG = {
    "feeds": [
        "https://example.com/one.xml",
        "  https://example.com/two.xml  ",
        "",
        None,
    ]
}


@pytest.fixture
def sample_config_file(tmp_path: Path) -> Path:
    """Creates a sample YAML config file in a temporary directory."""
    config_path = tmp_path / "podhoard.yaml"
    with Path.open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(SAMPLE_CONFIG, f)
    return config_path


@pytest.fixture
def no_default_yaml(monkeypatch: MonkeyPatch) -> None:
    """Make the YAML source behave as if no file is configured."""

    def mock_get_yaml_path(_self: YamlFileFromFieldSource) -> None:
        return None

    monkeypatch.setattr(YamlFileFromFieldSource, "_get_yaml_path", mock_get_yaml_path)
    monkeypatch.delenv("CONFIG_FILE", raising=False)


@pytest.mark.unit
def test_defaults(no_default_yaml: None, monkeypatch: MonkeyPatch):
    """Without env or YAML, defaults apply."""
    for name in ("DEBUG_MODE", "CHECK_FREQUENCY", "REQUEST_TIMEOUT", "USER_AGENT"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings()  # type: ignore

    assert settings.debug_mode is None
    assert settings.check_frequency == 30
    assert settings.request_timeout == 30.0
    assert settings.user_agent == DEFAULT_USER_AGENT
    assert settings.feeds == []


@pytest.mark.unit
def test_environment_overrides(no_default_yaml: None, monkeypatch: MonkeyPatch):
    """Environment variables configure the process."""
    monkeypatch.setenv("DEBUG_MODE", "consistency")
    monkeypatch.setenv("CHECK_FREQUENCY", "5")
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("USER_AGENT", "custom/1.0")
    monkeypatch.setenv("DATA_DIR", "/tmp/podhoard-data")

    settings = AppSettings()  # type: ignore

    assert settings.debug_mode == DebugMode.CONSISTENCY
    assert settings.check_frequency == 5
    assert settings.request_timeout == 2.5
    assert settings.user_agent == "custom/1.0"
    assert settings.data_dir == Path("/tmp/podhoard-data")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("name", "value"),
    [("CHECK_FREQUENCY", "0"), ("REQUEST_TIMEOUT", "-1"), ("DEBUG_MODE", "nope")],
)
def test_invalid_environment_values(
    no_default_yaml: None, monkeypatch: MonkeyPatch, name: str, value: str
):
    """Out-of-range values fail validation."""
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        AppSettings()  # type: ignore


@pytest.mark.unit
def test_feeds_from_yaml(sample_config_file: Path):
    """Feed URLs load from YAML with blanks dropped and whitespace stripped."""
    settings = AppSettings(config_file=sample_config_file)

    assert settings.feeds == [
        "https://example.com/one.xml",
        "https://example.com/two.xml",
    ]


@pytest.mark.unit
def test_feeds_from_env_config_file(monkeypatch: MonkeyPatch, sample_config_file: Path):
    """CONFIG_FILE selects the YAML file."""
    monkeypatch.setenv("CONFIG_FILE", str(sample_config_file))

    settings = AppSettings()  # type: ignore

    assert len(settings.feeds) == 2


@pytest.mark.unit
def test_feeds_must_be_a_list(tmp_path: Path):
    """A mapping under ``feeds`` is rejected."""
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("feeds:\n  one: https://example.com/one.xml\n")

    with pytest.raises(ValidationError):
        AppSettings(config_file=config_path)


@pytest.mark.unit
def test_empty_yaml_file_loads_defaults(tmp_path: Path):
    """An empty YAML file means no feeds."""
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")

    settings = AppSettings(config_file=config_path)

    assert settings.feeds == []


@pytest.mark.unit
def test_missing_explicit_config_file_raises(monkeypatch: MonkeyPatch):
    """A configured file that does not exist is an error."""
    monkeypatch.setenv("CONFIG_FILE", "/path/to/hopefully/nonexistent/podhoard.yaml")

    with pytest.raises(
        ConfigLoadError, match="Failed to load or parse YAML configuration file"
    ) as exc_info:
        AppSettings()  # type: ignore

    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


@pytest.mark.unit
def test_invalid_yaml_raises(tmp_path: Path):
    """Malformed YAML surfaces as ConfigLoadError."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("this: is: not: valid: yaml:")

    with pytest.raises(ConfigLoadError) as exc_info:
        AppSettings(config_file=config_path)

    assert isinstance(exc_info.value.__cause__, yaml.YAMLError)


@pytest.mark.unit
def test_non_mapping_yaml_raises(tmp_path: Path):
    """A YAML list at top level is not a valid config."""
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- https://example.com/one.xml\n")

    with pytest.raises(ConfigLoadError) as exc_info:
        AppSettings(config_file=config_path)

    assert isinstance(exc_info.value.__cause__, TypeError)
