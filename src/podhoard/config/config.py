"""Application configuration for podhoard.

Process-level settings come from environment variables, CLI arguments and an
optional YAML file named by ``CONFIG_FILE``. Runtime download policy
(concurrency, auto-download, naming) is not configured here; it lives in the
``Settings`` table so it can be changed while the service runs.
"""

from enum import Enum
import logging
from pathlib import Path
from typing import Any, Literal, cast

from pydantic import Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
import yaml

from ..exceptions import ConfigLoadError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "podhoard/0.1 (+https://github.com/podhoard/podhoard)"


class DebugMode(str, Enum):
    """Run a single job once instead of starting the scheduler."""

    REFRESH = "refresh"
    DOWNLOAD = "download"
    CONSISTENCY = "consistency"


class YamlFileFromFieldSource(PydanticBaseSettingsSource):
    """Load settings from the YAML file named by the ``config_file`` field.

    Must run after the sources that can set ``config_file`` (init kwargs and
    environment), since it reads the value they resolved.

    Attributes:
        yaml_file_encoding: Encoding used to read the file.
        yaml_data: Parsed contents of the file.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file_encoding: str | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file_encoding = yaml_file_encoding or "utf-8"
        self.yaml_data: dict[str, Any] = {}

    def _resolved_config_file(self) -> Any:
        value = self.current_state.get("config_file")
        if value not in (None, PydanticUndefined):
            return value

        field_info = self.settings_cls.model_fields["config_file"]
        if isinstance(field_info.validation_alias, str):
            value = self.current_state.get(field_info.validation_alias)
            if value not in (None, PydanticUndefined):
                return value
        return field_info.get_default()

    def _get_yaml_path(self) -> Path | None:
        path_value = self._resolved_config_file()
        match path_value:
            case None:
                return None
            case Path():
                return path_value.expanduser()
            case str():
                return Path(path_value).expanduser()
            case _:
                raise TypeError(
                    f"Field 'config_file' must resolve to a Path or string, "
                    f"received type '{type(path_value).__name__}'"
                )

    def _read_yaml_file(self, file_path: Path) -> dict[str, Any]:
        logger.debug(
            "Attempting to read YAML configuration file.",
            extra={"file_path": str(file_path)},
        )
        with Path.open(file_path, encoding=self.yaml_file_encoding) as f:
            loaded_yaml = yaml.safe_load(f)

        match loaded_yaml:
            case dict():
                return cast(dict[str, Any], loaded_yaml)
            case None:
                logger.info(
                    "YAML configuration file is empty.",
                    extra={"file_path": str(file_path)},
                )
                return {}
            case _:
                raise TypeError(
                    f"Invalid YAML config format: expected dict, got {type(loaded_yaml).__name__}"
                )

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        """Get a field's value from the loaded YAML data."""
        field_value = self.yaml_data.get(field_name)
        return field_value, field_name, self.field_is_complex(field)

    def __call__(self) -> dict[str, Any]:
        """Load the YAML file, if one is configured and present.

        A missing file at the default location is not an error; a missing
        file that was explicitly configured is.

        Raises:
            ConfigLoadError: If the path cannot be resolved or the file cannot
                be read or parsed.
        """
        try:
            yaml_path = self._get_yaml_path()
        except TypeError as e:
            raise ConfigLoadError(
                "Failed to resolve YAML configuration file path."
            ) from e

        if yaml_path is None:
            self.yaml_data = {}
            return {}

        explicitly_set = (
            self.current_state.get("config_file") not in (None, PydanticUndefined)
            or self.current_state.get("CONFIG_FILE") not in (None, PydanticUndefined)
        )
        if not yaml_path.exists() and not explicitly_set:
            logger.debug(
                "Default configuration file not present; skipping YAML loading.",
                extra={"file_path": str(yaml_path)},
            )
            self.yaml_data = {}
            return {}

        try:
            self.yaml_data = self._read_yaml_file(yaml_path)
        except (TypeError, OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(
                "Failed to load or parse YAML configuration file.",
                config_file=str(yaml_path),
            ) from e
        return self.yaml_data.copy()


class AppSettings(BaseSettings):
    """Process-level settings.

    Attributes:
        debug_mode: Run one job once and exit, or None for the scheduler.
        log_format: ``human`` or ``json``.
        log_level: Level for the ``podhoard`` logger tree.
        log_include_stacktrace: Include full tracebacks in error logs.
        data_dir: Root for the database, media files and backups.
        config_file: YAML file with feeds to subscribe at startup.
        alembic_config: Path to ``alembic.ini`` used to upgrade the schema.
        check_frequency: Minutes between scheduler ticks.
        request_timeout: Seconds before any single HTTP operation times out.
        user_agent: Default User-Agent header, overridable per installation
            through the Settings table.
        feeds: Feed URLs to subscribe at startup.
    """

    debug_mode: DebugMode | None = Field(
        default=None,
        validation_alias="DEBUG_MODE",
        description="Run a single job ('refresh', 'download', 'consistency') once and exit.",
    )
    log_format: Literal["human", "json"] = Field(
        default="json",
        validation_alias="LOG_FORMAT",
        description="Format for application logs ('human' or 'json').",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level for the application. Case-insensitive.",
    )
    log_include_stacktrace: bool = Field(
        default=False,
        validation_alias="LOG_INCLUDE_STACKTRACE",
        description="Include full stack traces in error logs (true/false).",
    )
    data_dir: Path = Field(
        default=Path("/data"),
        validation_alias="DATA_DIR",
        description="Root directory for the database, media and backups.",
    )
    config_file: Path = Field(
        default=Path("/config/podhoard.yaml"),
        validation_alias="CONFIG_FILE",
        description="Path to the YAML config file.",
    )
    alembic_config: Path = Field(
        default=Path("alembic.ini"),
        validation_alias="ALEMBIC_CONFIG",
        description="Path to alembic.ini used to migrate the database at startup.",
    )
    check_frequency: int = Field(
        default=30,
        gt=0,
        validation_alias="CHECK_FREQUENCY",
        description="Minutes between scheduled refresh ticks.",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="REQUEST_TIMEOUT",
        description="Timeout in seconds for HTTP connect/read/write operations.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias="USER_AGENT",
        description="Default User-Agent header for outgoing requests.",
    )

    feeds: list[str] = Field(
        default_factory=list[str],
        description="Feed URLs to subscribe at startup. Read from the YAML file.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        yaml_file_encoding="utf-8",
        cli_parse_args=True,
        cli_ignore_unknown_args=True,
        cli_kebab_case=True,
        extra="ignore",
    )

    @field_validator("feeds", mode="before")
    @classmethod
    def strip_feed_urls(cls, v: Any) -> Any:
        """Drop blank entries and surrounding whitespace from feed URLs.

        Raises:
            ValueError: If ``feeds`` is not a list.
        """
        match v:
            case None:
                return []
            case list():
                return [
                    str(url).strip()
                    for url in cast(list[Any], v)
                    if url is not None and str(url).strip()
                ]
            case _:
                raise ValueError(f"feeds must be a list of URLs, got {type(v).__name__}")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources so ``config_file`` is known before the YAML is read.

        Returns:
            Init kwargs, environment, dotenv, YAML file, then secrets.
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileFromFieldSource(settings_cls=settings_cls),
            file_secret_settings,
        )
