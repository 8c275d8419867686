import json
from pathlib import Path
from typing import Annotated, ClassVar, Optional

from pydantic import field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from timesync.constants import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_PERIODICITY_MINUTES,
    DEFAULT_RETRIES,
    DEFAULT_SOURCE_TIMEOUT_SECONDS,
    DEFAULT_SOURCES,
    DEFAULT_WEB_HOST,
    DEFAULT_WEB_PORT,
)
from timesync.errors import ConfigurationError
from timesync.logging import TIMESYNC_LOGGER
from timesync.settings.settings_file_manager import SettingsFileManager

PERSISTED_FIELDS = {
    "sources",
    "retries",
    "interval_ms",
    "periodicity_minutes",
    "source_timeout_seconds",
    "dry_run",
    "web_host",
    "web_port",
}


class TimeSyncSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIMESYNC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Seeded from the JSON file; environment variables and init kwargs win
    config_file: ClassVar[Optional[Path]] = None

    # Ordered by priority
    sources: Annotated[list[str], NoDecode] = list(DEFAULT_SOURCES)
    retries: int = DEFAULT_RETRIES
    interval_ms: int = DEFAULT_INTERVAL_MS
    periodicity_minutes: int = DEFAULT_PERIODICITY_MINUTES  # 0 = manual sync only
    source_timeout_seconds: float = DEFAULT_SOURCE_TIMEOUT_SECONDS

    dry_run: bool = False
    log_level: str = "INFO"

    web_host: str = DEFAULT_WEB_HOST
    web_port: int = DEFAULT_WEB_PORT

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        json_file = SettingsFileManager(cls.config_file).get_config_path()
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls, json_file=json_file),
        )

    @field_validator("sources", mode="before")
    @classmethod
    def _split_sources(cls, value):
        if isinstance(value, str):
            if value.lstrip().startswith("["):
                return json.loads(value)
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("retries", "interval_ms", "periodicity_minutes")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("source_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @property
    def periodicity_ms(self) -> int:
        return self.periodicity_minutes * 60 * 1000

    @property
    def automatic_sync(self) -> bool:
        return self.periodicity_minutes > 0

    def model_post_init(self, __context) -> None:
        if self.automatic_sync and not self.sources:
            TIMESYNC_LOGGER.warning(f"{self.__class__.__name__} has automatic sync enabled but no sources")

    def save_to_file(self, manager: Optional[SettingsFileManager] = None) -> Path:
        """Merge the persistable settings into the JSON config file.

        Keys already in the file that are not settings of this model are kept.

        Raises:
            ConfigurationError: If the merged configuration does not validate.
        """
        manager = manager or SettingsFileManager(self.config_file)
        config = manager.load_config()
        config.update(self.model_dump(include=PERSISTED_FIELDS))

        ok, error = manager.validate_config(config)
        if not ok:
            raise ConfigurationError(error)

        action = "Updating" if manager.config_exists() else "Creating"
        TIMESYNC_LOGGER.info(f"{action} config file {manager.get_config_path()}")
        manager.save_config(config)
        return manager.get_config_path()
