"""Configuration file loading and validation."""

import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import List

import tomlkit
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from .consts import LOG_FILE_DEFAULT, STORAGE_DIR_DEFAULT
from .enums import Mode, WidgetKind
from .errors import ConfigException

logger = logging.getLogger(__name__)

ENV_PREFIX = "FIELDFORGE_"


class StorageType(str, Enum):
    FILE = "file"
    MEMORY = "memory"


class StorageConfig(BaseModel):
    """Schema persistence configuration."""

    type: StorageType = StorageType.FILE
    directory: str = Field(default=STORAGE_DIR_DEFAULT)

    @field_validator("directory")
    @classmethod
    def validate_directory(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("storage.directory cannot be empty")
        return v.strip()


class LogConfig(BaseModel):
    file: str = Field(default=LOG_FILE_DEFAULT)
    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: '{v}'")
        return level


class EditorConfig(BaseModel):
    """Defaults applied to fields created by the editor."""

    default_widget: WidgetKind = WidgetKind.INPUT
    default_modes: List[Mode] = Field(default_factory=lambda: [Mode.IN_OUT])

    @field_validator("default_modes", mode="before")
    @classmethod
    def coerce_modes(cls, v):
        if isinstance(v, str):
            return [m.strip() for m in v.split(",") if m.strip()]
        return v


class PreviewConfig(BaseModel):
    default_label: str = Field(default="default", min_length=1)


class Config(BaseSettings):
    """Application configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> "Config":
        """Load configuration from specified path."""
        path = Path(config_path)
        if not path.exists():
            raise ConfigException(f"Configuration file not found: {config_path}")

        class _Config(cls):
            model_config = SettingsConfigDict(
                toml_file=str(path),
                env_prefix=ENV_PREFIX,
                env_nested_delimiter="__",
            )

        try:
            return _Config()
        except ValidationError as e:
            error_lines = ["Configuration validation failed:"]
            for error in e.errors():
                loc = " -> ".join(str(item) for item in error["loc"])
                error_lines.append(f"  - {loc}: {error['msg']}")
            raise ConfigException("\n".join(error_lines)) from e
        except ValueError as e:
            raise ConfigException(f"Invalid TOML syntax: {e}") from e


def default_config_document() -> tomlkit.TOMLDocument:
    doc = tomlkit.document()
    doc.add(tomlkit.comment("fieldforge configuration"))
    doc.add(tomlkit.nl())

    storage = tomlkit.table()
    storage.add("type", StorageType.FILE.value)
    storage["type"].comment("file or memory")
    storage.add("directory", STORAGE_DIR_DEFAULT)
    doc.add("storage", storage)

    log = tomlkit.table()
    log.add("file", LOG_FILE_DEFAULT)
    log.add("level", "INFO")
    doc.add("log", log)

    editor = tomlkit.table()
    editor.add("default_widget", WidgetKind.INPUT.value)
    editor.add("default_modes", [Mode.IN_OUT.value])
    editor["default_modes"].comment("mode tags given to newly added fields")
    doc.add("editor", editor)

    preview = tomlkit.table()
    preview.add("default_label", "default")
    preview["default_label"].comment("view name used when a schema declares no modes")
    doc.add("preview", preview)
    return doc


def write_default_config(config_path: str) -> Path:
    """Write a commented default configuration file, never overwriting."""
    path = Path(config_path)
    if path.exists():
        raise ConfigException(f"Configuration file already exists: {config_path}")

    content = tomlkit.dumps(default_config_document())
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
        shutil.move(str(temp_path), str(path))
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise ConfigException(f"Failed to write configuration to {path}: {e}") from e
    logger.info(f"Wrote default configuration to {path}")
    return path
