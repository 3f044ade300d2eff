"""Configuration module unit tests"""

from pathlib import Path
from unittest.mock import patch

import pytest

from fieldforge.config import Config, StorageType, write_default_config
from fieldforge.enums import Mode, WidgetKind
from fieldforge.errors import ConfigException


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "fieldforge.toml"


# ========== Test Cases ==========


def test_defaults():
    config = Config()

    assert config.storage.type == StorageType.FILE
    assert config.storage.directory == "data/schemas"
    assert config.log.level == "INFO"
    assert config.editor.default_widget == WidgetKind.INPUT
    assert config.editor.default_modes == [Mode.IN_OUT]
    assert config.preview.default_label == "default"


def test_load_from_file(config_file):
    config_file.write_text(
        """
[storage]
type = "memory"

[log]
level = "debug"

[editor]
default_widget = "TextArea"
default_modes = "IN, OUT"
"""
    )

    config = Config.load_from_file(str(config_file))

    assert config.storage.type == StorageType.MEMORY
    assert config.log.level == "DEBUG"
    assert config.editor.default_widget == WidgetKind.TEXT_AREA
    assert config.editor.default_modes == [Mode.IN, Mode.OUT]


def test_env_overrides_file(config_file, monkeypatch):
    config_file.write_text('[storage]\ntype = "file"\ndirectory = "schemas"\n')
    monkeypatch.setenv("FIELDFORGE_STORAGE__TYPE", "memory")

    config = Config.load_from_file(str(config_file))

    assert config.storage.type == StorageType.MEMORY
    assert config.storage.directory == "schemas"


def test_missing_file():
    with pytest.raises(ConfigException, match="Configuration file not found"):
        Config.load_from_file("/nonexistent/fieldforge.toml")


def test_invalid_values(config_file):
    config_file.write_text('[storage]\ntype = "sql"\ndirectory = " "\n\n[log]\nlevel = "LOUD"\n')

    with pytest.raises(ConfigException) as excinfo:
        Config.load_from_file(str(config_file))

    message = str(excinfo.value)
    assert message.startswith("Configuration validation failed:")
    assert "storage -> type" in message
    assert "storage -> directory" in message
    assert "log -> level" in message


def test_invalid_toml(config_file):
    config_file.write_text("[storage\ntype = ")

    with pytest.raises(ConfigException, match="Invalid TOML syntax"):
        Config.load_from_file(str(config_file))


def test_write_default_config(config_file):
    path = write_default_config(str(config_file))

    assert path == config_file
    assert not config_file.with_suffix(".tmp").exists()
    content = config_file.read_text()
    assert "# fieldforge configuration" in content
    assert "# file or memory" in content

    config = Config.load_from_file(str(config_file))
    assert config.storage.type == StorageType.FILE
    assert config.editor.default_modes == [Mode.IN_OUT]


def test_write_default_config_never_overwrites(config_file):
    config_file.write_text("# mine\n")

    with pytest.raises(ConfigException, match="already exists"):
        write_default_config(str(config_file))
    assert config_file.read_text() == "# mine\n"


def test_write_default_config_creates_directories(tmp_path):
    path = write_default_config(str(tmp_path / "nested" / "dir" / "fieldforge.toml"))
    assert Path(path).exists()


def test_write_default_config_removes_temp_file_on_failure(config_file):
    with patch("fieldforge.config.shutil.move", side_effect=OSError("read-only")):
        with pytest.raises(ConfigException, match="Failed to write configuration"):
            write_default_config(str(config_file))

    assert not config_file.exists()
    assert not config_file.with_suffix(".tmp").exists()
