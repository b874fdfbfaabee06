"""Tests for configuration loading."""

import json

import pytest

from mica_preview.config import PreviewConfig, load_config
from mica_preview.errors import ConfigError


def test_defaults_without_file(tmp_path):
    config = load_config(root=tmp_path, env={})
    assert config == PreviewConfig()
    assert config.text_quiet_period == 0.5
    assert config.progress_quiet_period == 0.25


def test_toml_file_is_discovered(tmp_path):
    (tmp_path / "mica-preview.toml").write_text(
        '[preview]\nbase_url = "https://mica.local"\ntimeout = 5\nrow_limit = -1\n',
        encoding="utf-8",
    )
    config = load_config(root=tmp_path, env={})
    assert config.base_url == "https://mica.local"
    assert config.timeout == 5.0
    assert config.row_limit == -1


def test_json_file_and_env_precedence(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"preview": {"base_url": "https://file", "api_key": "from-file"}}), encoding="utf-8")
    config = load_config(
        path,
        env={"MICA_PREVIEW_BASE_URL": "https://env", "MICA_PREVIEW_LOG_LEVEL": "debug"},
    )
    assert config.base_url == "https://env"
    assert config.api_key == "from-file"
    assert config.log_level == "debug"


def test_explicit_overrides_win():
    config = PreviewConfig(base_url="https://env").merged(base_url="https://cli", log_level=None)
    assert config.base_url == "https://cli"
    assert config.log_level == "info"


@pytest.mark.parametrize(
    "content",
    [
        "[preview]\ntimeout = -1\n",
        '[preview]\nrow_limit = "many"\n',
        "[preview\n",
    ],
)
def test_invalid_files_raise_config_error(tmp_path, content):
    path = tmp_path / "mica-preview.toml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError, match="does not exist"):
        load_config(tmp_path / "nope.toml", env={})


def test_invalid_env_value(tmp_path):
    with pytest.raises(ConfigError, match="timeout"):
        load_config(root=tmp_path, env={"MICA_PREVIEW_TIMEOUT": "soon"})
