"""Tests for toolkit settings resolution."""
import json
from pathlib import Path

import pytest

from at3_toolkit import config as config_module
from at3_toolkit.config import DEFAULT_BACKUP_DIR, ToolkitConfig, load_config


@pytest.fixture(autouse=True)
def _isolated_user_config(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(config_module, "default_config_path", lambda: tmp_path / "user" / "config.json")


def test_defaults_without_files_or_env() -> None:
    assert load_config(environ={}) == ToolkitConfig()
    assert ToolkitConfig().backup_dir == DEFAULT_BACKUP_DIR
    assert ToolkitConfig().install_timeout == 300


def test_json_file_with_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "at3.json"
    path.write_text(json.dumps({"backup_dir": ".bak", "update_versions": True, "colour": "blue"}))
    settings = load_config(path, environ={})
    assert settings.backup_dir == ".bak"
    assert settings.update_versions is True


def test_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "at3.yaml"
    path.write_text("install_timeout: 60\nreplace_linting: true\n")
    settings = load_config(path, environ={})
    assert settings.install_timeout == 60
    assert settings.replace_linting is True


def test_user_config_dir_file_is_picked_up(tmp_path: Path) -> None:
    user_file = tmp_path / "user" / "config.json"
    user_file.parent.mkdir()
    user_file.write_text(json.dumps({"skip_deps": True}))
    assert load_config(environ={}).skip_deps is True


def test_env_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "at3.json"
    path.write_text(json.dumps({"install_timeout": 60}))
    settings = load_config(path, environ={"AT3T_INSTALL_TIMEOUT": "900", "AT3T_REGISTRY_URL": "http://localhost:4873"})
    assert settings.install_timeout == 900
    assert settings.registry_url == "http://localhost:4873"


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json", environ={})


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "at3.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(path, environ={})
