"""Toolkit settings: defaults, a user config file, and environment overrides."""

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import yaml
from platformdirs import user_config_dir

APP_NAME = "at3-toolkit"
DEFAULT_BACKUP_DIR = ".migration-backup"
DEFAULT_INSTALL_TIMEOUT = 300
DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"

ENV_OVERRIDES = {
    "AT3T_BACKUP_DIR": ("backup_dir", str),
    "AT3T_INSTALL_TIMEOUT": ("install_timeout", int),
    "AT3T_REGISTRY_URL": ("registry_url", str),
}


@dataclass(frozen=True)
class ToolkitConfig:
    backup_dir: str = DEFAULT_BACKUP_DIR
    install_timeout: int = DEFAULT_INSTALL_TIMEOUT
    skip_deps: bool = False
    update_versions: bool = False
    replace_linting: bool = False
    registry_url: str = DEFAULT_REGISTRY_URL


def default_config_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / "config.json"


def _read_config_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(path: Optional[Path] = None, environ: Optional[dict] = None) -> ToolkitConfig:
    """Resolve settings from an explicit file, else the user config dir, then env vars.

    An explicit ``path`` that does not exist is an error; a missing user-level
    file just means defaults.
    """
    environ = os.environ if environ is None else environ
    config = ToolkitConfig()

    source = Path(path) if path else default_config_path()
    if path and not source.exists():
        raise FileNotFoundError(f"Config file not found: {source}")
    if source.exists():
        known = {f.name for f in fields(ToolkitConfig)}
        data = {k: v for k, v in _read_config_file(source).items() if k in known}
        config = replace(config, **data)

    for env_key, (attr, cast) in ENV_OVERRIDES.items():
        if environ.get(env_key):
            config = replace(config, **{attr: cast(environ[env_key])})

    return config
