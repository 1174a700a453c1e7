"""Merging new configuration into existing project files.

JSON and YAML documents are deep-merged; CSS and other text files get a
textual merge. A corrupt existing JSON/YAML file is overwritten with the new
content after a warning rather than aborting the migration.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import yaml

from .errors import InvalidProjectError
from .logger import Logger

MERGE = "merge"
OVERWRITE = "overwrite"

PACKAGE_JSON_DEP_SECTIONS = ("dependencies", "devDependencies", "scripts")
PACKAGE_JSON_SCALAR_FIELDS = ("engines", "packageManager", "type")

TAILWIND_IMPORT_RE = re.compile(r"""(?:@import\s+["']tailwindcss[^"']*["'];?|@tailwind\s+[a-z-]+;)\s*""")


def _union(existing: list, incoming: list) -> list:
    merged: list = []
    for item in [*existing, *incoming]:
        if item not in merged:
            merged.append(item)
    return merged


def deep_merge(target, source):
    """Recursively merge ``source`` into a copy of ``target``.

    Dicts recurse, two lists union without duplicates (first-seen order),
    anything else in ``source`` replaces the value in ``target``.
    """
    if not isinstance(target, dict):
        return source
    if not isinstance(source, dict):
        return target

    result = dict(target)
    for key, value in source.items():
        current = target.get(key)
        if isinstance(value, list):
            result[key] = _union(current, value) if isinstance(current, list) else list(value)
        elif isinstance(value, dict):
            result[key] = deep_merge(current if isinstance(current, dict) else {}, value)
        else:
            result[key] = value
    return result


def dump_json(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def dump_yaml(data) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


class ConfigMerger:
    def __init__(self, logger: Logger | None = None):
        self.logger = logger or Logger()

    def merge_json_config(self, target_path, new_config: dict, strategy: str = MERGE) -> None:
        target_path = Path(target_path)
        if not target_path.exists():
            self._write(target_path, dump_json(new_config))
            self.logger.debug(f"Created new config file: {target_path}")
            return

        if strategy == OVERWRITE:
            self._write(target_path, dump_json(new_config))
            self.logger.debug(f"Overwrote config file: {target_path}")
            return

        try:
            existing = json.loads(target_path.read_text(encoding="utf-8"))
        except ValueError:
            self.logger.warn(f"Failed to parse existing config {target_path}, overwriting")
            self._write(target_path, dump_json(new_config))
            return

        self._write(target_path, dump_json(deep_merge(existing, new_config)))
        self.logger.debug(f"Merged config file: {target_path}")

    def merge_package_json(self, target_path, updates: dict) -> dict:
        """Apply dependency, script and field updates to package.json.

        ``updates["removeDependencies"]`` names are dropped from both
        ``dependencies`` and ``devDependencies`` after the additions.
        """
        target_path = Path(target_path)
        if not target_path.exists():
            raise InvalidProjectError(target_path.parent, f"package.json not found at {target_path}")

        package_json = json.loads(target_path.read_text(encoding="utf-8"))

        for section in PACKAGE_JSON_DEP_SECTIONS:
            if updates.get(section):
                package_json[section] = {**(package_json.get(section) or {}), **updates[section]}

        for name in updates.get("removeDependencies") or []:
            for section in ("dependencies", "devDependencies"):
                if isinstance(package_json.get(section), dict):
                    package_json[section].pop(name, None)

        for field_name in PACKAGE_JSON_SCALAR_FIELDS:
            if updates.get(field_name):
                package_json[field_name] = updates[field_name]

        self._write(target_path, dump_json(package_json))
        self.logger.success("Updated package.json")
        return package_json

    def merge_yaml_config(self, target_path, new_config: dict, strategy: str = MERGE) -> None:
        target_path = Path(target_path)
        if not target_path.exists() or strategy == OVERWRITE:
            self._write(target_path, dump_yaml(new_config))
            return

        try:
            existing = yaml.safe_load(target_path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, UnicodeDecodeError):
            self.logger.warn(f"Failed to parse existing YAML config {target_path}, overwriting")
            self._write(target_path, dump_yaml(new_config))
            return

        self._write(target_path, dump_yaml(deep_merge(existing, new_config)))
        self.logger.debug(f"Merged YAML config: {target_path}")

    def merge_text_config(self, target_path, new_content: str, strategy: str = OVERWRITE) -> None:
        target_path = Path(target_path)
        if not target_path.exists() or strategy == OVERWRITE:
            self._write(target_path, new_content)
            return

        existing = target_path.read_text(encoding="utf-8")
        if target_path.suffix == ".css":
            merged = merge_css_content(existing, new_content)
        else:
            merged = existing + "\n\n" + new_content
        self._write(target_path, merged)

    def append_env_vars(self, target_path, block: str, marker: str) -> bool:
        """Append ``block`` to an env template unless ``marker`` is already present."""
        target_path = Path(target_path)
        existing = target_path.read_text(encoding="utf-8") if target_path.exists() else ""
        if marker in existing:
            return False
        self._write(target_path, existing + block)
        return True

    def write_config(self, target_path, content, kind: str) -> None:
        if kind == "json":
            output = dump_json(content)
        elif kind == "js":
            output = content if isinstance(content, str) else f"module.exports = {json.dumps(content, indent=2)};\n"
        elif kind == "yaml":
            output = dump_yaml(content)
        else:
            raise ValueError(f"Unsupported config type: {kind}")
        self._write(Path(target_path), output)

    @staticmethod
    def _write(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def merge_css_content(existing: str, new_content: str) -> str:
    """Put ``new_content`` first and drop Tailwind imports or directives from ``existing``."""
    rest = TAILWIND_IMPORT_RE.sub("", existing).strip()
    if not rest:
        return new_content.strip() + "\n"
    return new_content.strip() + "\n\n" + rest + "\n"


def detect_config_type(file_path) -> str:
    suffix = Path(file_path).suffix.lower().lstrip(".")
    return {
        "json": "json",
        "jsonc": "json",
        "yaml": "yaml",
        "yml": "yaml",
        "toml": "toml",
        "js": "js",
        "mjs": "js",
        "cjs": "js",
        "ts": "ts",
        "css": "css",
    }.get(suffix, "text")
