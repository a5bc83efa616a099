from __future__ import annotations

import json
from pathlib import Path

try:
    import tomllib as toml
except ImportError:
    try:
        import tomli as toml
    except ImportError:  # pragma: no cover - optional dependency
        toml = None

import yaml

CONFIG_NAMES = ("site.toml", "site.yaml", "site.yml", "site.json")

DEFAULTS: dict = {
    "output": "_site",
    "cache_dir": ".sitelist",
    "render": ["**/*.md", "**/*.qmd"],
    "feed_limit": 20,
    "site_url": "",
    "site_name": "",
    "site_description": "",
    "self_contained": False,
}


class ConfigError(ValueError):
    """Raised when a project config file cannot be parsed."""


def find_config(project_dir: Path) -> Path | None:
    for name in CONFIG_NAMES:
        candidate = project_dir / name
        if candidate.exists():
            return candidate
    return None


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        if toml is None:
            raise ConfigError("TOML config requires tomllib (Python 3.11+) or tomli.")
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping: {path}")
    return data


def resolve_config(project_dir: Path, config_path: Path | None = None, overrides: dict | None = None) -> dict:
    if config_path is None:
        config_path = find_config(project_dir)
    elif not config_path.is_absolute():
        config_path = project_dir / config_path
    config = dict(DEFAULTS)
    if config_path is not None:
        config.update(load_config(config_path))
    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value
    return config
