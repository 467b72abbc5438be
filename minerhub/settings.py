from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from dynaconf import Dynaconf

BASE_DIR = Path(__file__).resolve().parents[1]
CONF_DIR = BASE_DIR / "conf"
SETTINGS_FILE = CONF_DIR / "settings.yaml"
SETTINGS_EXAMPLE_FILE = CONF_DIR / "settings.yaml.example"

DEFAULT_SETTINGS_YAML = """refresh_interval: 30\nlog_level: \"INFO\"\nminers:\n  - type: \"xmr-stak\"\n    path: \"/opt/xmr-stak/xmr-stak\"\n    endpoint: \"\"\n"""


def ensure_settings_file(conf_dir: Path = CONF_DIR) -> Path:
    settings_file = conf_dir / SETTINGS_FILE.name
    example_file = conf_dir / SETTINGS_EXAMPLE_FILE.name
    conf_dir.mkdir(parents=True, exist_ok=True)
    if not example_file.exists():
        example_file.write_text(DEFAULT_SETTINGS_YAML, encoding="utf-8")
    if not settings_file.exists():
        settings_file.write_text(
            example_file.read_text(encoding="utf-8"),
            encoding="utf-8",
        )
    return settings_file


def load_settings(conf_dir: Path = CONF_DIR) -> Dynaconf:
    settings_file = ensure_settings_file(conf_dir)
    return Dynaconf(
        settings_files=[str(settings_file)],
        envvar_prefix="MINERHUB",
        load_dotenv=True,
        merge_enabled=True,
    )


def serialize_settings(settings: Any) -> dict[str, Any]:
    if not hasattr(settings, "as_dict"):
        raise ValueError("Settings object does not support serialization.")
    return settings.as_dict()


def parse_settings_yaml(raw_yaml: str) -> dict[str, Any]:
    parsed = yaml.safe_load(raw_yaml) or {}
    if not isinstance(parsed, dict):
        raise ValueError("Settings YAML must be a mapping at the top level.")
    return parsed
