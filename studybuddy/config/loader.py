"""Reading and writing ~/.studybuddy/config.json.

The file holds user bearer tokens and the provider API key, so it is
written atomically and restricted to the owner.
"""

from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path

from loguru import logger

from studybuddy.config.schema import StudyBuddyConfig

CONFIG_FILE = Path("~/.studybuddy/config.json")


def get_config_path() -> Path:
    return CONFIG_FILE.expanduser()


def _resolve(path: Path | None) -> Path:
    return (path or CONFIG_FILE).expanduser().resolve()


def load_config(path: Path | None = None) -> StudyBuddyConfig:
    """Build the config from ``path`` (default ~/.studybuddy/config.json).

    A missing file means all defaults. STUDYBUDDY_ environment variables
    override file values, with ``__`` between nested keys
    (e.g. STUDYBUDDY_RATE_LIMITS__CHAT__MAX_REQUESTS=30).
    """
    config_path = _resolve(path)
    if not config_path.is_file():
        logger.debug("No config file at {}, using defaults", config_path)
        return StudyBuddyConfig()

    file_values = json.loads(config_path.read_text(encoding="utf-8"))
    logger.debug("Loaded config from {}", config_path)
    return StudyBuddyConfig(**file_values)


def save_config(config: StudyBuddyConfig, path: Path | None = None) -> Path:
    """Write ``config`` as JSON, secrets included, via a temp file and rename."""
    config_path = _resolve(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    body = json.dumps(config.model_dump(mode="json"), indent=2, ensure_ascii=False)
    staging = config_path.with_name(config_path.name + ".tmp")
    staging.write_text(body + "\n", encoding="utf-8")
    with contextlib.suppress(OSError):
        os.chmod(staging, 0o600)
    staging.replace(config_path)
    return config_path
