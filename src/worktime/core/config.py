"""Worktime configuration.

Defaults live in ``~/.worktime`` (or ``$WORKTIME_HOME``). An optional
``config.json`` there overrides them, and command-line options override both.
"""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from worktime.core.errors import ConfigError

CONFIG_FILE_NAME = "config.json"


def get_worktime_home() -> Path:
    """Get the per-user Worktime data directory."""
    override = os.environ.get("WORKTIME_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".worktime"


class WorktimeConfig(BaseModel):
    db_path: Path = Field(default_factory=lambda: get_worktime_home() / "worktime.db")
    log_file: Path = Field(
        default_factory=lambda: get_worktime_home() / "worktime.log"
    )
    # Seconds to wait for the background consistency audit on shutdown
    audit_timeout: float = Field(default=5.0, ge=0)
    sql_shell: str = "sqlite3"


def load_config(config_file: Optional[Path] = None) -> WorktimeConfig:
    """Load configuration, falling back to defaults when no file exists."""
    config_file = config_file or get_worktime_home() / CONFIG_FILE_NAME
    if not config_file.exists():
        return WorktimeConfig()

    try:
        with open(config_file) as f:
            data = json.load(f)
        return WorktimeConfig(**data)
    except (OSError, json.JSONDecodeError, TypeError) as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e
