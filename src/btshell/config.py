"""Configuration management for btshell.

Supports a TOML config file at ~/.btshell/config.toml. Values given on the
command line or through the environment take precedence over the file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

from .errors import ConfigError
from .history import DEFAULT_HISTORY_PATH
from .log import DEFAULT_LEVEL, VALID_LEVELS


DEFAULT_CONFIG_PATH = Path.home() / ".btshell" / "config.toml"
DEFAULT_LOCAL_ROOT = Path.home() / ".btshell" / "local"
DEFAULT_READ_LIMIT = 100

VALID_BACKENDS = {"local", "bigtable"}

PROJECT_ENV = "BTSHELL_PROJECT"
INSTANCE_ENV = "BTSHELL_INSTANCE"

# section -> key -> type
SCHEMA: dict[str, dict[str, type]] = {
    "connection": {"backend": str, "project": str, "instance": str},
    "shell": {"history_file": str, "read_limit": int},
    "local": {"root": str},
    "logging": {"level": str, "file": str},
}


@dataclass(frozen=True)
class ShellConfig:
    """Resolved settings for one shell session."""

    project: str
    instance: str
    backend: str = "local"
    history_file: Path = DEFAULT_HISTORY_PATH
    read_limit: int = DEFAULT_READ_LIMIT
    local_root: Path = DEFAULT_LOCAL_ROOT
    log_level: str = DEFAULT_LEVEL
    log_file: Optional[Path] = None


def _load_config(config_path: Optional[Path] = None) -> dict:
    """Load config from TOML file."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed config file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")


def _save_config(data: dict, config_path: Optional[Path] = None) -> None:
    """Save config to TOML file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(data, f)


def _check_schema(data: dict) -> None:
    for section, values in data.items():
        if section not in SCHEMA:
            raise ConfigError(f"Unknown config section '{section}'")
        if not isinstance(values, dict):
            raise ConfigError(f"Config section '{section}' must be a table")
        for key, value in values.items():
            expected = SCHEMA[section].get(key)
            if expected is None:
                raise ConfigError(f"Unknown config key '{section}.{key}'")
            if not isinstance(value, expected) or isinstance(value, bool):
                raise ConfigError(
                    f"Config key '{section}.{key}' must be of type {expected.__name__}"
                )


def _pick(*values: Any) -> Any:
    """First value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def load_config(
    config_path: Optional[Path] = None,
    project: Optional[str] = None,
    instance: Optional[str] = None,
    backend: Optional[str] = None,
    history_file: Optional[Path] = None,
    read_limit: Optional[int] = None,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> ShellConfig:
    """Resolve the session configuration.

    Resolution order for each setting:
    1. Explicit argument (command-line flag)
    2. Environment variable (project and instance only)
    3. Config file
    4. Built-in default

    Raises:
        ConfigError: If the file is malformed or a value is invalid
    """
    data = _load_config(config_path)
    _check_schema(data)

    connection = data.get("connection", {})
    shell = data.get("shell", {})
    local = data.get("local", {})
    logging_section = data.get("logging", {})

    resolved_project = _pick(project, os.environ.get(PROJECT_ENV), connection.get("project"))
    resolved_instance = _pick(instance, os.environ.get(INSTANCE_ENV), connection.get("instance"))
    if not resolved_project:
        raise ConfigError(
            f"Missing project: pass --project, set {PROJECT_ENV}, or run 'btshell init'"
        )
    if not resolved_instance:
        raise ConfigError(
            f"Missing instance: pass --instance, set {INSTANCE_ENV}, or run 'btshell init'"
        )

    resolved_backend = _pick(backend, connection.get("backend"), "local")
    if resolved_backend not in VALID_BACKENDS:
        raise ConfigError(
            f"Invalid backend '{resolved_backend}'. Must be one of: {', '.join(sorted(VALID_BACKENDS))}"
        )

    resolved_limit = _pick(read_limit, shell.get("read_limit"), DEFAULT_READ_LIMIT)
    if resolved_limit < 1:
        raise ConfigError(f"read_limit must be positive, got {resolved_limit}")

    resolved_level = str(_pick(log_level, logging_section.get("level"), DEFAULT_LEVEL)).upper()
    if resolved_level not in VALID_LEVELS:
        raise ConfigError(
            f"Invalid log level '{resolved_level}'. Must be one of: {', '.join(sorted(VALID_LEVELS))}"
        )

    resolved_history = _pick(history_file, shell.get("history_file"), DEFAULT_HISTORY_PATH)
    resolved_root = _pick(local.get("root"), DEFAULT_LOCAL_ROOT)
    resolved_log_file = _pick(log_file, logging_section.get("file"))

    return ShellConfig(
        project=resolved_project,
        instance=resolved_instance,
        backend=resolved_backend,
        history_file=Path(resolved_history).expanduser(),
        read_limit=resolved_limit,
        local_root=Path(resolved_root).expanduser(),
        log_level=resolved_level,
        log_file=Path(resolved_log_file).expanduser() if resolved_log_file else None,
    )


def set_config_value(key: str, value: str, config_path: Optional[Path] = None) -> None:
    """Set a ``section.key`` value in the config file.

    Args:
        key: Dotted key such as 'connection.project'
        value: Raw string value, converted to the key's type
        config_path: Optional config file path

    Raises:
        ConfigError: If the key is unknown or the value has the wrong type
    """
    if "." not in key:
        raise ConfigError(f"Config key '{key}' must look like 'section.key'")
    section, name = key.split(".", 1)
    expected = SCHEMA.get(section, {}).get(name)
    if expected is None:
        raise ConfigError(f"Unknown config key '{key}'")

    if expected is int:
        try:
            converted: Any = int(value)
        except ValueError:
            raise ConfigError(f"Config key '{key}' must be an integer, got '{value}'")
    else:
        converted = value

    if key == "connection.backend" and converted not in VALID_BACKENDS:
        raise ConfigError(
            f"Invalid backend '{converted}'. Must be one of: {', '.join(sorted(VALID_BACKENDS))}"
        )

    config = _load_config(config_path)
    config.setdefault(section, {})[name] = converted
    _save_config(config, config_path)


def get_config_summary(config_path: Optional[Path] = None) -> dict:
    """Get the file's settings flattened to dotted keys.

    Returns:
        Dict mapping 'section.key' to its value
    """
    config = _load_config(config_path)
    summary = {}
    for section, values in config.items():
        if isinstance(values, dict):
            for key, value in values.items():
                summary[f"{section}.{key}"] = value
    return summary
