"""
Configuration loading utilities.

Supports environment variable interpolation in string values and walks
up the directory tree to find the project config file.
"""

import json
import os
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from supafeatures.config.settings import (
    CONFIG_FILE_NAME,
    DEFAULT_CONFIG_VERSION,
    DEFAULT_SOURCE_DIR,
    InstalledFeatureRecord,
    ProjectConfig,
)
from supafeatures.errors import ConfigError
from supafeatures.storage import FileStore, LocalFileStore


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _format_validation_error(error: PydanticValidationError) -> str:
    lines = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "root"
        lines.append(f"{location}: {err['msg']}")
    return "\n".join(lines)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """
    Find the config file by walking up from start_dir.

    Args:
        start_dir: Directory to start from (defaults to the cwd).

    Returns:
        Path to the config file, or None if no ancestor has one.
    """
    current = (start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def read_config_data(config_path: Path | None = None) -> tuple[Path, dict[str, Any]]:
    """
    Read the project configuration file without interpolating it.

    Args:
        config_path: Explicit path to the config file. If None, the file
            is searched for from the current directory upwards.

    Returns:
        Tuple of (config path, raw JSON object as stored on disk).

    Raises:
        ConfigError: If the file is missing or unparsable.
    """
    path = config_path or find_config_file()
    if path is None:
        msg = (
            f"Configuration file {CONFIG_FILE_NAME} not found. "
            "Run 'supafeatures init' first."
        )
        raise ConfigError(msg)
    if not path.is_file():
        msg = f"Configuration file not found at: {path}"
        raise ConfigError(msg)

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Failed to parse configuration file: {e}"
        raise ConfigError(msg) from e

    if not isinstance(data, dict):
        msg = f"Configuration file must contain a JSON object: {path}"
        raise ConfigError(msg)
    return path, data


def validate_config_data(data: dict[str, Any]) -> ProjectConfig:
    """
    Interpolate environment variables and validate raw config data.

    Raises:
        ConfigError: If the values are invalid.
    """
    try:
        return ProjectConfig.model_validate(_process_config_values(data))
    except PydanticValidationError as e:
        msg = f"Configuration validation failed:\n{_format_validation_error(e)}"
        raise ConfigError(msg) from e


def load_config(config_path: Path | None = None) -> ProjectConfig:
    """
    Load and validate the project configuration.

    Args:
        config_path: Explicit path to the config file. If None, the file
            is searched for from the current directory upwards.

    Returns:
        Validated ProjectConfig instance.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    _, data = read_config_data(config_path)
    return validate_config_data(data)


def create_default_config(
    *,
    source_dir: str = DEFAULT_SOURCE_DIR,
    file_prefix: str | None = None,
    version: str = DEFAULT_CONFIG_VERSION,
) -> ProjectConfig:
    """Create a configuration with no installed features."""
    try:
        return ProjectConfig(
            version=version,
            source_dir=source_dir,
            file_prefix=file_prefix,
        )
    except PydanticValidationError as e:
        msg = f"Configuration validation failed:\n{_format_validation_error(e)}"
        raise ConfigError(msg) from e


def dump_record(record: InstalledFeatureRecord) -> dict[str, Any]:
    """On-disk JSON form of one installation record."""
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_config(config: ProjectConfig | dict[str, Any]) -> str:
    """Serialize a config, or raw config data, to the on-disk JSON form."""
    if isinstance(config, ProjectConfig):
        data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    else:
        data = config
    return json.dumps(data, indent=2) + "\n"


def save_config(
    config: ProjectConfig | dict[str, Any],
    config_path: Path,
    *,
    file_store: FileStore | None = None,
) -> Path:
    """
    Save configuration atomically.

    Args:
        config: Configuration model, or raw data as read from disk.
        config_path: Destination file.
        file_store: File primitives (defaults to the local filesystem).

    Returns:
        Path to the saved file.
    """
    store = file_store or LocalFileStore()
    store.write_text_atomic(config_path, dump_config(config))
    return config_path
