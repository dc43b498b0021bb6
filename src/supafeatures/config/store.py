"""
Persisted installation state.

ConfigStore owns the project configuration for one installer invocation.
Reads are served from memory; every change is written to disk before the
in-memory view is updated, so a failed write leaves the previous state
visible.

Environment variables are interpolated into the in-memory view only. Writes
start from the data as it was read from disk and change nothing but the
installedFeatures entry concerned, so ${VAR} placeholders survive.
"""

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from supafeatures.config.loader import (
    dump_record,
    find_config_file,
    read_config_data,
    save_config,
    validate_config_data,
)
from supafeatures.config.settings import (
    CONFIG_FILE_NAME,
    InstalledFeatureRecord,
    ProjectConfig,
)
from supafeatures.errors import ConfigError, PersistError
from supafeatures.storage import FileStore, LocalFileStore
from supafeatures.utils.logging import get_logger

log = get_logger(__name__)

INSTALLED_FEATURES_KEY = "installedFeatures"


class ConfigStore:
    """
    Project configuration with last-write-wins feature records.

    The project root is the directory containing the config file.
    """

    def __init__(
        self,
        config: ProjectConfig,
        config_path: Path,
        *,
        file_store: FileStore | None = None,
        raw_data: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            config: Current configuration.
            config_path: File the configuration is persisted to.
            file_store: File primitives (defaults to the local filesystem).
            raw_data: Configuration as stored on disk, before interpolation.
                Derived from config when omitted.
        """
        self._config = config
        if raw_data is None:
            raw_data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        self._raw = copy.deepcopy(raw_data)
        self.config_path = config_path.resolve()
        self.file_store = file_store or LocalFileStore()

    @classmethod
    def open(
        cls, start_dir: Path | None = None, *, file_store: FileStore | None = None
    ) -> "ConfigStore":
        """
        Locate and load the project configuration.

        Raises:
            ConfigError: If no config file exists above start_dir, or it is
                invalid.
        """
        path = find_config_file(start_dir)
        if path is None:
            msg = (
                f"Configuration file {CONFIG_FILE_NAME} not found. "
                "Run 'supafeatures init' first."
            )
            raise ConfigError(msg)
        path, data = read_config_data(path)
        config = validate_config_data(data)
        log.debug("Loaded project config", path=str(path))
        return cls(config, path, file_store=file_store, raw_data=data)

    @property
    def config(self) -> ProjectConfig:
        return self._config

    @property
    def project_root(self) -> Path:
        return self.config_path.parent

    @property
    def prefix(self) -> str | None:
        return self._config.file_prefix

    @property
    def source_dir(self) -> Path:
        """Absolute path to the Supabase directory."""
        return self._config.resolve_source_dir(self.project_root)

    @property
    def installed_features(self) -> Mapping[str, InstalledFeatureRecord]:
        return dict(self._config.installed_features)

    @property
    def installed_ids(self) -> set[str]:
        return set(self._config.installed_features)

    def get_record(self, feature_id: str) -> InstalledFeatureRecord | None:
        return self._config.installed_features.get(feature_id)

    def persist(self, feature_id: str, record: InstalledFeatureRecord) -> None:
        """
        Store the record for feature_id, replacing any previous one.

        Raises:
            PersistError: If the configuration file cannot be written.
        """
        features = dict(self._config.installed_features)
        features[feature_id] = record
        raw = self._raw_with_features()
        raw[INSTALLED_FEATURES_KEY][feature_id] = dump_record(record)
        self._write(self._config.model_copy(update={"installed_features": features}), raw)
        log.info(
            "Persisted feature record",
            feature=feature_id,
            version=record.version,
            n_files=len(record.files),
        )

    def remove(self, feature_id: str) -> bool:
        """
        Drop the record for feature_id.

        Returns:
            False if no record existed.

        Raises:
            PersistError: If the configuration file cannot be written.
        """
        if feature_id not in self._config.installed_features:
            return False
        features = dict(self._config.installed_features)
        del features[feature_id]
        raw = self._raw_with_features()
        raw[INSTALLED_FEATURES_KEY].pop(feature_id, None)
        self._write(self._config.model_copy(update={"installed_features": features}), raw)
        log.info("Removed feature record", feature=feature_id)
        return True

    def _raw_with_features(self) -> dict[str, Any]:
        raw = copy.deepcopy(self._raw)
        if not isinstance(raw.get(INSTALLED_FEATURES_KEY), dict):
            raw[INSTALLED_FEATURES_KEY] = {}
        return raw

    def _write(self, new_config: ProjectConfig, new_raw: dict[str, Any]) -> None:
        try:
            save_config(new_raw, self.config_path, file_store=self.file_store)
        except OSError as e:
            msg = f"Failed to save configuration to {self.config_path}: {e}"
            raise PersistError(msg) from e
        self._config = new_config
        self._raw = new_raw
