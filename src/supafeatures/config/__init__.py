"""
Project configuration with typed Pydantic models.

Provides config discovery, validation and the persisted record of
installed features.
"""

from supafeatures.config.loader import (
    create_default_config,
    find_config_file,
    load_config,
    save_config,
)
from supafeatures.config.settings import (
    CONFIG_FILE_NAME,
    InstalledFeatureRecord,
    ProjectConfig,
)
from supafeatures.config.store import ConfigStore

__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigStore",
    "InstalledFeatureRecord",
    "ProjectConfig",
    "create_default_config",
    "find_config_file",
    "load_config",
    "save_config",
]
