"""
Typed configuration models using Pydantic.

The project config file is JSON with camelCase keys; models accept both
the aliases and the Python field names.
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILE_NAME = ".supabootstrap.json"
DEFAULT_CONFIG_VERSION = "1.0.0"
DEFAULT_SOURCE_DIR = "./supabase"


class InstalledFeatureRecord(BaseModel):
    """Installation record for one feature, replaced wholesale on reinstall."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = Field(description="Feature version at install time")
    installed_at: datetime = Field(alias="installedAt")
    files: list[str] = Field(
        default_factory=list,
        description="Installed paths relative to the project root",
    )


class ProjectConfig(BaseModel):
    """Complete project configuration as stored in .supabootstrap.json."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = Field(default=DEFAULT_CONFIG_VERSION, min_length=1)
    source_dir: str = Field(
        default=DEFAULT_SOURCE_DIR,
        alias="sourceDir",
        description="Supabase directory relative to the project root",
    )
    file_prefix: str | None = Field(
        default=None,
        alias="filePrefix",
        description="Prefix prepended to every installed file name",
    )
    installed_features: dict[str, InstalledFeatureRecord] = Field(
        default_factory=dict, alias="installedFeatures"
    )

    @field_validator("source_dir")
    @classmethod
    def validate_source_dir(cls, v: str) -> str:
        """Ensure the source directory is a non-empty path."""
        if not v.strip():
            msg = "sourceDir must not be empty"
            raise ValueError(msg)
        return v

    @field_validator("file_prefix")
    @classmethod
    def validate_file_prefix(cls, v: str | None) -> str | None:
        """Ensure the prefix cannot redirect files into other directories."""
        if v is None or v == "":
            return None
        if "/" in v or "\\" in v:
            msg = f"filePrefix must not contain path separators, got: {v!r}"
            raise ValueError(msg)
        return v

    def resolve_source_dir(self, project_root: Path) -> Path:
        """Absolute path to the Supabase directory."""
        return (project_root / self.source_dir).resolve()

    def is_installed(self, feature_id: str) -> bool:
        """Whether a record exists for feature_id."""
        return feature_id in self.installed_features
