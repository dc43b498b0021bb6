"""Feature descriptor models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

REQUIRED_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "version",
    "dependencies",
    "category",
)


class FeatureDescriptor(BaseModel):
    """A named, versioned bundle of templates declared in the manifest."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Feature identifier (manifest key)")
    name: str
    description: str
    version: str = Field(description="Opaque version label, never compared")
    dependencies: tuple[str, ...] = Field(
        default=(), description="Feature ids in declaration order"
    )
    category: str

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """YAML reads `1.0` as a float; versions are labels."""
        if isinstance(v, int | float):
            return str(v)
        return v
