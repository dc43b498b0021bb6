"""Value types exchanged between the installer and its callers."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class ArtifactKind(str, Enum):
    """Artifact kinds, in installation stage order."""

    SCHEMA = "schema"
    MIGRATION = "migration"
    FUNCTION = "function"
    SEED = "seed"


class Resolution(str, Enum):
    """Caller decision for a conflicting target path."""

    OVERWRITE = "overwrite"
    SKIP = "skip"


@dataclass
class ConflictCandidate:
    """
    Target path that already exists on disk.

    Attributes:
        path: Target path relative to the project root (POSIX separators).
        exists_on_disk: Whether the target existed during analysis.
        resolution: Caller decision; None until annotated.
    """

    path: str
    exists_on_disk: bool = True
    resolution: Resolution | None = None


@dataclass(frozen=True)
class DependencyCheck:
    """Result of checking a feature's direct dependencies."""

    satisfied: bool
    missing: list[str]


@dataclass
class InstallationOutcome:
    """
    Result of one install attempt.

    File lists are filled best-effort even when errors occurred.
    """

    feature_id: str
    installed_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def annotate(
    candidates: Iterable[ConflictCandidate], resolution: Resolution
) -> list[ConflictCandidate]:
    """Return copies of candidates with every entry set to resolution."""
    return [
        ConflictCandidate(c.path, c.exists_on_disk, resolution) for c in candidates
    ]


def resolution_map(
    candidates: Iterable[ConflictCandidate],
) -> dict[str, Resolution]:
    """
    Index resolutions by path.

    A returned candidate left without a resolution counts as SKIP.
    """
    return {c.path: c.resolution or Resolution.SKIP for c in candidates}
