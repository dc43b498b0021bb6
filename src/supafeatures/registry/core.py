"""
Feature registry: manifest loading, validation and dependency resolution.

The registry is an explicit value. Build it once with load_registry()
and pass it to whatever needs it; it never changes after validation.
"""

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from supafeatures.errors import NotFoundError, ValidationError
from supafeatures.registry.models import REQUIRED_FIELDS, FeatureDescriptor
from supafeatures.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_CATALOG_DIR = Path(__file__).resolve().parent.parent / "catalog"
MANIFEST_NAMES: tuple[str, ...] = ("features.yaml", "features.yml", "features.json")


class VisitState(Enum):
    """Traversal state used by cycle detection."""

    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    DONE = "done"


def find_cycle(dependencies: Mapping[str, tuple[str, ...]]) -> list[str] | None:
    """
    Find a dependency cycle using a three-state depth-first traversal.

    Features are visited in mapping order and dependencies in declaration
    order. The first dependency found still IN_PROGRESS closes the cycle.

    Args:
        dependencies: Feature id -> declared dependency ids. Every
            dependency id must be a key.

    Returns:
        The cycle as a path starting and ending at the revisited feature
        (e.g. ["a", "b", "a"]), or None if the graph is acyclic.
    """
    state = dict.fromkeys(dependencies, VisitState.UNVISITED)
    path: list[str] = []

    def visit(feature_id: str) -> list[str] | None:
        state[feature_id] = VisitState.IN_PROGRESS
        path.append(feature_id)
        for dep in dependencies[feature_id]:
            if state[dep] is VisitState.IN_PROGRESS:
                return [*path[path.index(dep) :], dep]
            if state[dep] is VisitState.UNVISITED:
                cycle = visit(dep)
                if cycle is not None:
                    return cycle
        path.pop()
        state[feature_id] = VisitState.DONE
        return None

    for feature_id in dependencies:
        if state[feature_id] is VisitState.UNVISITED:
            cycle = visit(feature_id)
            if cycle is not None:
                return cycle
    return None


def _parse_descriptor(feature_id: str, raw: Any) -> FeatureDescriptor:
    if not isinstance(raw, Mapping):
        msg = f"Feature '{feature_id}' must be a mapping"
        raise ValidationError(msg, feature_id=feature_id)

    for field in REQUIRED_FIELDS:
        if field not in raw:
            msg = f"Feature '{feature_id}' missing required field: {field}"
            raise ValidationError(msg, feature_id=feature_id)

    if not isinstance(raw["dependencies"], list):
        msg = f"Feature '{feature_id}' dependencies must be a list"
        raise ValidationError(msg, feature_id=feature_id)

    try:
        return FeatureDescriptor.model_validate({**raw, "id": feature_id})
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        msg = f"Feature '{feature_id}' is invalid: {details}"
        raise ValidationError(msg, feature_id=feature_id) from e


def validate_manifest(data: Any) -> tuple[str, dict[str, FeatureDescriptor]]:
    """
    Validate a parsed manifest.

    Args:
        data: Parsed manifest content.

    Returns:
        Tuple of (registry version, descriptors keyed by id).

    Raises:
        ValidationError: On missing fields, self- or unknown dependencies,
            or a dependency cycle.
    """
    if not isinstance(data, Mapping):
        msg = "Feature registry must be a mapping"
        raise ValidationError(msg)
    if not data.get("version"):
        msg = "Feature registry missing version"
        raise ValidationError(msg)
    raw_features = data.get("features")
    if not isinstance(raw_features, Mapping):
        msg = "Feature registry missing or invalid features mapping"
        raise ValidationError(msg)

    features = {
        str(fid): _parse_descriptor(str(fid), raw) for fid, raw in raw_features.items()
    }

    for feature in features.values():
        for dep in feature.dependencies:
            if dep == feature.id:
                msg = f"Feature '{feature.id}' depends on itself"
                raise ValidationError(msg, feature_id=feature.id)
            if dep not in features:
                msg = f"Feature '{feature.id}' depends on unknown feature '{dep}'"
                raise ValidationError(msg, feature_id=feature.id)

    cycle = find_cycle({fid: f.dependencies for fid, f in features.items()})
    if cycle is not None:
        msg = (
            f"Circular dependency detected involving feature '{cycle[0]}': "
            + " -> ".join(cycle)
        )
        raise ValidationError(msg, feature_id=cycle[0])

    return str(data["version"]), features


class FeatureRegistry:
    """
    Validated, immutable feature catalog.

    Template directories live next to the manifest:
    ``<catalog_dir>/<feature-id>/{schemas,migrations,functions,seed}``.
    """

    def __init__(
        self,
        version: str,
        features: Mapping[str, FeatureDescriptor],
        catalog_dir: Path,
    ) -> None:
        """
        Initialize registry from already validated descriptors.

        Use from_manifest() or load_registry() for untrusted input.
        """
        self._version = version
        self._features = MappingProxyType(dict(features))
        self.catalog_dir = catalog_dir

    @classmethod
    def from_manifest(cls, data: Any, catalog_dir: Path) -> "FeatureRegistry":
        """Validate parsed manifest content and build a registry."""
        version, features = validate_manifest(data)
        return cls(version, features, catalog_dir)

    @property
    def version(self) -> str:
        return self._version

    @property
    def features(self) -> Mapping[str, FeatureDescriptor]:
        return self._features

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._features

    def __len__(self) -> int:
        return len(self._features)

    def get_feature(self, feature_id: str) -> FeatureDescriptor | None:
        """Get a feature by id, or None if unknown."""
        return self._features.get(feature_id)

    def require_feature(self, feature_id: str) -> FeatureDescriptor:
        """
        Get a feature by id.

        Raises:
            NotFoundError: If feature_id is unknown.
        """
        feature = self._features.get(feature_id)
        if feature is None:
            available = ", ".join(self._features)
            msg = f"Feature '{feature_id}' not found. Available: {available}"
            raise NotFoundError(feature_id, msg)
        return feature

    def list_features(self) -> list[FeatureDescriptor]:
        """All features in manifest order."""
        return list(self._features.values())

    def get_features_by_category(self, category: str) -> dict[str, FeatureDescriptor]:
        """Features whose category matches, keyed by id."""
        return {fid: f for fid, f in self._features.items() if f.category == category}

    def get_categories(self) -> list[str]:
        """Unique categories, sorted."""
        return sorted({f.category for f in self._features.values()})

    def resolve_dependencies(self, feature_id: str) -> list[str]:
        """
        Resolve the transitive dependency closure of a feature.

        Dependencies are visited in declaration order and each feature is
        resolved at most once per call.

        Args:
            feature_id: Feature to resolve.

        Returns:
            Feature ids, dependencies first, ending with feature_id.

        Raises:
            NotFoundError: If feature_id is unknown.
        """
        self.require_feature(feature_id)

        resolved: list[str] = []
        seen: set[str] = set()

        def resolve(current: str) -> None:
            if current in seen:
                return
            seen.add(current)
            for dep in self._features[current].dependencies:
                resolve(dep)
            resolved.append(current)

        resolve(feature_id)
        return resolved

    def dependents_of(self, feature_id: str) -> list[str]:
        """Features that declare feature_id as a direct dependency."""
        return [fid for fid, f in self._features.items() if feature_id in f.dependencies]

    def feature_path(self, feature_id: str) -> Path:
        """Template directory for a feature."""
        return self.catalog_dir / feature_id

    def feature_exists(self, feature_id: str) -> bool:
        """Whether the feature's template directory exists."""
        return self.feature_path(feature_id).is_dir()


def _find_manifest(path: Path) -> Path:
    if path.is_file():
        return path
    for name in MANIFEST_NAMES:
        candidate = path / name
        if candidate.is_file():
            return candidate
    msg = f"Feature registry not found at: {path}"
    raise FileNotFoundError(msg)


def load_registry(path: Path | None = None) -> FeatureRegistry:
    """
    Load and validate a feature registry.

    The manifest is read with a YAML parser, so JSON manifests work too.

    Args:
        path: Manifest file or catalog directory. Defaults to the catalog
            bundled with the package.

    Returns:
        Validated FeatureRegistry.

    Raises:
        FileNotFoundError: If no manifest exists at path.
        ValidationError: If the manifest is unparsable or invalid.
    """
    manifest_path = _find_manifest(path or DEFAULT_CATALOG_DIR)

    try:
        with manifest_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse feature registry {manifest_path}: {e}"
        raise ValidationError(msg) from e

    registry = FeatureRegistry.from_manifest(data, manifest_path.parent)
    log.debug(
        "Loaded feature registry",
        path=str(manifest_path),
        version=registry.version,
        n_features=len(registry),
    )
    return registry
