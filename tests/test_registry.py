"""Tests for the feature registry."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from supafeatures.errors import NotFoundError, ValidationError
from supafeatures.registry import (
    DEFAULT_CATALOG_DIR,
    FeatureRegistry,
    find_cycle,
    load_registry,
    validate_manifest,
)
from supafeatures.registry.models import REQUIRED_FIELDS


def _feature(*dependencies: str, category: str = "core", version: Any = "1.0.0") -> dict[str, Any]:
    return {
        "name": "Feature",
        "description": "A feature",
        "version": version,
        "dependencies": list(dependencies),
        "category": category,
    }


def _manifest(**features: dict[str, Any]) -> dict[str, Any]:
    return {"version": "1.0.0", "features": features}


class TestFindCycle:
    """Tests for three-state cycle detection."""

    def test_acyclic_graph(self) -> None:
        """Test that a DAG has no cycle."""
        assert find_cycle({"a": (), "b": ("a",), "c": ("a", "b")}) is None

    def test_two_node_cycle(self) -> None:
        """Test that a mutual dependency is reported from the first feature."""
        assert find_cycle({"a": ("b",), "b": ("a",)}) == ["a", "b", "a"]

    def test_cycle_not_including_start(self) -> None:
        """Test that the cycle path starts at the revisited feature."""
        cycle = find_cycle({"x": ("b",), "b": ("c",), "c": ("b",)})
        assert cycle == ["b", "c", "b"]

    def test_shared_dependency_is_not_a_cycle(self) -> None:
        """Test that a diamond is not mistaken for a cycle."""
        graph = {"a": (), "b": ("a",), "c": ("a",), "d": ("b", "c")}
        assert find_cycle(graph) is None


class TestValidateManifest:
    """Tests for manifest validation."""

    def test_valid_manifest(self) -> None:
        """Test that a valid manifest yields descriptors keyed by id."""
        version, features = validate_manifest(_manifest(a=_feature(), b=_feature("a")))
        assert version == "1.0.0"
        assert list(features) == ["a", "b"]
        assert features["b"].id == "b"
        assert features["b"].dependencies == ("a",)

    def test_missing_version(self) -> None:
        """Test that a manifest without version is rejected."""
        with pytest.raises(ValidationError, match="missing version"):
            validate_manifest({"features": {"a": _feature()}})

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_missing_required_field(self, field: str) -> None:
        """Test that each required field is enforced."""
        raw = _feature()
        del raw[field]
        with pytest.raises(ValidationError, match=f"missing required field: {field}") as exc:
            validate_manifest(_manifest(a=raw))
        assert exc.value.feature_id == "a"

    def test_dependencies_must_be_list(self) -> None:
        """Test that a scalar dependencies value is rejected."""
        raw = _feature()
        raw["dependencies"] = "b"
        with pytest.raises(ValidationError, match="dependencies must be a list"):
            validate_manifest(_manifest(a=raw))

    def test_self_dependency(self) -> None:
        """Test that depending on oneself is rejected."""
        with pytest.raises(ValidationError, match="depends on itself") as exc:
            validate_manifest(_manifest(a=_feature("a")))
        assert exc.value.feature_id == "a"

    def test_unknown_dependency(self) -> None:
        """Test that undeclared dependencies are rejected."""
        with pytest.raises(ValidationError, match="unknown feature 'missing'") as exc:
            validate_manifest(_manifest(a=_feature("missing")))
        assert exc.value.feature_id == "a"

    def test_cycle_names_involved_feature(self) -> None:
        """Test that a cycle error carries the feature where it was found."""
        data = _manifest(a=_feature("b"), b=_feature("c"), c=_feature("a"))
        with pytest.raises(ValidationError, match="Circular dependency") as exc:
            validate_manifest(data)
        assert exc.value.feature_id == "a"
        assert "a -> b -> c -> a" in str(exc.value)

    def test_numeric_version_becomes_label(self) -> None:
        """Test that YAML floats for versions are kept as strings."""
        _, features = validate_manifest(_manifest(a=_feature(version=1.5)))
        assert features["a"].version == "1.5"


class TestFeatureRegistry:
    """Tests for registry lookups and dependency resolution."""

    def test_get_feature(self, registry: FeatureRegistry) -> None:
        """Test lookup of known and unknown features."""
        assert registry.get_feature("widgets").name == "Widgets"
        assert registry.get_feature("nope") is None
        assert "widgets" in registry
        assert len(registry) == 3
        assert [f.id for f in registry.list_features()] == ["base", "widgets", "reports"]

    def test_require_feature_unknown(self, registry: FeatureRegistry) -> None:
        """Test that unknown features raise NotFoundError."""
        with pytest.raises(NotFoundError) as exc:
            registry.require_feature("nope")
        assert exc.value.feature_id == "nope"

    def test_categories(self, registry: FeatureRegistry) -> None:
        """Test category listing and filtering."""
        assert registry.get_categories() == ["analytics", "core"]
        assert list(registry.get_features_by_category("core")) == ["base", "widgets"]
        assert registry.get_features_by_category("none") == {}

    def test_resolve_chain(self, registry: FeatureRegistry) -> None:
        """Test that dependencies come first and each appears once."""
        assert registry.resolve_dependencies("reports") == ["base", "widgets", "reports"]
        assert registry.resolve_dependencies("base") == ["base"]

    def test_resolve_linear(self, tmp_path: Path) -> None:
        """Test a -> b -> c resolution."""
        registry = FeatureRegistry.from_manifest(
            _manifest(a=_feature(), b=_feature("a"), c=_feature("b")), tmp_path
        )
        assert registry.resolve_dependencies("c") == ["a", "b", "c"]

    def test_resolve_diamond(self, tmp_path: Path) -> None:
        """Test declaration order with a shared dependency."""
        registry = FeatureRegistry.from_manifest(
            _manifest(a=_feature(), b=_feature("a"), c=_feature("a"), d=_feature("b", "c")),
            tmp_path,
        )
        assert registry.resolve_dependencies("d") == ["a", "b", "c", "d"]

    def test_resolve_unknown(self, registry: FeatureRegistry) -> None:
        """Test that resolving an unknown feature raises NotFoundError."""
        with pytest.raises(NotFoundError):
            registry.resolve_dependencies("nope")

    def test_dependents_of(self, registry: FeatureRegistry) -> None:
        """Test reverse dependency lookup."""
        assert registry.dependents_of("base") == ["widgets", "reports"]
        assert registry.dependents_of("reports") == []

    def test_features_are_read_only(self, registry: FeatureRegistry) -> None:
        """Test that the registry cannot be mutated after loading."""
        with pytest.raises(TypeError):
            registry.features["extra"] = registry.features["base"]  # type: ignore[index]

    def test_feature_paths(self, registry: FeatureRegistry, catalog_dir: Path) -> None:
        """Test template directory lookup."""
        assert registry.feature_path("widgets") == catalog_dir / "widgets"
        assert registry.feature_exists("widgets")


class TestLoadRegistry:
    """Tests for loading manifests from disk."""

    def test_load_from_directory(self, catalog_dir: Path) -> None:
        """Test loading a catalog directory."""
        registry = load_registry(catalog_dir)
        assert registry.version == "2.0.0"
        assert registry.catalog_dir == catalog_dir

    def test_load_from_manifest_file(self, catalog_dir: Path) -> None:
        """Test loading an explicit manifest file."""
        registry = load_registry(catalog_dir / "features.yaml")
        assert registry.catalog_dir == catalog_dir

    def test_load_json_manifest(self, tmp_path: Path) -> None:
        """Test that JSON manifests are accepted."""
        (tmp_path / "features.json").write_text(
            json.dumps(_manifest(a=_feature())), encoding="utf-8"
        )
        assert list(load_registry(tmp_path).features) == ["a"]

    def test_missing_manifest(self, tmp_path: Path) -> None:
        """Test that a directory without manifest raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_registry(tmp_path)

    def test_unparsable_manifest(self, tmp_path: Path) -> None:
        """Test that broken YAML becomes a ValidationError."""
        (tmp_path / "features.yaml").write_text("version: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValidationError, match="Failed to parse"):
            load_registry(tmp_path)

    def test_invalid_manifest(self, make_catalog: Callable[..., Path]) -> None:
        """Test that validation errors surface from load_registry."""
        catalog = make_catalog({"a": _feature("a")}, {})
        with pytest.raises(ValidationError, match="depends on itself"):
            load_registry(catalog)

    def test_bundled_catalog(self) -> None:
        """Test that the bundled catalog loads and its templates exist."""
        registry = load_registry()
        assert registry.catalog_dir == DEFAULT_CATALOG_DIR
        assert registry.resolve_dependencies("placeholder-feature") == [
            "edge-function-utils",
            "placeholder-feature",
        ]
        for feature_id in registry.features:
            assert registry.feature_exists(feature_id)
