"""Tests for scaffolding new catalog features."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import yaml

from supafeatures.config import ConfigStore
from supafeatures.errors import ValidationError
from supafeatures.installer import FeatureInstaller
from supafeatures.registry import create_feature, load_registry
from supafeatures.registry.authoring import display_name

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestCreateFeature:
    """Tests for create_feature."""

    def test_creates_skeleton(self, catalog_dir: Path) -> None:
        """Test that the template layout is written and the manifest updated."""
        result = create_feature(catalog_dir, "audit-log", now=NOW)

        feature_dir = catalog_dir / "audit-log"
        assert result.feature_dir == feature_dir
        assert result.manifest_path == catalog_dir / "features.yaml"
        assert sorted(p.relative_to(feature_dir).as_posix() for p in result.created_files) == [
            "README.md",
            "functions/audit-log-fn/deno.json",
            "functions/audit-log-fn/index.ts",
            "migrations/create_audit_log.sql",
            "schemas/audit-log.sql",
        ]
        schema = (feature_dir / "schemas/audit-log.sql").read_text(encoding="utf-8")
        assert "public.audit_log" in schema
        migration = (feature_dir / "migrations/create_audit_log.sql").read_text(encoding="utf-8")
        assert NOW.isoformat() in migration
        assert "audit-log-fn" in (feature_dir / "functions/audit-log-fn/index.ts").read_text(
            encoding="utf-8"
        )

    def test_new_feature_loads(self, catalog_dir: Path) -> None:
        """Test that the updated manifest still validates with the new entry."""
        create_feature(catalog_dir, "audit-log", category="ops")

        registry = load_registry(catalog_dir)
        feature = registry.require_feature("audit-log")
        assert feature.name == "Audit Log"
        assert feature.category == "ops"
        assert feature.version == "1.0.0"
        assert feature.dependencies == ()
        assert list(registry.features) == ["base", "widgets", "reports", "audit-log"]
        assert registry.version == "2.0.0"

    def test_new_feature_installs(
        self, catalog_dir: Path, config_store: ConfigStore, scaffold: Any
    ) -> None:
        """Test that a scaffolded feature installs into a project."""
        create_feature(catalog_dir, "audit-log")
        installer = FeatureInstaller(load_registry(catalog_dir), config_store, scaffold)

        outcome = installer.install_feature("audit-log")

        assert outcome.success, outcome.errors
        assert "supabase/schemas/audit-log.sql" in outcome.installed_files
        assert scaffold.migrations == ["create_audit_log"]
        assert scaffold.functions == ["audit-log-fn"]

    @pytest.mark.parametrize("feature_id", ["Audit", "audit_log", "audit log", ""])
    def test_rejects_non_kebab_case(self, catalog_dir: Path, feature_id: str) -> None:
        """Test that only lowercase letters, digits and hyphens are accepted."""
        manifest = (catalog_dir / "features.yaml").read_text(encoding="utf-8")

        with pytest.raises(ValidationError, match="kebab-case"):
            create_feature(catalog_dir, feature_id)

        assert (catalog_dir / "features.yaml").read_text(encoding="utf-8") == manifest

    def test_rejects_existing_feature(self, catalog_dir: Path) -> None:
        """Test that an existing feature is never overwritten."""
        with pytest.raises(ValidationError, match="already exists") as exc:
            create_feature(catalog_dir, "widgets")
        assert exc.value.feature_id == "widgets"

    def test_rejects_existing_directory(self, catalog_dir: Path) -> None:
        """Test that a stray template directory blocks creation."""
        (catalog_dir / "orphan").mkdir()
        with pytest.raises(ValidationError, match="already exists"):
            create_feature(catalog_dir, "orphan")

    def test_invalid_manifest_writes_nothing(self, tmp_path: Path) -> None:
        """Test that a broken manifest is reported before any file is created."""
        (tmp_path / "features.yaml").write_text("version: 1.0.0\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            create_feature(tmp_path, "audit-log")

        assert not (tmp_path / "audit-log").exists()

    def test_json_manifest_stays_json(self, tmp_path: Path) -> None:
        """Test that JSON manifests are rewritten as JSON."""
        (tmp_path / "features.json").write_text(
            json.dumps({"version": "1.0.0", "features": {}}), encoding="utf-8"
        )

        create_feature(tmp_path, "audit-log")

        data = json.loads((tmp_path / "features.json").read_text(encoding="utf-8"))
        assert data["features"]["audit-log"]["category"] == "custom"

    def test_empty_catalog_gets_manifest(self, tmp_path: Path) -> None:
        """Test that a catalog without manifest gets a new features.yaml."""
        catalog = tmp_path / "features"

        result = create_feature(catalog, "audit-log")

        assert result.manifest_path == catalog / "features.yaml"
        data = yaml.safe_load(result.manifest_path.read_text(encoding="utf-8"))
        assert list(data["features"]) == ["audit-log"]
        assert load_registry(catalog).feature_exists("audit-log")


def test_display_name() -> None:
    """Test title-casing of kebab-case ids."""
    assert display_name("edge-function-utils") == "Edge Function Utils"
    assert display_name("a1-b") == "A1 B"
