"""Pytest configuration and shared fixtures."""

import itertools
import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import structlog
import yaml

from supafeatures.config import CONFIG_FILE_NAME, ConfigStore
from supafeatures.errors import ScaffoldError
from supafeatures.installer import FeatureInstaller
from supafeatures.registry import FeatureRegistry, load_registry
from supafeatures.scaffold import ScaffoldTool

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

# Shared across instances so migration names never collide within a test
_migration_counter = itertools.count(1)

SAMPLE_FEATURES: dict[str, dict[str, Any]] = {
    "base": {
        "name": "Base",
        "description": "Shared base tables",
        "version": "1.0.0",
        "dependencies": [],
        "category": "core",
    },
    "widgets": {
        "name": "Widgets",
        "description": "Widget storage and an edge function",
        "version": "1.2.0",
        "dependencies": ["base"],
        "category": "core",
    },
    "reports": {
        "name": "Reports",
        "description": "Widget reports",
        "version": "0.1.0",
        "dependencies": ["widgets", "base"],
        "category": "analytics",
    },
}

SAMPLE_TEMPLATES: dict[str, str] = {
    "base/schemas/base.sql": "create table base (id bigint primary key);\n",
    "base/migrations/create_base.sql": "create table base (id bigint primary key);\n",
    "base/seed/base_rows.sql": "insert into base values (1);\n",
    "widgets/schemas/widgets.sql": "create table widgets (id bigint primary key);\n",
    "widgets/schemas/views/widget_view.sql": "create view widget_view as select 1;\n",
    "widgets/migrations/create_widgets.sql": "create table widgets (id bigint);\n",
    "widgets/migrations/add_widget_index.sql": "create index on widgets (id);\n",
    "widgets/functions/widget-fn/index.ts": "Deno.serve(() => new Response('ok'));\n",
    "widgets/functions/widget-fn/lib/util.ts": "export const answer = 42;\n",
    "widgets/seed/widgets.sql": "insert into widgets values (1);\n",
    "widgets/seed/more_widgets.sql": "insert into widgets values (2);\n",
    "reports/migrations/create_reports.sql": "create table reports (id bigint);\n",
}


class FakeScaffoldTool(ScaffoldTool):
    """In-memory stand-in for the Supabase CLI that records every call."""

    def __init__(
        self,
        supabase_dir: Path,
        *,
        available: bool = True,
        fail_migrations: tuple[str, ...] = (),
        fail_functions: tuple[str, ...] = (),
    ) -> None:
        self.supabase_dir = supabase_dir
        self.available = available
        self.fail_migrations = set(fail_migrations)
        self.fail_functions = set(fail_functions)
        self.migrations: list[str] = []
        self.functions: list[str] = []
        self.initialized = False

    def is_available(self) -> bool:
        return self.available

    def create_migration_artifact(self, name: str) -> Path:
        if name in self.fail_migrations:
            msg = f"migration {name} rejected"
            raise ScaffoldError(msg)
        self.migrations.append(name)
        timestamp = 20240101000000 + next(_migration_counter)
        path = self.supabase_dir / "migrations" / f"{timestamp}_{name}.sql"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        return path

    def create_function_scaffold(self, name: str) -> None:
        if name in self.fail_functions:
            msg = f"function {name} rejected"
            raise ScaffoldError(msg)
        self.functions.append(name)
        function_dir = self.supabase_dir / "functions" / name
        function_dir.mkdir(parents=True, exist_ok=True)
        (function_dir / "index.ts").write_text("// scaffolded\n", encoding="utf-8")

    def is_project(self) -> bool:
        return (self.supabase_dir / "config.toml").is_file()

    def validate_project(self) -> list[str]:
        return []

    def init_project(self) -> None:
        self.supabase_dir.mkdir(parents=True, exist_ok=True)
        (self.supabase_dir / "config.toml").write_text("", encoding="utf-8")
        self.initialized = True


@pytest.fixture(autouse=True)
def reset_structlog() -> Any:
    """Undo logging configuration done by CLI commands."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fixed_now() -> datetime:
    """Timestamp returned by the installer clock in tests."""
    return FIXED_NOW


@pytest.fixture
def fake_scaffold_cls() -> type[FakeScaffoldTool]:
    """Return the fake scaffold tool class."""
    return FakeScaffoldTool


@pytest.fixture
def make_catalog(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a catalog directory (manifest plus templates)."""

    def _make(
        features: dict[str, dict[str, Any]] | None = None,
        templates: dict[str, str] | None = None,
        *,
        version: str = "2.0.0",
        name: str = "catalog",
    ) -> Path:
        catalog_dir = tmp_path / name
        catalog_dir.mkdir(parents=True, exist_ok=True)
        features = SAMPLE_FEATURES if features is None else features
        templates = SAMPLE_TEMPLATES if templates is None else templates

        manifest = {"version": version, "features": features}
        (catalog_dir / "features.yaml").write_text(
            yaml.safe_dump(manifest, sort_keys=False), encoding="utf-8"
        )
        for feature_id in features:
            (catalog_dir / feature_id).mkdir(exist_ok=True)
        for relative, content in templates.items():
            path = catalog_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return catalog_dir

    return _make


@pytest.fixture
def catalog_dir(make_catalog: Callable[..., Path]) -> Path:
    """Sample catalog: base <- widgets <- reports."""
    return make_catalog()


@pytest.fixture
def registry(catalog_dir: Path) -> FeatureRegistry:
    """Registry loaded from the sample catalog."""
    return load_registry(catalog_dir)


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a project directory with config and Supabase project."""

    def _make(
        *,
        prefix: str | None = None,
        source_dir: str = "./supabase",
        name: str = "project",
        installed: dict[str, Any] | None = None,
    ) -> Path:
        project_dir = tmp_path / name
        supabase_dir = project_dir / source_dir
        supabase_dir.mkdir(parents=True, exist_ok=True)
        (supabase_dir / "config.toml").write_text("", encoding="utf-8")

        config: dict[str, Any] = {"version": "1.0.0", "sourceDir": source_dir}
        if prefix is not None:
            config["filePrefix"] = prefix
        config["installedFeatures"] = installed or {}
        (project_dir / CONFIG_FILE_NAME).write_text(
            json.dumps(config, indent=2), encoding="utf-8"
        )
        return project_dir

    return _make


@pytest.fixture
def project_dir(make_project: Callable[..., Path]) -> Path:
    """Project without a file prefix."""
    return make_project()


@pytest.fixture
def config_store(project_dir: Path) -> ConfigStore:
    """Config store of the sample project."""
    return ConfigStore.open(project_dir)


@pytest.fixture
def scaffold(config_store: ConfigStore) -> FakeScaffoldTool:
    """Fake scaffold tool bound to the sample project."""
    return FakeScaffoldTool(config_store.source_dir)


@pytest.fixture
def installer(
    registry: FeatureRegistry,
    config_store: ConfigStore,
    scaffold: FakeScaffoldTool,
) -> FeatureInstaller:
    """Installer for the sample project with a fixed clock."""
    return FeatureInstaller(registry, config_store, scaffold, clock=lambda: FIXED_NOW)


@pytest.fixture
def make_installer(
    registry: FeatureRegistry,
    make_project: Callable[..., Path],
) -> Callable[..., tuple[FeatureInstaller, FakeScaffoldTool]]:
    """Factory for installers on freshly created projects."""

    def _make(**project_kwargs: Any) -> tuple[FeatureInstaller, FakeScaffoldTool]:
        store = ConfigStore.open(make_project(**project_kwargs))
        tool = FakeScaffoldTool(store.source_dir)
        return FeatureInstaller(registry, store, tool, clock=lambda: FIXED_NOW), tool

    return _make
