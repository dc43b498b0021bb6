"""
Catalog authoring.

Creates the template skeleton for a new feature (schema, migration, edge
function, README) inside a catalog directory and adds the feature to the
catalog manifest. Rewriting a YAML manifest drops its comments.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from supafeatures.errors import ValidationError
from supafeatures.registry.core import MANIFEST_NAMES, validate_manifest
from supafeatures.storage import FileStore, LocalFileStore
from supafeatures.utils.logging import get_logger

log = get_logger(__name__)

FEATURE_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")
DEFAULT_CATEGORY = "custom"

SCHEMA_TEMPLATE = """\
-- Schema for the {feature_id} feature

create table if not exists public.{table_name} (
  id uuid primary key default gen_random_uuid(),
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);

alter table public.{table_name} enable row level security;
"""

MIGRATION_TEMPLATE = """\
-- Migration for the {feature_id} feature
-- Generated {timestamp}

create table if not exists public.{table_name} (
  id uuid primary key default gen_random_uuid(),
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);

alter table public.{table_name} enable row level security;
"""

FUNCTION_TEMPLATE = """\
Deno.serve(async (req) => {{
  const body = {{ function: '{function_name}', method: req.method }}
  return new Response(JSON.stringify(body), {{
    headers: {{ 'Content-Type': 'application/json' }},
  }})
}})
"""

DENO_TEMPLATE = """\
{
  "imports": {}
}
"""

README_TEMPLATE = """\
# {display_name} Feature

## Description
Brief description of the {feature_id} feature.

## Files
- `schemas/{feature_id}.sql` - Database schema definitions
- `migrations/{migration_file}` - Database migration
- `functions/{function_name}/` - Edge function implementation

## Usage
Add usage instructions here.

## Dependencies
List any dependencies or prerequisites here.
"""


@dataclass
class ScaffoldedFeature:
    """Files written for a new catalog feature."""

    feature_id: str
    feature_dir: Path
    manifest_path: Path
    created_files: list[Path] = field(default_factory=list)


def display_name(feature_id: str) -> str:
    """Title-cased name derived from a kebab-case id."""
    return " ".join(word.capitalize() for word in feature_id.split("-") if word)


def _find_or_create_manifest(catalog_dir: Path) -> tuple[Path, dict[str, Any]]:
    for name in MANIFEST_NAMES:
        candidate = catalog_dir / name
        if candidate.is_file():
            try:
                with candidate.open(encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                msg = f"Failed to parse feature registry {candidate}: {e}"
                raise ValidationError(msg) from e
            # Reject a broken manifest before anything is written
            validate_manifest(data)
            return candidate, data
    return catalog_dir / MANIFEST_NAMES[0], {"version": "1.0.0", "features": {}}


def _dump_manifest(manifest_path: Path, data: dict[str, Any]) -> str:
    if manifest_path.suffix == ".json":
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def create_feature(
    catalog_dir: Path,
    feature_id: str,
    *,
    category: str = DEFAULT_CATEGORY,
    file_store: FileStore | None = None,
    now: datetime | None = None,
) -> ScaffoldedFeature:
    """
    Add a new feature skeleton to a catalog.

    Args:
        catalog_dir: Catalog directory holding the manifest and templates.
        feature_id: Kebab-case id of the new feature.
        category: Manifest category for the feature.
        file_store: File primitives (defaults to the local filesystem).
        now: Timestamp written into the migration header.

    Returns:
        The written feature directory, manifest and files.

    Raises:
        ValidationError: If the id is not kebab-case, the feature already
            exists, or the existing manifest is invalid.
    """
    if not FEATURE_ID_PATTERN.match(feature_id):
        msg = (
            "Feature name must be in kebab-case "
            "(lowercase letters, numbers, and hyphens only)"
        )
        raise ValidationError(msg, feature_id=feature_id)

    files = file_store or LocalFileStore()
    feature_dir = catalog_dir / feature_id
    manifest_path, data = _find_or_create_manifest(catalog_dir)
    features = data.setdefault("features", {})
    if files.exists(feature_dir) or feature_id in features:
        msg = f"Feature '{feature_id}' already exists"
        raise ValidationError(msg, feature_id=feature_id)

    table_name = feature_id.replace("-", "_")
    function_name = f"{feature_id}-fn"
    migration_file = f"create_{table_name}.sql"
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    values = {
        "feature_id": feature_id,
        "table_name": table_name,
        "function_name": function_name,
        "migration_file": migration_file,
        "display_name": display_name(feature_id),
        "timestamp": timestamp,
    }

    contents = {
        feature_dir / "schemas" / f"{feature_id}.sql": SCHEMA_TEMPLATE.format(**values),
        feature_dir / "migrations" / migration_file: MIGRATION_TEMPLATE.format(**values),
        feature_dir / "functions" / function_name / "index.ts": FUNCTION_TEMPLATE.format(
            **values
        ),
        feature_dir / "functions" / function_name / "deno.json": DENO_TEMPLATE,
        feature_dir / "README.md": README_TEMPLATE.format(**values),
    }
    result = ScaffoldedFeature(feature_id, feature_dir, manifest_path)
    for path, content in contents.items():
        files.write_text(path, content)
        result.created_files.append(path)
        log.debug("Created template file", path=str(path))

    features[feature_id] = {
        "name": display_name(feature_id),
        "description": f"{display_name(feature_id)} feature implementation",
        "version": "1.0.0",
        "dependencies": [],
        "category": category,
    }
    files.write_text_atomic(manifest_path, _dump_manifest(manifest_path, data))
    log.info("Added feature to catalog", feature=feature_id, manifest=str(manifest_path))
    return result
