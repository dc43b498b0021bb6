"""
Target path construction.

All target paths are built here from unprefixed template names, which is
the only place the naming prefix is applied.
"""

from pathlib import Path, PurePosixPath

SCHEMAS_DIR = "schemas"
MIGRATIONS_DIR = "migrations"
FUNCTIONS_DIR = "functions"
SEED_DIR = "seed"
SEED_FILE = "seed.sql"


def apply_prefix(relative_path: str, prefix: str | None) -> str:
    """
    Prepend prefix to the base file name of a relative path.

    Directory components and the extension are left untouched:
    ``apply_prefix("sub/users.sql", "sb_") == "sub/sb_users.sql"``.
    """
    if not prefix:
        return relative_path
    path = PurePosixPath(relative_path)
    return str(path.with_name(prefix + path.name))


class ProjectLayout:
    """Where each artifact kind lands inside a project."""

    def __init__(self, project_root: Path, source_dir: Path, prefix: str | None) -> None:
        self.project_root = project_root
        self.source_dir = source_dir
        self.prefix = prefix

    @property
    def schemas_dir(self) -> Path:
        return self.source_dir / SCHEMAS_DIR

    @property
    def migrations_dir(self) -> Path:
        return self.source_dir / MIGRATIONS_DIR

    @property
    def functions_dir(self) -> Path:
        return self.source_dir / FUNCTIONS_DIR

    @property
    def seed_path(self) -> Path:
        return self.source_dir / SEED_FILE

    def schema_target(self, template_relative: PurePosixPath | str) -> Path:
        """Target for a schema template, given its path below ``schemas/``."""
        return self.schemas_dir / apply_prefix(str(template_relative), self.prefix)

    def function_name(self, template_name: str) -> str:
        return apply_prefix(template_name, self.prefix)

    def function_target(self, template_name: str) -> Path:
        return self.functions_dir / self.function_name(template_name)

    def migration_name(self, template: Path) -> str:
        """Name passed to the scaffold tool for a migration template."""
        return apply_prefix(template.stem, self.prefix)

    def relative(self, path: Path) -> str:
        """Project-relative POSIX path used in outcomes and records."""
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()

    def absolute(self, relative_path: str) -> Path:
        return self.project_root / relative_path
