"""
Uninstall and health checks driven by installation records.

Migrations are never deleted: they are history that may already have run
against a database.
"""

from dataclasses import dataclass, field

from supafeatures.errors import DependencyError, NotFoundError, PersistError
from supafeatures.installer.core import FeatureInstaller
from supafeatures.installer.seeds import has_seed_block, strip_seed_block
from supafeatures.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class UninstallOutcome:
    """Result of removing one feature."""

    feature_id: str
    removed_files: list[str] = field(default_factory=list)
    retained_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class FeatureHealth:
    """
    Doctor report for one installed feature.

    Attributes:
        feature_id: Installed feature.
        installed_version: Version in the installation record.
        catalog_version: Version in the registry, None if no longer listed.
        missing_files: Recorded paths that no longer exist.
    """

    feature_id: str
    installed_version: str
    catalog_version: str | None
    missing_files: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.missing_files

    @property
    def version_changed(self) -> bool:
        return (
            self.catalog_version is not None
            and self.catalog_version != self.installed_version
        )


def installed_dependents(installer: FeatureInstaller, feature_id: str) -> list[str]:
    """Installed features that declare feature_id as a dependency."""
    installed = installer.config.installed_ids
    return [fid for fid in installer.registry.dependents_of(feature_id) if fid in installed]


def uninstall_feature(
    installer: FeatureInstaller,
    feature_id: str,
    *,
    force: bool = False,
) -> UninstallOutcome:
    """
    Remove an installed feature's files and record.

    Schema and function files are deleted, the seed block is cut from the
    shared seed file and migrations are retained. The record is dropped
    only if every removal succeeded, so a failed uninstall can be retried.

    Args:
        installer: Installer for the target project.
        feature_id: Installed feature to remove.
        force: Remove even if installed features depend on it.

    Raises:
        NotFoundError: If feature_id is not installed.
        DependencyError: If installed features depend on it and not force.
    """
    record = installer.config.get_record(feature_id)
    if record is None:
        raise NotFoundError(feature_id, f"Feature '{feature_id}' is not installed")

    dependents = installed_dependents(installer, feature_id)
    if dependents and not force:
        msg = (
            f"Cannot uninstall '{feature_id}': required by installed "
            f"feature(s) {', '.join(dependents)}"
        )
        raise DependencyError(msg)

    layout = installer.layout
    files = installer.files
    outcome = UninstallOutcome(feature_id=feature_id)

    for rel_path in record.files:
        path = layout.absolute(rel_path)
        try:
            if path == layout.seed_path:
                content = files.read_text(path) if files.file_exists(path) else ""
                if has_seed_block(content, feature_id):
                    files.write_text(path, strip_seed_block(content, feature_id))
                outcome.removed_files.append(rel_path)
            elif path.is_relative_to(layout.migrations_dir):
                outcome.retained_files.append(rel_path)
            else:
                files.remove_file(path)
                stop_at = (
                    layout.functions_dir
                    if path.is_relative_to(layout.functions_dir)
                    else layout.schemas_dir
                )
                files.remove_empty_dirs(path.parent, stop_at)
                outcome.removed_files.append(rel_path)
        except (OSError, UnicodeError) as e:
            log.error("Failed to remove file", path=rel_path, error=str(e))
            outcome.errors.append(f"Failed to remove {rel_path}: {e}")

    # A reinstall does not re-record a seed block that was already present
    rel_seed = layout.relative(layout.seed_path)
    if rel_seed not in record.files:
        try:
            if files.file_exists(layout.seed_path):
                content = files.read_text(layout.seed_path)
                if has_seed_block(content, feature_id):
                    files.write_text(layout.seed_path, strip_seed_block(content, feature_id))
                    outcome.removed_files.append(rel_seed)
        except (OSError, UnicodeError) as e:
            log.error("Failed to remove seed block", path=rel_seed, error=str(e))
            outcome.errors.append(f"Failed to remove {rel_seed}: {e}")

    if outcome.success:
        try:
            installer.config.remove(feature_id)
        except PersistError as e:
            outcome.errors.append(str(e))

    log.info(
        "Feature uninstalled",
        feature=feature_id,
        success=outcome.success,
        n_removed=len(outcome.removed_files),
        n_retained=len(outcome.retained_files),
    )
    return outcome


def run_doctor(installer: FeatureInstaller) -> list[FeatureHealth]:
    """Check that every recorded file of every installed feature still exists."""
    reports = []
    for feature_id, record in sorted(installer.config.installed_features.items()):
        feature = installer.registry.get_feature(feature_id)
        missing = [
            rel_path
            for rel_path in record.files
            if not installer.files.exists(installer.layout.absolute(rel_path))
        ]
        reports.append(
            FeatureHealth(
                feature_id=feature_id,
                installed_version=record.version,
                catalog_version=feature.version if feature else None,
                missing_files=missing,
            )
        )
    return reports
