"""
Feature installation.

Installs one feature in fixed stages: schema, migration, function, seed,
then persists the installation record. Every stage runs even if an earlier
one failed; item failures are collected into the outcome and never stop
the enumeration of a stage.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from supafeatures.config import ConfigStore, InstalledFeatureRecord
from supafeatures.errors import (
    NotFoundError,
    PersistError,
    ScaffoldError,
    StageItemError,
    ToolUnavailableError,
)
from supafeatures.installer.decisions import Action, decide
from supafeatures.installer.models import (
    ArtifactKind,
    ConflictCandidate,
    DependencyCheck,
    InstallationOutcome,
    Resolution,
    resolution_map,
)
from supafeatures.installer.paths import (
    FUNCTIONS_DIR,
    MIGRATIONS_DIR,
    SCHEMAS_DIR,
    SEED_DIR,
    ProjectLayout,
)
from supafeatures.installer.seeds import build_seed_block, has_seed_block
from supafeatures.registry import FeatureDescriptor, FeatureRegistry
from supafeatures.scaffold import ScaffoldTool
from supafeatures.storage import FileStore, LocalFileStore
from supafeatures.utils.logging import get_logger, log_context

log = get_logger(__name__)

# Failures that belong to a single stage item
ITEM_ERRORS = (OSError, UnicodeError, ScaffoldError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeatureInstaller:
    """
    Installs features from a registry into one project.

    Attributes:
        registry: Validated feature registry.
        config: Project configuration and installation records.
        scaffold: Tool creating migration and function artifacts.
        files: File primitives.
        layout: Target path construction for this project.
    """

    def __init__(
        self,
        registry: FeatureRegistry,
        config: ConfigStore,
        scaffold: ScaffoldTool,
        file_store: FileStore | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.registry = registry
        self.config = config
        self.scaffold = scaffold
        self.files = file_store or LocalFileStore()
        self.layout = ProjectLayout(config.project_root, config.source_dir, config.prefix)
        self._clock = clock
        self._scaffold_checked = False

    def ensure_scaffold_available(self) -> None:
        """
        Check the scaffold tool once per installer.

        Raises:
            ToolUnavailableError: If the tool cannot be invoked.
        """
        if self._scaffold_checked:
            return
        if not self.scaffold.is_available():
            msg = "Scaffold tool is not available; install the Supabase CLI first"
            raise ToolUnavailableError(msg)
        self._scaffold_checked = True

    def feature_dir(self, feature_id: str) -> Path:
        """
        Template directory of a known feature.

        Raises:
            NotFoundError: If the feature or its directory is missing.
        """
        self.registry.require_feature(feature_id)
        if not self.registry.feature_exists(feature_id):
            msg = f"Feature directory not found: {self.registry.feature_path(feature_id)}"
            raise NotFoundError(feature_id, msg)
        return self.registry.feature_path(feature_id)

    # --- Template enumeration ---

    def _schema_templates(self, feature_dir: Path) -> list[tuple[Path, PurePosixPath]]:
        root = feature_dir / SCHEMAS_DIR
        return [
            (path, PurePosixPath(path.relative_to(root).as_posix()))
            for path in self.files.list_files(root)
        ]

    def _migration_templates(self, feature_dir: Path) -> list[Path]:
        root = feature_dir / MIGRATIONS_DIR
        return [p for p in self.files.list_files(root, recursive=False) if p.suffix == ".sql"]

    def _function_templates(self, feature_dir: Path) -> list[Path]:
        return self.files.list_dirs(feature_dir / FUNCTIONS_DIR)

    def _seed_templates(self, feature_dir: Path) -> list[Path]:
        root = feature_dir / SEED_DIR
        return [p for p in self.files.list_files(root, recursive=False) if p.suffix == ".sql"]

    def has_schemas(self, feature_id: str) -> bool:
        return bool(self._schema_templates(self.registry.feature_path(feature_id)))

    def has_migrations(self, feature_id: str) -> bool:
        return bool(self._migration_templates(self.registry.feature_path(feature_id)))

    def has_functions(self, feature_id: str) -> bool:
        return bool(self._function_templates(self.registry.feature_path(feature_id)))

    def has_seeds(self, feature_id: str) -> bool:
        return bool(self._seed_templates(self.registry.feature_path(feature_id)))

    # --- Analysis ---

    def check_dependencies(self, feature_id: str) -> DependencyCheck:
        """
        Check which direct dependencies are not installed.

        Raises:
            NotFoundError: If feature_id is unknown.
        """
        feature = self.registry.require_feature(feature_id)
        installed = self.config.installed_ids
        missing = [dep for dep in feature.dependencies if dep not in installed]
        return DependencyCheck(satisfied=not missing, missing=missing)

    def analyze_conflicts(self, feature_id: str) -> list[ConflictCandidate]:
        """
        Find schema files and function directories whose targets exist.

        Migrations always create new files and seeds deduplicate
        themselves, so neither can conflict.

        Returns:
            One candidate per existing target, unresolved.
        """
        feature_dir = self.feature_dir(feature_id)
        conflicts: list[ConflictCandidate] = []

        for _, relative in self._schema_templates(feature_dir):
            target = self.layout.schema_target(relative)
            if self.files.file_exists(target):
                conflicts.append(ConflictCandidate(self.layout.relative(target)))

        for template_dir in self._function_templates(feature_dir):
            target = self.layout.function_target(template_dir.name)
            if self.files.dir_exists(target):
                conflicts.append(ConflictCandidate(self.layout.relative(target)))

        log.debug("Analyzed conflicts", feature=feature_id, n_conflicts=len(conflicts))
        return conflicts

    # --- Installation ---

    def install_feature(
        self,
        feature_id: str,
        resolutions: Iterable[ConflictCandidate] = (),
    ) -> InstallationOutcome:
        """
        Install a feature.

        Args:
            feature_id: Feature to install.
            resolutions: Conflict candidates annotated by the caller. A
                candidate without a resolution counts as skip.

        Returns:
            Outcome listing installed and skipped paths and any errors.

        Raises:
            NotFoundError: If the feature or its template directory is
                missing.
            ToolUnavailableError: If the scaffold tool is missing.
        """
        feature = self.registry.require_feature(feature_id)
        feature_dir = self.feature_dir(feature_id)
        self.ensure_scaffold_available()

        decisions = resolution_map(resolutions)
        outcome = InstallationOutcome(feature_id=feature_id)

        with log_context(feature=feature_id):
            log.info("Installing feature", version=feature.version)
            self._install_schemas(feature_dir, decisions, outcome)
            self._install_migrations(feature_dir, outcome)
            self._install_functions(feature_dir, decisions, outcome)
            self._install_seeds(feature, feature_dir, outcome)
            self._persist(feature, outcome)
            log.info(
                "Feature installation finished",
                success=outcome.success,
                n_installed=len(outcome.installed_files),
                n_skipped=len(outcome.skipped_files),
                n_errors=len(outcome.errors),
            )

        return outcome

    def _record_error(
        self,
        outcome: InstallationOutcome,
        kind: ArtifactKind,
        item: str,
        error: BaseException,
    ) -> None:
        stage_error = StageItemError(kind.value, item, error)
        log.error("Stage item failed", stage=kind.value, item=item, error=str(error))
        outcome.errors.append(str(stage_error))

    def _install_schemas(
        self,
        feature_dir: Path,
        decisions: dict[str, Resolution],
        outcome: InstallationOutcome,
    ) -> None:
        for template, relative in self._schema_templates(feature_dir):
            target = self.layout.schema_target(relative)
            rel_target = self.layout.relative(target)
            try:
                action = decide(
                    ArtifactKind.SCHEMA,
                    self.files.file_exists(target),
                    decisions.get(rel_target),
                )
                if action is Action.SKIP:
                    log.info("Skipped schema", path=rel_target)
                    outcome.skipped_files.append(rel_target)
                    continue
                self.files.copy_file(template, target, overwrite=True)
                outcome.installed_files.append(rel_target)
                log.info("Installed schema", path=rel_target)
            except ITEM_ERRORS as e:
                self._record_error(outcome, ArtifactKind.SCHEMA, template.name, e)

    def _install_migrations(self, feature_dir: Path, outcome: InstallationOutcome) -> None:
        # Migrations are append-only: always a new artifact, never an edit
        for template in self._migration_templates(feature_dir):
            try:
                content = self.files.read_text(template)
                artifact = self.scaffold.create_migration_artifact(
                    self.layout.migration_name(template)
                )
                self.files.write_text(artifact, content)
                rel_artifact = self.layout.relative(artifact)
                outcome.installed_files.append(rel_artifact)
                log.info("Installed migration", path=rel_artifact, template=template.name)
            except ITEM_ERRORS as e:
                self._record_error(outcome, ArtifactKind.MIGRATION, template.name, e)

    def _install_functions(
        self,
        feature_dir: Path,
        decisions: dict[str, Resolution],
        outcome: InstallationOutcome,
    ) -> None:
        for template_dir in self._function_templates(feature_dir):
            target = self.layout.function_target(template_dir.name)
            rel_target = self.layout.relative(target)
            try:
                action = decide(
                    ArtifactKind.FUNCTION,
                    self.files.dir_exists(target),
                    decisions.get(rel_target),
                )
                if action is Action.SKIP:
                    log.info("Skipped function", path=rel_target)
                    outcome.skipped_files.append(rel_target)
                    continue
                if action is Action.SCAFFOLD_AND_COPY:
                    self.scaffold.create_function_scaffold(
                        self.layout.function_name(template_dir.name)
                    )
                for source in self.files.list_files(template_dir):
                    dest = target / source.relative_to(template_dir)
                    self.files.copy_file(source, dest, overwrite=True)
                    outcome.installed_files.append(self.layout.relative(dest))
                log.info("Installed function", path=rel_target, action=action.value)
            except ITEM_ERRORS as e:
                self._record_error(outcome, ArtifactKind.FUNCTION, template_dir.name, e)

    def _install_seeds(
        self,
        feature: FeatureDescriptor,
        feature_dir: Path,
        outcome: InstallationOutcome,
    ) -> None:
        templates = self._seed_templates(feature_dir)
        if not templates:
            return

        seed_path = self.layout.seed_path
        rel_seed = self.layout.relative(seed_path)
        try:
            existing = (
                self.files.read_text(seed_path) if self.files.file_exists(seed_path) else ""
            )
        except ITEM_ERRORS as e:
            self._record_error(outcome, ArtifactKind.SEED, rel_seed, e)
            return

        if has_seed_block(existing, feature.id):
            log.info("Seeds already installed", path=rel_seed)
            return

        sources: list[tuple[str, str]] = []
        for template in templates:
            try:
                sources.append((template.name, self.files.read_text(template)))
            except ITEM_ERRORS as e:
                self._record_error(outcome, ArtifactKind.SEED, template.name, e)

        # A partial block would mark the seeds installed and block retries
        if len(sources) != len(templates):
            log.warning("Seed block not written", path=rel_seed)
            return

        try:
            self.files.write_text(seed_path, existing + build_seed_block(feature.id, sources))
            outcome.installed_files.append(rel_seed)
            log.info("Installed seeds", path=rel_seed, n_sources=len(sources))
        except ITEM_ERRORS as e:
            self._record_error(outcome, ArtifactKind.SEED, rel_seed, e)

    def _persist(self, feature: FeatureDescriptor, outcome: InstallationOutcome) -> None:
        record = InstalledFeatureRecord(
            version=feature.version,
            installed_at=self._clock(),
            files=list(outcome.installed_files),
        )
        try:
            self.config.persist(feature.id, record)
        except PersistError as e:
            log.error("Failed to persist installation record", error=str(e))
            outcome.errors.append(str(e))
