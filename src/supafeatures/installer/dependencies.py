"""
Installing a feature together with its missing dependencies.

Missing dependencies are installed one at a time, in resolution order,
each through the full install procedure, before the requested feature.
"""

from collections.abc import Callable
from enum import Enum

from supafeatures.errors import DependencyError
from supafeatures.installer.core import FeatureInstaller
from supafeatures.installer.models import (
    ConflictCandidate,
    InstallationOutcome,
    Resolution,
    annotate,
)
from supafeatures.utils.logging import get_logger

log = get_logger(__name__)

ConflictResolver = Callable[[str, list[ConflictCandidate]], list[ConflictCandidate]]
OutcomeCallback = Callable[[InstallationOutcome], None]


class DependencyConflictPolicy(str, Enum):
    """How conflicts of automatically installed dependencies are resolved."""

    OVERWRITE = "overwrite"
    SKIP = "skip"
    PROMPT = "prompt"


class DependencyInstallError(DependencyError):
    """A dependency installed with errors; the requested feature was not installed."""

    def __init__(self, feature_id: str, outcomes: list[InstallationOutcome]) -> None:
        failed = outcomes[-1]
        super().__init__(
            f"Failed to install dependency '{failed.feature_id}' of '{feature_id}': "
            + "; ".join(failed.errors)
        )
        self.feature_id = feature_id
        self.outcomes = outcomes


def missing_dependencies(installer: FeatureInstaller, feature_id: str) -> list[str]:
    """
    Transitive dependencies of feature_id that are not installed.

    Returns:
        Feature ids in installation order, excluding feature_id itself.
    """
    installed = installer.config.installed_ids
    closure = installer.registry.resolve_dependencies(feature_id)
    return [dep for dep in closure[:-1] if dep not in installed]


def resolve_conflicts(
    feature_id: str,
    conflicts: list[ConflictCandidate],
    resolver: ConflictResolver | None,
) -> list[ConflictCandidate]:
    """Ask resolver to annotate conflicts; without one, everything is skipped."""
    if not conflicts:
        return []
    if resolver is None:
        return annotate(conflicts, Resolution.SKIP)
    return resolver(feature_id, conflicts)


def install_with_dependencies(
    installer: FeatureInstaller,
    feature_id: str,
    resolver: ConflictResolver | None = None,
    *,
    policy: DependencyConflictPolicy = DependencyConflictPolicy.OVERWRITE,
    on_outcome: OutcomeCallback | None = None,
) -> list[InstallationOutcome]:
    """
    Install feature_id after installing its missing dependencies.

    Args:
        installer: Installer for the target project.
        feature_id: Feature to install.
        resolver: Annotates conflicts of feature_id (and of dependencies
            when policy is PROMPT).
        policy: Resolution applied to every dependency conflict.
        on_outcome: Called after each individual install.

    Returns:
        Outcomes in installation order; the last one is feature_id's.

    Raises:
        NotFoundError: If feature_id is unknown.
        ToolUnavailableError: If the scaffold tool is missing.
        DependencyInstallError: If a dependency installed with errors.
    """
    installer.ensure_scaffold_available()
    outcomes: list[InstallationOutcome] = []

    for dep in missing_dependencies(installer, feature_id):
        conflicts = installer.analyze_conflicts(dep)
        if policy is DependencyConflictPolicy.PROMPT:
            resolutions = resolve_conflicts(dep, conflicts, resolver)
        else:
            resolutions = annotate(conflicts, Resolution(policy.value))
        log.info("Installing dependency", feature=dep, required_by=feature_id)

        outcome = installer.install_feature(dep, resolutions)
        outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)
        if not outcome.success:
            raise DependencyInstallError(feature_id, outcomes)

    conflicts = installer.analyze_conflicts(feature_id)
    outcome = installer.install_feature(
        feature_id, resolve_conflicts(feature_id, conflicts, resolver)
    )
    outcomes.append(outcome)
    if on_outcome is not None:
        on_outcome(outcome)
    return outcomes
