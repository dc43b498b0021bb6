"""
Feature installer.

Conflict analysis, staged installation (schema, migration, function,
seed, persist), dependency-aware installation, uninstall and doctor.
"""

from supafeatures.installer.core import FeatureInstaller
from supafeatures.installer.decisions import Action, decide
from supafeatures.installer.dependencies import (
    ConflictResolver,
    DependencyConflictPolicy,
    DependencyInstallError,
    install_with_dependencies,
    missing_dependencies,
    resolve_conflicts,
)
from supafeatures.installer.maintenance import (
    FeatureHealth,
    UninstallOutcome,
    run_doctor,
    uninstall_feature,
)
from supafeatures.installer.models import (
    ArtifactKind,
    ConflictCandidate,
    DependencyCheck,
    InstallationOutcome,
    Resolution,
    annotate,
)
from supafeatures.installer.paths import ProjectLayout, apply_prefix

__all__ = [
    "Action",
    "ArtifactKind",
    "ConflictCandidate",
    "ConflictResolver",
    "DependencyCheck",
    "DependencyConflictPolicy",
    "DependencyInstallError",
    "FeatureHealth",
    "FeatureInstaller",
    "InstallationOutcome",
    "ProjectLayout",
    "Resolution",
    "UninstallOutcome",
    "annotate",
    "apply_prefix",
    "decide",
    "install_with_dependencies",
    "missing_dependencies",
    "resolve_conflicts",
    "run_doctor",
    "uninstall_feature",
]
