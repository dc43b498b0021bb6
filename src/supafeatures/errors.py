"""
Exception hierarchy for supafeatures.

Fatal errors (validation, lookup, missing tooling, persistence) are raised
to the caller. Stage item errors are collected into installation outcomes
and never interrupt a stage.
"""


class SupafeaturesError(Exception):
    """Base class for all supafeatures errors."""


class ValidationError(SupafeaturesError):
    """Feature manifest is malformed or contains a dependency cycle."""

    def __init__(self, message: str, *, feature_id: str | None = None) -> None:
        super().__init__(message)
        self.feature_id = feature_id


class NotFoundError(SupafeaturesError):
    """Unknown feature id or missing feature template directory."""

    def __init__(self, feature_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Feature '{feature_id}' not found")
        self.feature_id = feature_id


class ToolUnavailableError(SupafeaturesError):
    """Scaffold tool is missing; raised before any stage begins."""


class ScaffoldError(SupafeaturesError):
    """Scaffold tool invocation failed."""


class StageItemError(SupafeaturesError):
    """One artifact of one installation stage failed."""

    def __init__(self, stage: str, item: str, cause: BaseException) -> None:
        super().__init__(f"Failed to install {stage} {item}: {cause}")
        self.stage = stage
        self.item = item
        self.cause = cause


class PersistError(SupafeaturesError):
    """Installation state could not be written."""


class ConfigError(SupafeaturesError):
    """Project configuration file is missing or invalid."""


class DependencyError(SupafeaturesError):
    """Dependency installation failed or removal is blocked by dependents."""
