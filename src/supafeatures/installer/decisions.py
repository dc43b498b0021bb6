"""
Per-artifact install decisions.

Each table maps (target exists on disk, resolution) to an action, with
every combination listed. ``None`` means the caller gave no resolution
for that path at all.
"""

from enum import Enum

from supafeatures.installer.models import ArtifactKind, Resolution


class Action(str, Enum):
    """What the installer does with one schema file or function directory."""

    COPY = "copy"
    SCAFFOLD_AND_COPY = "scaffold_and_copy"
    SKIP = "skip"


DecisionKey = tuple[bool, Resolution | None]

SCHEMA_DECISIONS: dict[DecisionKey, Action] = {
    (False, None): Action.COPY,
    (False, Resolution.OVERWRITE): Action.COPY,
    (False, Resolution.SKIP): Action.SKIP,
    (True, None): Action.COPY,
    (True, Resolution.OVERWRITE): Action.COPY,
    (True, Resolution.SKIP): Action.SKIP,
}

FUNCTION_DECISIONS: dict[DecisionKey, Action] = {
    (False, None): Action.SCAFFOLD_AND_COPY,
    (False, Resolution.OVERWRITE): Action.SCAFFOLD_AND_COPY,
    (False, Resolution.SKIP): Action.SKIP,
    # Existing functions are only replaced on an explicit overwrite
    (True, None): Action.SKIP,
    (True, Resolution.OVERWRITE): Action.COPY,
    (True, Resolution.SKIP): Action.SKIP,
}

DECISION_TABLES: dict[ArtifactKind, dict[DecisionKey, Action]] = {
    ArtifactKind.SCHEMA: SCHEMA_DECISIONS,
    ArtifactKind.FUNCTION: FUNCTION_DECISIONS,
}


def decide(
    kind: ArtifactKind, exists_on_disk: bool, resolution: Resolution | None
) -> Action:
    """
    Look up the action for one artifact.

    Raises:
        ValueError: For artifact kinds that never conflict (migrations
            and seeds).
    """
    table = DECISION_TABLES.get(kind)
    if table is None:
        msg = f"No conflict decisions for {kind.value} artifacts"
        raise ValueError(msg)
    return table[(exists_on_disk, resolution)]
