"""Tests for per-artifact install decisions."""

import pytest

from supafeatures.installer import Action, ArtifactKind, Resolution, decide
from supafeatures.installer.decisions import FUNCTION_DECISIONS, SCHEMA_DECISIONS


class TestSchemaDecisions:
    """Schema files are copied unless explicitly skipped."""

    @pytest.mark.parametrize(
        ("exists", "resolution", "expected"),
        [
            (False, None, Action.COPY),
            (False, Resolution.OVERWRITE, Action.COPY),
            (False, Resolution.SKIP, Action.SKIP),
            (True, None, Action.COPY),
            (True, Resolution.OVERWRITE, Action.COPY),
            (True, Resolution.SKIP, Action.SKIP),
        ],
    )
    def test_decision(
        self, exists: bool, resolution: Resolution | None, expected: Action
    ) -> None:
        """Test every (exists, resolution) combination."""
        assert decide(ArtifactKind.SCHEMA, exists, resolution) is expected


class TestFunctionDecisions:
    """Function directories are scaffolded only when new."""

    @pytest.mark.parametrize(
        ("exists", "resolution", "expected"),
        [
            (False, None, Action.SCAFFOLD_AND_COPY),
            (False, Resolution.OVERWRITE, Action.SCAFFOLD_AND_COPY),
            (False, Resolution.SKIP, Action.SKIP),
            (True, None, Action.SKIP),
            (True, Resolution.OVERWRITE, Action.COPY),
            (True, Resolution.SKIP, Action.SKIP),
        ],
    )
    def test_decision(
        self, exists: bool, resolution: Resolution | None, expected: Action
    ) -> None:
        """Test every (exists, resolution) combination."""
        assert decide(ArtifactKind.FUNCTION, exists, resolution) is expected


def test_tables_are_complete() -> None:
    """Every combination is listed explicitly."""
    keys = {(e, r) for e in (False, True) for r in (None, *Resolution)}
    assert set(SCHEMA_DECISIONS) == keys
    assert set(FUNCTION_DECISIONS) == keys


@pytest.mark.parametrize("kind", [ArtifactKind.MIGRATION, ArtifactKind.SEED])
def test_non_conflicting_kinds(kind: ArtifactKind) -> None:
    """Migrations and seeds have no decision table."""
    with pytest.raises(ValueError, match="No conflict decisions"):
        decide(kind, True, Resolution.OVERWRITE)
