"""
Shared seed file blocks.

Every feature's seeds live in one block of the shared seed file,
delimited by BEGIN/END marker comments carrying the feature id.
"""

import re
from collections.abc import Iterable


def begin_marker(feature_id: str) -> str:
    return f"-- BEGIN: {feature_id} seeds"


def end_marker(feature_id: str) -> str:
    return f"-- END: {feature_id} seeds"


def has_seed_block(content: str, feature_id: str) -> bool:
    """Whether the shared seed content already holds the feature's block."""
    return begin_marker(feature_id) in content


def build_seed_block(feature_id: str, sources: Iterable[tuple[str, str]]) -> str:
    """
    Build the seed block for a feature.

    Args:
        feature_id: Feature the block belongs to.
        sources: (source file name, content) pairs in install order.

    Returns:
        Block text starting with a blank line and ending with a newline.
    """
    parts = [f"\n{begin_marker(feature_id)}\n"]
    for name, content in sources:
        parts.append(f"-- From: {name}\n")
        parts.append(content.rstrip("\r\n") + "\n")
        parts.append("\n")
    parts.append(f"{end_marker(feature_id)}\n")
    return "".join(parts)


def strip_seed_block(content: str, feature_id: str) -> str:
    """Remove the feature's block (and the blank line before it)."""
    pattern = re.compile(
        r"\n?"
        + re.escape(begin_marker(feature_id))
        + r"\n.*?"
        + re.escape(end_marker(feature_id))
        + r"\n?",
        re.DOTALL,
    )
    return pattern.sub("", content, count=1)
