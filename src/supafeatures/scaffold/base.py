"""Scaffold tool contract."""

from abc import ABC, abstractmethod
from pathlib import Path


class ScaffoldTool(ABC):
    """
    Creates canonically named migration and function artifacts.

    Implementations raise ScaffoldError on any failure; the installer
    records it against the artifact being installed.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the tool can be invoked at all."""
        ...

    @abstractmethod
    def create_migration_artifact(self, name: str) -> Path:
        """
        Create a new, empty migration.

        Args:
            name: Migration name without timestamp or extension.

        Returns:
            Absolute path to the created file. Its name starts with a
            monotonically sortable identifier and never collides with an
            existing migration.
        """
        ...

    @abstractmethod
    def create_function_scaffold(self, name: str) -> None:
        """Create a function directory with boilerplate."""
        ...
