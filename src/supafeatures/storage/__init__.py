"""File primitives used by the installer."""

from supafeatures.storage.files import FileStore, LocalFileStore

__all__ = ["FileStore", "LocalFileStore"]
