"""
Supafeatures: feature installer for Supabase projects.

This package resolves feature dependencies, analyzes file conflicts and
installs schema, migration, edge function and seed templates into a
Supabase project while tracking what was installed.
"""

from importlib.metadata import version

__version__ = version("supafeatures")

__all__ = ["__version__"]
