"""Scaffold tool contract and the Supabase CLI implementation."""

from supafeatures.scaffold.base import ScaffoldTool
from supafeatures.scaffold.supabase import SupabaseCLI, find_supabase_cli

__all__ = ["ScaffoldTool", "SupabaseCLI", "find_supabase_cli"]
