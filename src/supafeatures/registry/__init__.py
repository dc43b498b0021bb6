"""
Feature registry.

Loads the feature manifest, validates it (required fields, known
dependencies, no cycles), resolves dependency closures and scaffolds
new catalog features.
"""

from supafeatures.registry.authoring import ScaffoldedFeature, create_feature
from supafeatures.registry.core import (
    DEFAULT_CATALOG_DIR,
    FeatureRegistry,
    find_cycle,
    load_registry,
    validate_manifest,
)
from supafeatures.registry.models import FeatureDescriptor

__all__ = [
    "DEFAULT_CATALOG_DIR",
    "FeatureDescriptor",
    "FeatureRegistry",
    "ScaffoldedFeature",
    "create_feature",
    "find_cycle",
    "load_registry",
    "validate_manifest",
]
