"""createkit features -- idempotent modifications of an existing project.

Quick usage::

    from createkit.features import FeatureContext, default_registry
    from createkit.project_detection import analyze_project

    context = FeatureContext(target_dir=path, project_info=analyze_project(path), dry_run=True)
    await default_registry.add_feature("typescript", context)
"""

from createkit.features.common import FeatureContext, FeatureOutcome
from createkit.features.registry import (
    FeatureInfo,
    FeatureOption,
    FeatureRegistry,
    build_default_registry,
    default_registry,
)

__all__ = [
    "FeatureContext",
    "FeatureInfo",
    "FeatureOption",
    "FeatureOutcome",
    "FeatureRegistry",
    "build_default_registry",
    "default_registry",
]
