"""createkit commands -- the ``create`` and ``add`` flows."""

from createkit.commands.add import AddFeatureOptions, add_feature_to_project, list_available_features
from createkit.commands.create import CreateOptions, create_project

__all__ = [
    "AddFeatureOptions",
    "CreateOptions",
    "add_feature_to_project",
    "create_project",
    "list_available_features",
]
