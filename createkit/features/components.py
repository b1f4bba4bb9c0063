"""Generate React or Vue components inside ``src/``.

Options:
    name: PascalCase component name (required).
    path: Directory under ``src/`` (default ``components``).
    withTest: Also write a test file (default true).
    withStory: Also write a Storybook story, React only (default false).
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

from createkit.errors import CreateError, ErrorCode
from createkit.features.common import FeatureContext, FeatureOutcome, render_snippet, write_project_file
from createkit.templates.renderer import is_pascal_case


def _truthy(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def component_options(context: FeatureContext) -> tuple[str, str, bool, bool]:
    """Validate and return ``(name, path, with_test, with_story)``.

    Raises:
        CreateError: ``VALIDATION_FAILED`` for a missing or non-PascalCase
            name, or a path that leaves ``src/``.
    """
    name = str(context.options.get("name") or "")
    if not name:
        raise CreateError(
            ErrorCode.VALIDATION_FAILED,
            "Component name is required. Use --option name=MyComponent",
        )
    if not is_pascal_case(name):
        raise CreateError(
            ErrorCode.VALIDATION_FAILED,
            f"Component name must be PascalCase (e.g., MyComponent), got {name!r}",
        )
    path = str(context.options.get("path") or "components").strip("/")
    if ".." in PurePosixPath(path).parts:
        raise CreateError(
            ErrorCode.PATH_TRAVERSAL_ATTEMPT, f"Component path must stay inside src/: {path}"
        )
    with_test = _truthy(context.options.get("withTest"), True)
    with_story = _truthy(context.options.get("withStory"), False)
    return name, path, with_test, with_story


def _files(context: FeatureContext) -> dict[str, str]:
    """Map of project-relative file path to snippet template."""
    name, path, with_test, with_story = component_options(context)
    base = f"src/{path}/{name}"
    ext = "tsx" if context.is_typescript else "jsx"
    script_ext = "ts" if context.is_typescript else "js"

    if context.feature_name == "vue-component":
        files = {f"{base}/{name}.vue": "vue-component.vue.j2"}
        if with_test:
            files[f"{base}/{name}.test.{script_ext}"] = "vue-component.test.j2"
        return files

    files = {
        f"{base}/{name}.{ext}": "react-component.tsx.j2",
        f"{base}/index.{script_ext}": "component-index.j2",
    }
    if with_test:
        files[f"{base}/{name}.test.{ext}"] = "react-component.test.tsx.j2"
    if with_story:
        files[f"{base}/{name}.stories.{ext}"] = "react-component.stories.tsx.j2"
    return files


def planned_files(context: FeatureContext) -> list[str]:
    return list(_files(context))


async def apply(context: FeatureContext) -> FeatureOutcome:
    outcome = FeatureOutcome()
    name = component_options(context)[0]
    files = _files(context)

    first = next(iter(files))
    if context.path(first).exists():
        raise CreateError(
            ErrorCode.DIRECTORY_EXISTS,
            f"Component {name} already exists at {first}",
        )

    for relative, snippet in files.items():
        await write_project_file(context, relative, render_snippet(snippet, context, name=name), outcome)
    return outcome
