"""Collect the per-project settings once a template is chosen."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from createkit.prompts.prompter import Choice, Prompter
from createkit.templates.metadata import TemplateMetadata, TemplateVariable
from createkit.templates.resolver import TemplateSource

PACKAGE_MANAGERS = ("npm", "yarn", "pnpm", "bun")
SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")

FEATURE_LABELS = {
    "eslint": "ESLint",
    "prettier": "Prettier",
    "vitest": "Vitest",
    "typescript": "TypeScript config",
}
DEFAULT_OPTIONAL_FEATURES = ["eslint", "prettier", "vitest"]

# builtin template -> features offered in the multi-select
TEMPLATE_FEATURES: dict[str, list[str]] = {
    "default": DEFAULT_OPTIONAL_FEATURES,
    "library": DEFAULT_OPTIONAL_FEATURES,
    "cli": DEFAULT_OPTIONAL_FEATURES,
    "node": DEFAULT_OPTIONAL_FEATURES,
    "react": DEFAULT_OPTIONAL_FEATURES,
}


class ProjectCustomization(BaseModel):
    description: str = Field(default="")
    author: str = Field(default="")
    version: str = Field(default="0.1.0")
    package_manager: str = Field(default="npm")
    output_dir: Path
    features: list[str] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict, description="Answers to the template's variables")


def optional_features(template: TemplateSource) -> list[str]:
    """Features offered for *template*; custom templates get the generic set."""
    if template.type == "builtin":
        return TEMPLATE_FEATURES.get(template.location, DEFAULT_OPTIONAL_FEATURES)
    return DEFAULT_OPTIONAL_FEATURES


def semver_error(value: str) -> str | None:
    if SEMVER_RE.match(value):
        return None
    return f"Version must be valid semver (e.g., 1.0.0), got {value!r}"


def validate_customization(customization: ProjectCustomization) -> list[str]:
    """Return every problem with *customization*; empty means valid."""
    errors: list[str] = []
    if (error := semver_error(customization.version)) is not None:
        errors.append(error)
    if customization.package_manager not in PACKAGE_MANAGERS:
        errors.append(
            f"Unsupported package manager {customization.package_manager!r} "
            f"(expected one of: {', '.join(PACKAGE_MANAGERS)})"
        )
    if not str(customization.output_dir).strip():
        errors.append("Output directory is required")
    known = set(FEATURE_LABELS)
    for feature in customization.features:
        if feature not in known:
            errors.append(f"Unknown feature: {feature}")
    return errors


def customize_project(
    prompter: Prompter,
    template: TemplateSource,
    defaults: ProjectCustomization,
    metadata: TemplateMetadata | None = None,
) -> ProjectCustomization:
    """Ask for each setting, pre-filled from *defaults*."""
    description = prompter.text("Project description", default=defaults.description)
    author = prompter.text("Author", default=defaults.author)
    version = prompter.text("Version", default=defaults.version, validate=semver_error)
    package_manager = prompter.select(
        "Package manager",
        [Choice(value=pm, label=pm) for pm in PACKAGE_MANAGERS],
        default=defaults.package_manager,
    )
    output_dir = prompter.text(
        "Output directory",
        default=str(defaults.output_dir),
        validate=lambda v: None if v else "Output directory is required",
    )

    offered = optional_features(template)
    features = prompter.multiselect(
        "Additional features",
        [Choice(value=name, label=FEATURE_LABELS.get(name, name)) for name in offered],
        defaults=[f for f in defaults.features if f in offered],
    )

    variables = collect_variables(prompter, metadata, defaults.variables)
    return ProjectCustomization(
        description=description,
        author=author,
        version=version,
        package_manager=package_manager,
        output_dir=Path(output_dir),
        features=features,
        variables=variables,
    )


def collect_variables(
    prompter: Prompter,
    metadata: TemplateMetadata | None,
    preset: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Ask for each template variable not already in *preset*."""
    values = dict(preset or {})
    for variable in (metadata.variables or []) if metadata else []:
        if variable.name not in values:
            values[variable.name] = _ask_variable(prompter, variable)
    return values


def _ask_variable(prompter: Prompter, variable: TemplateVariable) -> Any:
    label = variable.description or variable.name
    match variable.type:
        case "boolean":
            return prompter.confirm(label, default=bool(variable.default))
        case "select":
            options = variable.options or []
            return prompter.select(
                label,
                [Choice(value=o, label=o) for o in options],
                default=variable.default if variable.default in options else None,
            )
        case "number":
            answer = prompter.text(
                label,
                default=None if variable.default is None else str(variable.default),
                validate=lambda v: None if _is_number(v) else "Please enter a number",
            )
            number = float(answer)
            return int(number) if number.is_integer() else number
        case _:
            return prompter.text(
                label,
                default=None if variable.default is None else str(variable.default),
                validate=lambda v: _string_error(variable, v),
            )


def _string_error(variable: TemplateVariable, value: str) -> str | None:
    if not value:
        return f"{variable.name} is required" if variable.required else None
    if variable.pattern and re.fullmatch(variable.pattern, value) is None:
        return f"{variable.name} must match {variable.pattern}"
    return None


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True
