"""Feature registry and dispatch.

A feature is a named, idempotent modification of an existing project (add a
TypeScript config, add Vitest, generate a component).  ``FeatureRegistry``
holds the catalogue and ``add_feature`` dispatches to the handler after
checking, before anything is touched, that the feature exists and supports the
detected project type.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field
from rich.table import Table

from createkit.errors import CreateError, ErrorCode
from createkit.features import components, eslint, prettier, typescript, vitest
from createkit.features.common import FeatureContext, FeatureOutcome
from createkit.features.package_json import install_dependencies
from createkit.utils import console, print_info

FeatureCategory = Literal["configuration", "linting", "testing", "component"]

ALL_PROJECT_TYPES = ["typescript", "javascript", "react", "vue", "node"]


class FeatureOption(BaseModel):
    name: str
    description: str
    type: Literal["string", "boolean"] = "string"
    required: bool = False
    default: Any = None


class FeatureInfo(BaseModel):
    """Catalogue entry describing a feature."""

    name: str
    description: str
    category: FeatureCategory
    dev_dependencies: list[str] = Field(default_factory=list)
    supported_frameworks: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    options: list[FeatureOption] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


Handler = Callable[[FeatureContext], Awaitable[FeatureOutcome]]
Planner = Callable[[FeatureContext], list[str]]


@dataclass
class Feature:
    info: FeatureInfo
    apply: Handler
    plan: Planner


class FeatureRegistry:
    """Name-to-handler catalogue of features."""

    def __init__(self) -> None:
        self._features: dict[str, Feature] = {}

    def register(self, info: FeatureInfo, apply: Handler, plan: Planner) -> None:
        self._features[info.name] = Feature(info=info, apply=apply, plan=plan)

    def get(self, name: str) -> FeatureInfo | None:
        feature = self._features.get(name)
        return feature.info if feature else None

    def available(self) -> list[FeatureInfo]:
        return [feature.info for feature in self._features.values()]

    def names(self) -> list[str]:
        return list(self._features)

    def is_supported(self, name: str, project_type: str) -> bool:
        """Whether *name* exists and can be applied to *project_type*.

        An empty ``supported_frameworks`` list means every type is supported.
        """
        info = self.get(name)
        if info is None:
            return False
        return not info.supported_frameworks or project_type in info.supported_frameworks

    def by_category(self, category: FeatureCategory) -> list[FeatureInfo]:
        return [info for info in self.available() if info.category == category]

    def names_for_framework(self, project_type: str) -> list[str]:
        return [info.name for info in self.available() if self.is_supported(info.name, project_type)]

    def check(self, name: str, project_type: str) -> FeatureInfo:
        """Return the feature info or raise before any side effect.

        Raises:
            CreateError: ``VALIDATION_FAILED`` for unknown or unsupported
                features.
        """
        info = self.get(name)
        if info is None:
            raise CreateError(
                ErrorCode.VALIDATION_FAILED,
                f"Unknown feature: {name}",
                details=[f"Available features: {', '.join(self.names())}"],
            )
        if not self.is_supported(name, project_type):
            raise CreateError(
                ErrorCode.VALIDATION_FAILED,
                f'Feature "{name}" is not supported for {project_type} projects',
                details=[f"Supported: {', '.join(info.supported_frameworks)}"],
            )
        return info

    def planned_files(self, name: str, context: FeatureContext) -> list[str]:
        """Project-relative paths the feature will create or modify."""
        self.check(name, context.project_info.type)
        return self._features[name].plan(self._bind(name, context))

    async def add_feature(self, name: str, context: FeatureContext) -> FeatureOutcome:
        """Apply feature *name* to the project described by *context*.

        Dependencies are installed afterwards only when something was added,
        ``context.install`` is set and this is not a dry run.
        """
        self.check(name, context.project_info.type)
        bound = self._bind(name, context)
        if context.verbose:
            print_info(f"Adding {name}...")

        outcome = await self._features[name].apply(bound)

        if outcome.dependencies_added and context.install and not context.dry_run:
            await install_dependencies(context.target_dir, context.project_info.package_manager)
        return outcome

    def print_table(self) -> None:
        """Render the catalogue as a Rich table."""
        table = Table(title="Available features", show_header=True, header_style="bold cyan")
        table.add_column("Feature", style="bold", no_wrap=True)
        table.add_column("Category", style="dim")
        table.add_column("Description")
        table.add_column("Project types", style="dim")
        for info in self.available():
            table.add_row(
                info.name,
                info.category,
                info.description,
                ", ".join(info.supported_frameworks) or "all",
            )
        console.print(table)

    @staticmethod
    def _bind(name: str, context: FeatureContext) -> FeatureContext:
        if context.feature_name == name:
            return context
        return FeatureContext(
            target_dir=context.target_dir,
            project_info=context.project_info,
            dry_run=context.dry_run,
            verbose=context.verbose,
            options=context.options,
            install=context.install,
            feature_name=name,
            skip_paths=context.skip_paths,
        )


_COMPONENT_OPTIONS = [
    FeatureOption(name="name", description="Component name", required=True),
    FeatureOption(name="path", description="Component path (relative to src/)", default="components"),
    FeatureOption(name="withTest", description="Generate test file", type="boolean", default=True),
]


def build_default_registry() -> FeatureRegistry:
    """Registry with every builtin feature."""
    registry = FeatureRegistry()
    registry.register(
        FeatureInfo(
            name="typescript",
            description="Add TypeScript configuration with @bfra.me/tsconfig",
            category="configuration",
            dev_dependencies=["@bfra.me/tsconfig", "typescript"],
            supported_frameworks=["typescript", "javascript", "node"],
            files=[typescript.TSCONFIG],
            next_steps=[
                "Rename .js files to .ts",
                "Add type annotations to your code",
                "Run `npx tsc` to check types",
            ],
        ),
        typescript.apply,
        typescript.planned_files,
    )
    registry.register(
        FeatureInfo(
            name="eslint",
            description="Add ESLint configuration with @bfra.me/eslint-config",
            category="linting",
            dev_dependencies=["@bfra.me/eslint-config", "eslint"],
            supported_frameworks=ALL_PROJECT_TYPES,
            files=["eslint.config.ts", "eslint.config.js"],
            next_steps=[
                "Run the lint script to check your code",
                "Configure your editor to show ESLint errors",
            ],
        ),
        eslint.apply,
        eslint.planned_files,
    )
    registry.register(
        FeatureInfo(
            name="prettier",
            description="Add Prettier configuration with @bfra.me/prettier-config",
            category="linting",
            dev_dependencies=prettier.DEV_DEPENDENCIES,
            supported_frameworks=ALL_PROJECT_TYPES,
            files=[prettier.CONFIG_FILE],
            next_steps=[
                "Run the format script to format your code",
                "Configure your editor to format on save",
            ],
        ),
        prettier.apply,
        prettier.planned_files,
    )
    registry.register(
        FeatureInfo(
            name="vitest",
            description="Add Vitest testing setup with configuration and sample tests",
            category="testing",
            dev_dependencies=["vitest", "@vitest/ui"],
            supported_frameworks=["typescript", "javascript", "react", "vue", "node"],
            files=["vitest.config.ts", "vitest.config.js", "test/"],
            next_steps=[
                "Write your first test in the test/ directory",
                "Run the test script to execute tests",
                "Run the test:ui script for the web interface",
            ],
        ),
        vitest.apply,
        vitest.planned_files,
    )
    registry.register(
        FeatureInfo(
            name="react-component",
            description="Generate a React component with TypeScript",
            category="component",
            supported_frameworks=["react", "typescript"],
            options=[
                *_COMPONENT_OPTIONS,
                FeatureOption(
                    name="withStory", description="Generate Storybook story", type="boolean", default=False
                ),
            ],
            next_steps=[
                "Import and use your component",
                "Add props and TypeScript interfaces",
                "Write tests for your component",
            ],
        ),
        components.apply,
        components.planned_files,
    )
    registry.register(
        FeatureInfo(
            name="vue-component",
            description="Generate a Vue component with Composition API",
            category="component",
            supported_frameworks=["vue"],
            options=list(_COMPONENT_OPTIONS),
            next_steps=[
                "Import and use your component",
                "Add props with defineProps",
                "Write tests for your component",
            ],
        ),
        components.apply,
        components.planned_files,
    )
    return registry


default_registry = build_default_registry()
