"""Add Vitest with a config file and a sample test."""

from __future__ import annotations

from createkit.features.common import (
    FeatureContext,
    FeatureOutcome,
    find_existing,
    render_snippet,
    write_project_file,
)
from createkit.features.package_json import PACKAGE_JSON, add_dependencies, add_scripts

EXISTING_CONFIGS = [
    "vitest.config.ts",
    "vitest.config.js",
    "vite.config.ts",
    "vite.config.js",
    "jest.config.js",
    "jest.config.json",
]
SCRIPTS = {
    "test": "vitest run",
    "test:watch": "vitest",
    "test:ui": "vitest --ui",
    "test:coverage": "vitest run --coverage",
}


def config_file(context: FeatureContext) -> str:
    return "vitest.config.ts" if context.is_typescript else "vitest.config.js"


def sample_test(context: FeatureContext) -> str:
    return "test/example.test.ts" if context.is_typescript else "test/example.test.js"


def planned_files(context: FeatureContext) -> list[str]:
    return [config_file(context), sample_test(context), PACKAGE_JSON]


def dev_dependencies(context: FeatureContext) -> list[str]:
    deps = ["vitest", "@vitest/ui"]
    if context.is_react:
        deps += ["@testing-library/react", "@testing-library/jest-dom", "jsdom"]
    if context.project_info.type == "typescript":
        deps.append("@types/node")
    return deps


async def apply(context: FeatureContext) -> FeatureOutcome:
    outcome = FeatureOutcome()
    find_existing(context, EXISTING_CONFIGS)

    await write_project_file(
        context, config_file(context), render_snippet("vitest.config.j2", context), outcome
    )
    if not context.path("test").exists():
        await write_project_file(
            context, sample_test(context), render_snippet("example.test.j2", context), outcome
        )

    outcome.dependencies_added = await add_dependencies(
        context.target_dir,
        dev_dependencies=dev_dependencies(context),
        dry_run=context.dry_run,
        verbose=context.verbose,
    )
    outcome.scripts_added = await add_scripts(
        context.target_dir, SCRIPTS, dry_run=context.dry_run, verbose=context.verbose
    )
    return outcome
