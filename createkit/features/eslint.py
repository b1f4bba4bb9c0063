"""Add an ESLint flat config built on ``@bfra.me/eslint-config``."""

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
    "eslint.config.ts",
    "eslint.config.js",
    "eslint.config.mjs",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc",
]
SCRIPTS = {
    "lint": "eslint .",
    "lint:fix": "eslint . --fix",
}


def config_file(context: FeatureContext) -> str:
    return "eslint.config.ts" if context.is_typescript else "eslint.config.js"


def planned_files(context: FeatureContext) -> list[str]:
    return [config_file(context), PACKAGE_JSON]


def dev_dependencies(context: FeatureContext) -> list[str]:
    deps = ["@bfra.me/eslint-config", "eslint"]
    if context.is_typescript:
        deps += ["@typescript-eslint/parser", "@typescript-eslint/eslint-plugin"]
    if context.is_react:
        deps += ["eslint-plugin-react", "eslint-plugin-react-hooks"]
    return deps


async def apply(context: FeatureContext) -> FeatureOutcome:
    outcome = FeatureOutcome()
    find_existing(context, EXISTING_CONFIGS)

    await write_project_file(
        context, config_file(context), render_snippet("eslint.config.j2", context), outcome
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
