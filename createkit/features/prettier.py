"""Add a Prettier config pointing at ``@bfra.me/prettier-config``."""

from __future__ import annotations

from createkit.features.common import (
    FeatureContext,
    FeatureOutcome,
    find_existing,
    render_snippet,
    write_project_file,
)
from createkit.features.package_json import PACKAGE_JSON, add_dependencies, add_scripts

CONFIG_FILE = ".prettierrc"
EXISTING_CONFIGS = [
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.js",
    ".prettierrc.yaml",
    "prettier.config.js",
    "prettier.config.mjs",
]
DEV_DEPENDENCIES = ["@bfra.me/prettier-config", "prettier"]
SCRIPTS = {
    "format": "prettier --write .",
    "format:check": "prettier --check .",
}


def planned_files(context: FeatureContext) -> list[str]:
    return [CONFIG_FILE, PACKAGE_JSON]


async def apply(context: FeatureContext) -> FeatureOutcome:
    outcome = FeatureOutcome()
    find_existing(context, EXISTING_CONFIGS)

    await write_project_file(context, CONFIG_FILE, render_snippet("prettierrc.j2", context), outcome)
    outcome.dependencies_added = await add_dependencies(
        context.target_dir,
        dev_dependencies=DEV_DEPENDENCIES,
        dry_run=context.dry_run,
        verbose=context.verbose,
    )
    outcome.scripts_added = await add_scripts(
        context.target_dir, SCRIPTS, dry_run=context.dry_run, verbose=context.verbose
    )
    return outcome
