"""Add a TypeScript setup extending ``@bfra.me/tsconfig``."""

from __future__ import annotations

import json

from createkit.features.common import (
    FeatureContext,
    FeatureOutcome,
    find_existing,
    render_snippet,
    write_project_file,
)
from createkit.features.package_json import PACKAGE_JSON, add_dependencies, add_scripts
from createkit.utils import dump_json, print_info, print_warning

TSCONFIG = "tsconfig.json"
BASE_CONFIG = "@bfra.me/tsconfig"
SCRIPTS = {
    "type-check": "tsc --noEmit",
    "build": "tsc",
}


def planned_files(context: FeatureContext) -> list[str]:
    return [TSCONFIG, PACKAGE_JSON]


def dev_dependencies(context: FeatureContext) -> list[str]:
    deps = [BASE_CONFIG, "typescript"]
    if context.is_react:
        deps += ["@types/react", "@types/react-dom"]
    if context.project_info.type == "node":
        deps.append("@types/node")
    return deps


async def apply(context: FeatureContext) -> FeatureOutcome:
    outcome = FeatureOutcome()
    existing = find_existing(context, [TSCONFIG])

    if existing:
        content = _merged_config(context)
        if content is None:
            print_info(f"{TSCONFIG} already extends {BASE_CONFIG}")
        else:
            await write_project_file(context, TSCONFIG, content, outcome)
    else:
        await write_project_file(context, TSCONFIG, render_snippet("tsconfig.json.j2", context), outcome)

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


def _merged_config(context: FeatureContext) -> str | None:
    """Existing tsconfig with ``extends`` added, or ``None`` if nothing changes.

    A tsconfig that cannot be parsed (comments, trailing commas) is replaced
    by a fresh one.
    """
    try:
        current = json.loads(context.path(TSCONFIG).read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        print_warning(f"Could not parse {TSCONFIG}; it will be replaced")
        return render_snippet("tsconfig.json.j2", context)
    if not isinstance(current, dict):
        return render_snippet("tsconfig.json.j2", context)
    if "extends" in current:
        return None
    return dump_json({"extends": BASE_CONFIG, **current})
