"""Building blocks shared by the feature handlers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from createkit.project_detection import ProjectInfo
from createkit.templates.renderer import TemplateRenderer, write_file
from createkit.utils import print_info, print_success, print_warning

SNIPPETS_DIR = Path(__file__).parent / "snippets"

snippets = TemplateRenderer(SNIPPETS_DIR)


@dataclass
class FeatureContext:
    """Everything a feature handler needs to modify a project."""

    target_dir: Path
    project_info: ProjectInfo
    dry_run: bool = False
    verbose: bool = False
    options: dict[str, Any] = field(default_factory=dict)
    install: bool = True
    feature_name: str = ""
    skip_paths: set[str] = field(default_factory=set)

    def path(self, relative: str) -> Path:
        return self.target_dir / relative

    @property
    def is_typescript(self) -> bool:
        return self.project_info.type in ("typescript", "react") or (
            self.target_dir / "tsconfig.json"
        ).exists()

    @property
    def is_react(self) -> bool:
        return self.project_info.type == "react" or self.project_info.has_dependency("react")

    def snippet_context(self) -> dict[str, Any]:
        return {
            "project_type": self.project_info.type,
            "framework": self.project_info.framework,
            "is_typescript": self.is_typescript,
            "is_react": self.is_react,
            "options": self.options,
        }


@dataclass
class FeatureOutcome:
    """What a handler changed (or would change, in a dry run)."""

    files_written: list[str] = field(default_factory=list)
    dependencies_added: list[str] = field(default_factory=list)
    scripts_added: list[str] = field(default_factory=list)


def find_existing(context: FeatureContext, candidates: list[str]) -> str | None:
    """Return the first of *candidates* present in the project, announcing it."""
    for candidate in candidates:
        if context.path(candidate).exists():
            print_warning(f"Existing config found: {candidate}")
            return candidate
    return None


async def write_project_file(
    context: FeatureContext,
    relative: str,
    content: str,
    outcome: FeatureOutcome,
) -> None:
    """Write *content* to *relative* inside the project, honouring dry run.

    Paths in ``context.skip_paths`` are left untouched.
    """
    if relative in context.skip_paths:
        print_info(f"Skipping {relative} (existing config kept)")
        return
    if context.dry_run:
        print_info(f"Would write {relative}")
        return
    await asyncio.to_thread(write_file, context.path(relative), content)
    outcome.files_written.append(relative)
    if context.verbose:
        print_success(f"Wrote {relative}")


def render_snippet(name: str, context: FeatureContext, /, **extra: Any) -> str:
    return snippets.render(name, {**context.snippet_context(), **extra})
