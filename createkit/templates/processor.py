"""Render a fetched template directory into a new project.

Files ending in ``.j2`` are rendered with Jinja2 and written without the
extension; everything else is copied byte-for-byte.  A leading underscore on
well-known dotfiles (``_gitignore``) is turned into a dot so templates can be
packaged without hidden files.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Any, Literal

from jinja2 import TemplateError
from pydantic import BaseModel

from createkit.errors import CreateError, ErrorCode
from createkit.result import Err, Ok, Result
from createkit.templates.metadata import MANIFEST_NAME
from createkit.templates.renderer import TemplateRenderer
from createkit.utils import print_info

TEMPLATE_SUFFIX = ".j2"
SKIP_DIRS = {".git", "node_modules"}
DOTFILE_NAMES = {"_gitignore", "_npmrc", "_editorconfig", "_prettierignore"}


class FileOperation(BaseModel):
    """One file the processor writes (or would write, in a dry run)."""

    action: Literal["render", "copy"]
    source: Path
    target: Path


class TemplateProcessor:
    """Turns a template directory plus a context into project files."""

    def plan(self, template_dir: str | Path, output_dir: str | Path) -> list[FileOperation]:
        """List the operations ``process`` would perform, without rendering."""
        root = Path(template_dir)
        out = Path(output_dir)
        operations: list[FileOperation] = []
        for path in sorted(root.rglob("*")):
            rel = path.relative_to(root)
            if not path.is_file() or _skipped(rel):
                continue
            parts = list(rel.parts)
            name = parts[-1]
            if name.endswith(TEMPLATE_SUFFIX):
                name = name[: -len(TEMPLATE_SUFFIX)]
                action: Literal["render", "copy"] = "render"
            else:
                action = "copy"
            if name in DOTFILE_NAMES:
                name = "." + name[1:]
            parts[-1] = name
            operations.append(FileOperation(action=action, source=path, target=out.joinpath(*parts)))
        return operations

    async def process(
        self,
        template_dir: str | Path,
        output_dir: str | Path,
        context: dict[str, Any],
        dry_run: bool = False,
    ) -> Result[list[FileOperation], CreateError]:
        """Render *template_dir* into *output_dir*.

        Returns the performed (or, in a dry run, planned) operations.
        """
        root = Path(template_dir)
        if not root.is_dir():
            return Err(
                CreateError(ErrorCode.TEMPLATE_NOT_FOUND, f"Template directory not found: {root}")
            )

        operations = self.plan(root, output_dir)
        if dry_run:
            for op in operations:
                print_info(f"Would {'render' if op.action == 'render' else 'copy'} {op.target}")
            return Ok(operations)

        renderer = TemplateRenderer(root)
        for op in operations:
            try:
                if op.action == "render":
                    rel = op.source.relative_to(root).as_posix()
                    await renderer.render_to_file(rel, op.target, context)
                else:
                    await asyncio.to_thread(_copy_file, op.source, op.target)
            except TemplateError as exc:
                return Err(
                    CreateError(
                        ErrorCode.TEMPLATE_RENDER_ERROR,
                        f"Failed to render {op.source.name}: {exc}",
                        context={"file": str(op.source)},
                    )
                )
            except PermissionError as exc:
                return Err(CreateError(ErrorCode.PERMISSION_DENIED, f"Permission denied: {exc}"))
            except OSError as exc:
                return Err(
                    CreateError(ErrorCode.FILE_SYSTEM_ERROR, f"Failed to write {op.target}: {exc}")
                )
        return Ok(operations)


def _skipped(rel: Path) -> bool:
    if rel.as_posix() == MANIFEST_NAME:
        return True
    return any(part in SKIP_DIRS for part in rel.parts)


def _copy_file(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)
