"""Jinja2 rendering shared by project templates and feature snippets.

``TemplateRenderer`` wraps a Jinja2 ``Environment`` rooted at a directory of
templates.  Output is source code and JSON, never HTML, so autoescaping is off
and block tags do not leave blank lines behind.  The case filters let
templates derive identifiers from the project name::

    export function {{ project_name | camel_case }}() {}
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")


def words(value: str) -> list[str]:
    """Split ``myCoolApp``, ``my-cool_app`` or ``My Cool App`` into words."""
    return _WORD_RE.findall(value)


def pascal_case(value: str) -> str:
    return "".join(w.capitalize() for w in words(value))


def camel_case(value: str) -> str:
    pascal = pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def kebab_case(value: str) -> str:
    return "-".join(w.lower() for w in words(value))


def is_pascal_case(value: str) -> bool:
    return re.fullmatch(r"[A-Z][A-Za-z0-9]*", value) is not None


FILTERS = {
    "pascal_case": pascal_case,
    "camel_case": camel_case,
    "kebab_case": kebab_case,
}


class TemplateRenderer:
    """Renders the Jinja2 templates found under *template_dir*."""

    def __init__(self, template_dir: str | Path) -> None:
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(FILTERS)

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render *template_path* (forward slashes, relative to the directory)."""
        return self.env.get_template(template_path).render(**context)

    def render_string(self, source: str, context: dict[str, Any]) -> str:
        return self.env.from_string(source).render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render *template_path* into *output_path*, creating parent directories.

        Rendering errors propagate as ``jinja2.TemplateError`` before anything
        is written.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(write_file, out, content)
        return out


def write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
