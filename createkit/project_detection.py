"""Detect facts about an existing JavaScript/TypeScript project.

``analyze_project`` is run once per command invocation; the resulting
``ProjectInfo`` is read-only input for conflict detection and the feature
handlers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from createkit.utils import load_json

ProjectType = Literal["typescript", "react", "vue", "angular", "node", "javascript", "unknown"]
PackageManager = Literal["npm", "yarn", "pnpm", "bun"]

# Checked in order; the first lock file present wins.
LOCK_FILES: list[tuple[str, PackageManager]] = [
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("package-lock.json", "npm"),
]

FRAMEWORKS: list[tuple[str, str]] = [
    ("next", "Next.js"),
    ("gatsby", "Gatsby"),
    ("react-scripts", "Create React App"),
    ("nuxt", "Nuxt.js"),
    ("@vue/cli-service", "Vue CLI"),
    ("vite", "Vite"),
    ("webpack", "Webpack"),
    ("parcel", "Parcel"),
    ("express", "Express"),
    ("fastify", "Fastify"),
    ("koa", "Koa"),
    ("@nestjs/core", "NestJS"),
    ("astro", "Astro"),
    ("@11ty/eleventy", "11ty"),
]

CONFIGURATIONS: dict[str, list[str]] = {
    "ESLint": [".eslintrc*", "eslint.config.*"],
    "Prettier": [".prettierrc*", "prettier.config.*"],
    "TypeScript": ["tsconfig*.json"],
    "Jest": ["jest.config.*"],
    "Vitest": ["vitest.config.*"],
    "Babel": [".babelrc*", "babel.config.*"],
    "Vite": ["vite.config.*"],
    "EditorConfig": [".editorconfig"],
    "Husky": [".husky"],
    "lint-staged": [".lintstagedrc*"],
    "GitHub Actions": [".github/workflows"],
    "Docker": ["Dockerfile", "docker-compose.yml"],
}


class ProjectInfo(BaseModel):
    """Detected facts about a project directory."""

    type: ProjectType = Field(default="unknown")
    package_manager: PackageManager | None = Field(default=None)
    framework: str | None = Field(default=None)
    configurations: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)

    @property
    def all_dependencies(self) -> list[str]:
        return [*self.dependencies, *self.dev_dependencies]

    def has_dependency(self, name: str) -> bool:
        return name in self.dependencies or name in self.dev_dependencies


def is_node_project(project_dir: str | Path) -> bool:
    """Return ``True`` if *project_dir* contains a ``package.json``."""
    return (Path(project_dir) / "package.json").is_file()


def detect_package_manager(project_dir: str | Path) -> PackageManager | None:
    """Guess the package manager from lock files, or ``None`` if there are none."""
    root = Path(project_dir)
    for lock_file, manager in LOCK_FILES:
        if (root / lock_file).exists():
            return manager
    return None


def analyze_project(project_dir: str | Path) -> ProjectInfo:
    """Inspect *project_dir* and return a ``ProjectInfo``.

    A missing directory or unreadable ``package.json`` yields a mostly empty
    result rather than an exception.
    """
    root = Path(project_dir)
    info = ProjectInfo()
    if not root.is_dir():
        return info

    info.package_manager = detect_package_manager(root)

    package_json = root / "package.json"
    if package_json.is_file():
        try:
            data = load_json(package_json)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            data = {}
        if isinstance(data, dict):
            info.dependencies = list((data.get("dependencies") or {}).keys())
            info.dev_dependencies = list((data.get("devDependencies") or {}).keys())

    info.type = _detect_type(root, info)
    info.framework = _detect_framework(info)
    info.configurations = _detect_configurations(root)
    return info


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _detect_type(root: Path, info: ProjectInfo) -> ProjectType:
    if (
        (root / "tsconfig.json").exists()
        or (root / "tsconfig.build.json").exists()
        or _has_files(root, (".ts", ".tsx"))
    ):
        return "typescript"
    if info.has_dependency("react") or info.has_dependency("react-dom"):
        return "react"
    if info.has_dependency("vue"):
        return "vue"
    if info.has_dependency("@angular/core"):
        return "angular"
    if is_node_project(root):
        return "node"
    if _has_files(root, (".js", ".jsx", ".mjs")):
        return "javascript"
    return "unknown"


def _detect_framework(info: ProjectInfo) -> str | None:
    deps = set(info.all_dependencies)
    for package, framework in FRAMEWORKS:
        if package in deps:
            return framework
    return None


def _detect_configurations(root: Path) -> list[str]:
    found: list[str] = []
    for name, patterns in CONFIGURATIONS.items():
        if any(any(root.glob(pattern)) for pattern in patterns):
            found.append(name)
    return found


def _has_files(root: Path, suffixes: tuple[str, ...]) -> bool:
    return any(p.is_file() and p.name.endswith(suffixes) for p in root.iterdir())
