"""Detect and resolve pre-existing configuration a feature would clash with.

``detect_conflicts`` only reads; ``resolve_conflicts`` renames or removes the
conflicting files according to the chosen strategy and must run after the
backup has been taken.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from createkit.errors import CreateError, ErrorCode
from createkit.project_detection import ProjectInfo
from createkit.utils import print_info

Strategy = Literal["merge", "overwrite", "skip"]
Severity = Literal["low", "medium", "high"]
STRATEGIES: tuple[str, ...] = ("merge", "overwrite", "skip")
BACKUP_SUFFIX = ".backup"

# feature -> (config files, proposed file, severity)
FILE_CONFLICTS: dict[str, tuple[list[str], str, Severity]] = {
    "eslint": (
        [
            ".eslintrc.js",
            ".eslintrc.cjs",
            ".eslintrc.json",
            ".eslintrc.yml",
            ".eslintrc.yaml",
            ".eslintrc",
            "eslint.config.js",
            "eslint.config.mjs",
            "eslint.config.ts",
        ],
        "eslint.config.ts",
        "medium",
    ),
    "prettier": (
        [
            ".prettierrc",
            ".prettierrc.json",
            ".prettierrc.yml",
            ".prettierrc.yaml",
            ".prettierrc.js",
            "prettier.config.js",
            "prettier.config.cjs",
        ],
        ".prettierrc",
        "low",
    ),
    "vitest": (
        ["vitest.config.js", "vitest.config.ts", "vite.config.js", "vite.config.ts"],
        "vitest.config.ts",
        "medium",
    ),
}
JEST_CONFIGS = ["jest.config.js", "jest.config.ts", "jest.config.json"]


class Conflict(BaseModel):
    """Something in the project that the feature would collide with.

    ``existing`` and ``proposed`` are paths relative to the project root.
    """

    type: Literal["file", "configuration", "dependency"]
    description: str
    existing: str | None = None
    proposed: str | None = None
    severity: Severity = "medium"


def detect_conflicts(project_dir: str | Path, feature: str, project_info: ProjectInfo) -> list[Conflict]:
    """List conflicts for applying *feature* to *project_dir*.

    Pure inspection: nothing is written.  Returns ``[]`` when nothing clashes.
    """
    root = Path(project_dir)
    conflicts: list[Conflict] = []

    if feature in FILE_CONFLICTS:
        candidates, proposed, severity = FILE_CONFLICTS[feature]
        for name in candidates:
            if (root / name).exists():
                conflicts.append(
                    Conflict(
                        type="file",
                        description=f"Existing {feature} configuration: {name}",
                        existing=name,
                        proposed=proposed,
                        severity=severity,
                    )
                )

    if feature == "typescript" and (root / "tsconfig.json").exists():
        conflicts.append(
            Conflict(
                type="configuration",
                description="Existing TypeScript configuration will be extended",
                existing="tsconfig.json",
                severity="low",
            )
        )

    if feature == "vitest":
        for name in JEST_CONFIGS:
            if (root / name).exists():
                conflicts.append(
                    Conflict(
                        type="configuration",
                        description=f"Existing Jest configuration may conflict with Vitest: {name}",
                        existing=name,
                        severity="high",
                    )
                )
        if project_info.has_dependency("jest"):
            conflicts.append(
                Conflict(
                    type="dependency",
                    description="Jest is already installed and may conflict with Vitest",
                    severity="high",
                )
            )

    return conflicts


def affected_paths(conflicts: list[Conflict]) -> list[str]:
    """Paths ``resolve_conflicts`` may touch, for inclusion in a backup."""
    paths: list[str] = []
    for conflict in conflicts:
        if conflict.type == "file" and conflict.existing:
            paths += [conflict.existing, conflict.existing + BACKUP_SUFFIX]
    return paths


def resolve_conflicts(
    conflicts: list[Conflict],
    strategy: str,
    project_dir: str | Path,
    dry_run: bool = False,
) -> None:
    """Apply *strategy* to the file conflicts.

    ``merge`` renames each conflicting file to ``<name>.backup`` so the
    feature can write its own; ``overwrite`` deletes it; ``skip`` leaves the
    project alone.

    Raises:
        CreateError: ``VALIDATION_FAILED`` for an unknown strategy.
    """
    if strategy not in STRATEGIES:
        raise CreateError(
            ErrorCode.VALIDATION_FAILED,
            f"Unknown conflict resolution strategy: {strategy}",
            details=[f"Expected one of: {', '.join(STRATEGIES)}"],
        )
    if strategy == "skip":
        print_info("Skipping conflicting files as requested")
        return

    root = Path(project_dir)
    for conflict in conflicts:
        if conflict.type != "file" or not conflict.existing:
            continue
        existing = root / conflict.existing
        if not existing.exists():
            continue
        if strategy == "merge":
            target = existing.with_name(existing.name + BACKUP_SUFFIX)
            if dry_run:
                print_info(f"Would move {conflict.existing} to {target.name}")
                continue
            existing.replace(target)
            print_info(f"Existing configuration moved to {target.name}")
        else:
            if dry_run:
                print_info(f"Would remove {conflict.existing}")
                continue
            existing.unlink()
            print_info(f"Removed {conflict.existing}")

