"""Snapshot project files before a feature is applied, and roll back on failure.

A backup records two things for every tracked path: a copy of it if it
existed, or a note that it was absent.  Restoring copies the snapshots back and
deletes whatever now exists at the recorded-absent paths, which returns the
tracked files to their exact pre-apply bytes.

Each backup lives in its own directory under ``backup_dir`` with a
``.backup-info.json`` describing it.  The backup id is the directory name.
"""

from __future__ import annotations

import shutil
import time
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, Field

from createkit.errors import CreateError, ErrorCode
from createkit.utils import print_info

INFO_FILE = ".backup-info.json"
FILES_DIR = "files"

# Files snapshotted for every feature, in addition to its planned files.
COMMON_FILES = [
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    ".eslintrc*",
    "eslint.config.*",
    ".prettierrc*",
    "prettier.config.*",
    "tsconfig.json",
    "vitest.config.*",
    "jest.config.*",
    ".gitignore",
    "README.md",
]


class BackupInfo(BaseModel):
    """Contents of ``.backup-info.json``."""

    id: str
    timestamp: datetime
    feature: str
    project_dir: str
    files: list[str] = Field(default_factory=list, description="Paths copied into the backup")
    absent: list[str] = Field(
        default_factory=list, description="Paths that did not exist and must be removed on restore"
    )
    backup_dir: str


class BackupManager:
    """Creates, restores and prunes feature backups under *backup_dir*."""

    def __init__(self, backup_dir: str | Path, retention_hours: int = 24) -> None:
        self.backup_dir = Path(backup_dir)
        self.retention_hours = retention_hours

    # ------------------------------------------------------------------
    # Create / restore / discard
    # ------------------------------------------------------------------

    def create_backup(
        self,
        project_dir: str | Path,
        feature: str,
        paths: list[str] | None = None,
    ) -> str:
        """Snapshot the files *feature* may touch and return the backup id.

        Args:
            project_dir: Root of the project being modified.
            feature: Feature name, recorded for listing.
            paths: Extra project-relative paths the feature plans to write.

        Raises:
            CreateError: ``FILE_SYSTEM_ERROR`` if the snapshot cannot be written.
        """
        root = Path(project_dir).resolve()
        backup_id = f"{feature}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
        location = self.backup_dir / backup_id

        tracked = _expand_common(root) + [_normalize(p) for p in (paths or [])]
        files: list[str] = []
        absent: list[str] = []
        try:
            (location / FILES_DIR).mkdir(parents=True)
            for rel in dict.fromkeys(tracked):
                source = root / rel
                if source.exists():
                    target = location / FILES_DIR / rel
                    target.parent.mkdir(parents=True, exist_ok=True)
                    if source.is_dir():
                        shutil.copytree(source, target, symlinks=True)
                    else:
                        shutil.copy2(source, target)
                    files.append(rel)
                else:
                    missing = _topmost_missing(root, rel)
                    if missing not in absent:
                        absent.append(missing)

            info = BackupInfo(
                id=backup_id,
                timestamp=datetime.now(timezone.utc),
                feature=feature,
                project_dir=str(root),
                files=files,
                absent=absent,
                backup_dir=str(location),
            )
            (location / INFO_FILE).write_text(info.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise CreateError(
                ErrorCode.FILE_SYSTEM_ERROR,
                f"Failed to create backup: {exc}",
                context={"backup_dir": str(location)},
            ) from exc

        print_info(f"Backup created: {backup_id}")
        return backup_id

    def restore_backup(self, backup_id: str, project_dir: str | Path) -> None:
        """Put the project back to the state captured by *backup_id*.

        Raises:
            CreateError: ``FILE_SYSTEM_ERROR`` if the backup is unknown or the
                restore cannot complete.
        """
        info = self.get_backup(backup_id)
        if info is None:
            raise CreateError(ErrorCode.FILE_SYSTEM_ERROR, f"Backup not found: {backup_id}")

        root = Path(project_dir).resolve()
        snapshot = Path(info.backup_dir) / FILES_DIR
        try:
            for rel in info.absent:
                _remove(root / rel)
            for rel in info.files:
                source = snapshot / rel
                target = root / rel
                if source.is_dir():
                    _remove(target)
                    shutil.copytree(source, target, symlinks=True)
                else:
                    if target.is_dir():
                        shutil.rmtree(target)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, target)
        except OSError as exc:
            raise CreateError(
                ErrorCode.FILE_SYSTEM_ERROR,
                f"Failed to restore backup {backup_id}: {exc}",
                context={"backup_dir": info.backup_dir},
            ) from exc
        print_info(f"Restored backup {backup_id}")

    def discard_backup(self, backup_id: str) -> None:
        """Delete a backup that is no longer needed."""
        location = self.backup_dir / backup_id
        if location.is_dir():
            shutil.rmtree(location)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def get_backup(self, backup_id: str) -> BackupInfo | None:
        if not backup_id or "/" in backup_id or "\\" in backup_id or backup_id in (".", ".."):
            return None
        info_path = self.backup_dir / backup_id / INFO_FILE
        if not info_path.is_file():
            return None
        return BackupInfo.model_validate_json(info_path.read_text(encoding="utf-8"))

    def list_backups(self) -> list[BackupInfo]:
        """All readable backups, newest first."""
        if not self.backup_dir.is_dir():
            return []
        backups: list[BackupInfo] = []
        for entry in self.backup_dir.iterdir():
            info = self.get_backup(entry.name) if entry.is_dir() else None
            if info is not None:
                backups.append(info)
        return sorted(backups, key=lambda b: b.timestamp, reverse=True)

    def cleanup_backups(self, older_than_hours: int | None = None) -> int:
        """Delete backups older than *older_than_hours* (default: retention).

        Returns:
            Number of backups removed.
        """
        hours = self.retention_hours if older_than_hours is None else older_than_hours
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        removed = 0
        for info in self.list_backups():
            if info.timestamp < cutoff:
                self.discard_backup(info.id)
                removed += 1
        if removed:
            print_info(f"Removed {removed} old backup(s)")
        return removed


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _expand_common(root: Path) -> list[str]:
    found: list[str] = []
    for pattern in COMMON_FILES:
        if "*" in pattern:
            found += sorted(p.name for p in root.glob(pattern) if p.is_file())
        elif (root / pattern).is_file():
            found.append(pattern)
    return found


def _normalize(rel: str) -> str:
    path = PurePosixPath(rel.replace("\\", "/").rstrip("/"))
    if path.is_absolute() or ".." in path.parts:
        raise CreateError(
            ErrorCode.PATH_TRAVERSAL_ATTEMPT, f"Backup path escapes the project: {rel}"
        )
    return path.as_posix()


def _topmost_missing(root: Path, rel: str) -> str:
    """First ancestor of *rel* (or *rel* itself) that does not exist."""
    parts = PurePosixPath(rel).parts
    for i in range(1, len(parts) + 1):
        candidate = PurePosixPath(*parts[:i])
        if not (root / candidate).exists():
            return candidate.as_posix()
    return rel


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
