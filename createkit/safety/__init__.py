"""createkit safety -- conflict detection and backup/restore around feature application."""

from createkit.safety.backup import BackupInfo, BackupManager
from createkit.safety.conflicts import Conflict, affected_paths, detect_conflicts, resolve_conflicts

__all__ = [
    "BackupInfo",
    "BackupManager",
    "Conflict",
    "affected_paths",
    "detect_conflicts",
    "resolve_conflicts",
]
