"""``createkit add``: apply a feature to an existing project.

The flow is: detect the project, check the feature, detect conflicts, pick a
strategy, back up, resolve conflicts, apply.  A failure after the backup
restores it; if the restore fails too, both errors are reported.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from createkit.config import Config
from createkit.errors import CreateError, ErrorCode, exit_code_for, to_create_error, user_friendly_message
from createkit.features.common import FeatureContext
from createkit.features.registry import FeatureRegistry, default_registry
from createkit.project_detection import ProjectInfo, analyze_project, is_node_project
from createkit.prompts.prompter import Choice, PromptCancelled, Prompter
from createkit.result import Err, Ok, Result
from createkit.safety.backup import BackupManager
from createkit.safety.conflicts import Conflict, affected_paths, detect_conflicts, resolve_conflicts
from createkit.utils import console, print_error, print_info, print_step_header, print_success, print_warning

STRATEGY_CHOICES = [
    Choice(value="merge", label="Merge", hint="keep existing files as .backup and write new configuration"),
    Choice(value="overwrite", label="Overwrite", hint="replace existing configuration"),
    Choice(value="skip", label="Skip", hint="leave conflicting files untouched"),
    Choice(value="abort", label="Abort", hint="cancel without changes"),
]


class AddFeatureOptions(BaseModel):
    feature: str | None = None
    target_dir: Path = Field(default_factory=Path.cwd)
    options: dict[str, Any] = Field(default_factory=dict)
    skip_confirm: bool = False
    dry_run: bool = False
    verbose: bool = False
    install: bool = True


async def add_feature_to_project(
    options: AddFeatureOptions,
    prompter: Prompter | None = None,
    registry: FeatureRegistry | None = None,
    backups: BackupManager | None = None,
) -> Result[None, CreateError]:
    """Add ``options.feature`` to the project in ``options.target_dir``.

    Never raises; user cancellation is ``Ok(None)``.
    """
    prompter = prompter or Prompter()
    registry = registry or default_registry
    if backups is None:
        backup_config = Config.from_env().backup
        backups = BackupManager(backup_config.backup_dir, backup_config.retention_hours)

    try:
        await _add_feature(options, prompter, registry, backups)
    except PromptCancelled:
        print_warning("Operation cancelled")
        return Ok(None)
    except CreateError as exc:
        return Err(exc)
    except Exception as exc:  # noqa: BLE001
        return Err(to_create_error(exc))
    return Ok(None)


def list_available_features(registry: FeatureRegistry | None = None) -> None:
    (registry or default_registry).print_table()


async def handle_add_command(
    options: AddFeatureOptions,
    list_only: bool = False,
    prompter: Prompter | None = None,
) -> int:
    """CLI entry for ``add``; returns the process exit status."""
    if list_only:
        list_available_features()
        return 0

    match await add_feature_to_project(options, prompter):
        case Ok():
            return 0
        case Err(error=error):
            print_error(user_friendly_message(error, options.verbose))
            if error.recovery_error is not None:
                print_error(f"Restore failed: {user_friendly_message(error.recovery_error, options.verbose)}")
                print_warning("Manual cleanup may be required")
            return exit_code_for(error.code)
    return 1


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


async def _add_feature(
    options: AddFeatureOptions,
    prompter: Prompter,
    registry: FeatureRegistry,
    backups: BackupManager,
) -> None:
    root = options.target_dir.resolve()
    if not is_node_project(root):
        raise CreateError(
            ErrorCode.PROJECT_DETECTION_FAILED,
            "No package.json found. Run this command from a JavaScript/TypeScript project",
            context={"target_dir": str(root)},
        )

    info = analyze_project(root)
    if options.verbose:
        print_info(
            f"Detected {info.type} project"
            + (f" ({info.framework})" if info.framework else "")
            + f", package manager {info.package_manager or 'npm'}"
        )

    feature = options.feature or _choose_feature(prompter, registry, info)
    feature_info = registry.check(feature, info.type)

    context = FeatureContext(
        target_dir=root,
        project_info=info,
        dry_run=options.dry_run,
        verbose=options.verbose,
        options=options.options,
        install=options.install,
        feature_name=feature,
    )
    planned = registry.planned_files(feature, context)

    conflicts = detect_conflicts(root, feature, info)
    strategy = "merge"
    if conflicts:
        _show_conflicts(conflicts)
        if not options.skip_confirm:
            strategy = prompter.select("How should conflicts be handled?", STRATEGY_CHOICES, default="merge")
            if strategy == "abort":
                raise PromptCancelled("Operation cancelled")
        if strategy == "skip":
            context.skip_paths = {c.existing for c in conflicts if c.type == "file" and c.existing}

    print_step_header(f"Adding {feature}")
    if options.dry_run:
        if conflicts:
            resolve_conflicts(conflicts, strategy, root, dry_run=True)
        await registry.add_feature(feature, context)
        print_info("Dry run complete. No files were changed")
        return

    backups.cleanup_backups()
    backup_id = backups.create_backup(root, feature, planned + affected_paths(conflicts))
    try:
        if conflicts:
            resolve_conflicts(conflicts, strategy, root)
        outcome = await registry.add_feature(feature, context)
    except Exception as exc:  # noqa: BLE001
        error = to_create_error(exc)
        print_warning("Feature installation failed, restoring backup...")
        try:
            backups.restore_backup(backup_id, root)
            backups.discard_backup(backup_id)
        except CreateError as restore_error:
            error.recovery_error = restore_error
        if error is exc:
            raise
        raise error from exc

    backups.discard_backup(backup_id)
    print_success(f"Added {feature}")
    if outcome.files_written and options.verbose:
        print_info(f"Files written: {', '.join(outcome.files_written)}")
    if feature_info.next_steps:
        console.print("\n[bold]Next steps:[/bold]")
        for step in feature_info.next_steps:
            console.print(f"  - {step}", highlight=False, markup=False)


def _choose_feature(prompter: Prompter, registry: FeatureRegistry, info: ProjectInfo) -> str:
    names = registry.names_for_framework(info.type)
    if not names:
        raise CreateError(
            ErrorCode.VALIDATION_FAILED,
            f"No features are available for {info.type} projects",
        )
    choices = [Choice(value=n, label=n, hint=registry.get(n).description) for n in names]
    return prompter.select("Which feature would you like to add?", choices)


def _show_conflicts(conflicts: list[Conflict]) -> None:
    print_warning(f"Found {len(conflicts)} potential conflict(s):")
    for conflict in conflicts:
        console.print(f"  [{conflict.severity}] {conflict.description}", highlight=False, markup=False)
