"""package.json editing and dependency installation for feature handlers.

Both editors are idempotent: a dependency already listed in either
``dependencies`` or ``devDependencies`` keeps its pinned version, and a script
name already present keeps its command.  The file is only rewritten when
something was actually added.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from createkit.errors import CreateError, ErrorCode
from createkit.utils import load_json, print_info, print_success, print_warning, run_command, save_json

PACKAGE_JSON = "package.json"
DEFAULT_VERSION_SPEC = "latest"


def read_package_json(target_dir: str | Path) -> dict[str, Any]:
    """Parse ``package.json`` in *target_dir*.

    Raises:
        CreateError: ``FILE_SYSTEM_ERROR`` if the file is missing or
            unreadable, ``VALIDATION_FAILED`` if it is not a JSON object.
    """
    path = Path(target_dir) / PACKAGE_JSON
    try:
        data = load_json(path)
    except FileNotFoundError as exc:
        raise CreateError(ErrorCode.FILE_SYSTEM_ERROR, f"{PACKAGE_JSON} not found in {target_dir}") from exc
    except json.JSONDecodeError as exc:
        raise CreateError(ErrorCode.VALIDATION_FAILED, f"Malformed {PACKAGE_JSON}: {exc}") from exc
    except OSError as exc:
        raise CreateError(ErrorCode.FILE_SYSTEM_ERROR, f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CreateError(ErrorCode.VALIDATION_FAILED, f"{PACKAGE_JSON} must contain a JSON object")
    return data


async def add_dependencies(
    target_dir: str | Path,
    dependencies: list[str] | None = None,
    dev_dependencies: list[str] | None = None,
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> list[str]:
    """Add missing packages to ``package.json``.

    Packages already present in either section are left untouched.  New
    entries get the ``latest`` version spec.

    Returns:
        Names of the packages that were added (or would be, in a dry run).
    """
    data = read_package_json(target_dir)
    existing = {**(data.get("dependencies") or {}), **(data.get("devDependencies") or {})}

    added: list[str] = []
    for section, packages in (
        ("dependencies", dependencies or []),
        ("devDependencies", dev_dependencies or []),
    ):
        for package in dict.fromkeys(packages):
            if package in existing:
                continue
            existing[package] = DEFAULT_VERSION_SPEC
            data.setdefault(section, {})[package] = DEFAULT_VERSION_SPEC
            added.append(package)

    if not added:
        if verbose:
            print_info("All dependencies already present in package.json")
        return added

    if dry_run:
        print_info(f"Would add dependencies: {', '.join(added)}")
        return added

    await save_json(data, Path(target_dir) / PACKAGE_JSON)
    if verbose:
        print_success(f"Added dependencies: {', '.join(added)}")
    return added


async def add_scripts(
    target_dir: str | Path,
    scripts: dict[str, str],
    *,
    dry_run: bool = False,
    verbose: bool = False,
) -> list[str]:
    """Add *scripts* whose names are not yet defined.

    A project without ``package.json`` is skipped.

    Returns:
        Names of the scripts that were added (or would be, in a dry run).
    """
    if not (Path(target_dir) / PACKAGE_JSON).exists():
        return []

    data = read_package_json(target_dir)
    current = data.setdefault("scripts", {})
    added = [name for name in scripts if name not in current]
    if not added:
        if verbose:
            print_info(f"Scripts already present: {', '.join(scripts)}")
        return added

    if dry_run:
        print_info(f"Would add scripts to package.json: {', '.join(added)}")
        return added

    for name in added:
        current[name] = scripts[name]
    await save_json(data, Path(target_dir) / PACKAGE_JSON)
    if verbose:
        print_success(f"Added scripts: {', '.join(added)}")
    return added


def install_command(package_manager: str | None) -> list[str]:
    return [package_manager or "npm", "install"]


async def install_dependencies(
    target_dir: str | Path,
    package_manager: str | None,
    timeout: int = 300,
) -> bool:
    """Run ``<package manager> install`` in *target_dir*.

    A failure is reported as a warning with the command to run manually;
    it never raises.

    Returns:
        ``True`` if the install succeeded.
    """
    cmd = install_command(package_manager)
    returncode, _, stderr = await run_command(cmd, cwd=target_dir, timeout=timeout)
    if returncode != 0:
        reason = stderr.splitlines()[-1] if stderr else f"exit code {returncode}"
        print_warning(f"Failed to install dependencies: {reason}")
        print_warning(f'Please run "{" ".join(cmd)}" manually')
        return False
    print_success("Dependencies installed")
    return True
