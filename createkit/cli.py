"""Command-line entry point: ``createkit create`` and ``createkit add``.

``create`` is the default command, so ``createkit my-app`` works too.  The
process exits with the status mapped from the error code (see
``createkit.errors.exit_code_for``); a cancelled prompt exits 0.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from createkit import __version__
from createkit.commands.add import AddFeatureOptions, handle_add_command
from createkit.commands.create import CreateOptions, handle_create_command
from createkit.config import Config
from createkit.errors import ErrorCode, exit_code_for
from createkit.utils import console

COMMANDS = ("create", "add")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="createkit",
        description="Scaffold JavaScript/TypeScript projects from templates and add features to them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  createkit my-app\n"
            "  createkit create my-lib --template library --skip-prompts\n"
            "  createkit create my-app --template owner/repo#main/templates/app\n"
            "  createkit add vitest --skip-confirm\n"
            "  createkit add react-component --option name=Button\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    create = sub.add_parser("create", help="Create a new project from a template")
    create.add_argument("name", nargs="?", default=None, help="Project name")
    create.add_argument("--template", "-t", default=None, help="Builtin name, owner/repo[#ref][/subdir], URL or path")
    create.add_argument("--output-dir", "-o", default=None, help="Output directory (default: ./<name>)")
    create.add_argument(
        "--package-manager", "-p", choices=["npm", "yarn", "pnpm", "bun"], default=None, help="Package manager"
    )
    create.add_argument("--description", "-d", default=None, help="Project description")
    create.add_argument("--author", "-a", default=None, help="Project author")
    create.add_argument("--version", dest="project_version", default=None, help="Initial version (default: 0.1.0)")
    create.add_argument("--features", default=None, help="Comma-separated features to add (e.g. eslint,vitest)")
    create.add_argument("--skip-prompts", action="store_true", help="Use defaults instead of prompting")
    create.add_argument("--dry-run", action="store_true", help="Show what would be created without writing")
    create.add_argument("--force", action="store_true", help="Write into an existing non-empty directory")
    create.add_argument("--ai", action="store_true", help="Use AI to recommend a template and features")
    create.add_argument("--describe", default=None, help="Describe the project for AI analysis (implies --ai)")
    create.add_argument("--no-git", dest="git", action="store_false", help="Skip git init")
    create.add_argument("--no-install", dest="install", action="store_false", help="Skip dependency install")
    create.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    add = sub.add_parser("add", help="Add a feature to an existing project")
    add.add_argument("feature", nargs="?", default=None, help="Feature name (prompted when omitted)")
    add.add_argument("--skip-confirm", action="store_true", help="Do not ask how to resolve conflicts")
    add.add_argument("--dry-run", action="store_true", help="Show what would change without writing")
    add.add_argument("--list", action="store_true", help="List available features")
    add.add_argument(
        "--option",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Feature option, repeatable (e.g. --option name=Button)",
    )
    add.add_argument("--no-install", dest="install", action="store_false", help="Skip dependency install")
    add.add_argument("--cwd", default=None, help="Project directory (default: current directory)")
    add.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def parse_feature_options(pairs: list[str]) -> dict[str, str]:
    """Turn ``["name=Button", "withTest=false"]`` into a dict.

    Raises:
        ValueError: for an entry without ``=``.
    """
    options: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid option {pair!r}; expected KEY=VALUE")
        options[key.strip()] = value.strip()
    return options


def _normalise_argv(argv: list[str]) -> list[str]:
    if argv and (argv[0] in COMMANDS or argv[0] in ("-h", "--help", "--version")):
        return argv
    return ["create", *argv]


def run(argv: list[str] | None = None) -> int:
    """Parse *argv* and run the command; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(_normalise_argv(list(sys.argv[1:] if argv is None else argv)))

    if args.command == "add":
        try:
            feature_options = parse_feature_options(args.option)
        except ValueError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            return exit_code_for(ErrorCode.VALIDATION_FAILED)
        options = AddFeatureOptions(
            feature=args.feature,
            target_dir=Path(args.cwd) if args.cwd else Path.cwd(),
            options=feature_options,
            skip_confirm=args.skip_confirm,
            dry_run=args.dry_run,
            verbose=args.verbose,
            install=args.install,
        )
        return asyncio.run(handle_add_command(options, list_only=args.list))

    features = [f.strip() for f in args.features.split(",") if f.strip()] if args.features else None
    options = CreateOptions(
        name=args.name,
        template=args.template,
        output_dir=Path(args.output_dir) if args.output_dir else None,
        package_manager=args.package_manager,
        description=args.description,
        author=args.author,
        version=args.project_version,
        features=features,
        skip_prompts=args.skip_prompts,
        dry_run=args.dry_run,
        force=args.force,
        ai=args.ai or bool(args.describe),
        describe=args.describe,
        git=args.git,
        install=args.install,
        verbose=args.verbose,
    )
    return asyncio.run(handle_create_command(options, Config.from_env()))


def main() -> None:
    """Console-script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
