"""``createkit create``: scaffold a new project from a template.

Runs the setup workflow, then validates and fetches the template, renders it
into the output directory, applies the selected features, installs
dependencies and initialises git.
"""

from __future__ import annotations

import tempfile
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from createkit.config import Config
from createkit.errors import CreateError, ErrorCode, exit_code_for, to_create_error, user_friendly_message
from createkit.features.common import FeatureContext
from createkit.features.package_json import install_dependencies
from createkit.features.registry import FeatureRegistry, default_registry
from createkit.project_detection import analyze_project
from createkit.prompts.project_setup import ProjectSetupResult, ProjectSetupWorkflow, SetupOptions
from createkit.prompts.prompter import PromptCancelled, Prompter
from createkit.result import Err, Ok, Result
from createkit.templates.fetcher import TemplateFetcher
from createkit.templates.metadata import TemplateMetadata, TemplateMetadataManager
from createkit.templates.processor import TemplateProcessor
from createkit.templates.resolver import TemplateResolver, stringify_template_source
from createkit.utils import (
    console,
    format_duration,
    is_empty_dir,
    print_error,
    print_info,
    print_step_header,
    print_success,
    print_warning,
    run_command,
)


class CreateOptions(BaseModel):
    name: str | None = None
    template: str | None = None
    output_dir: Path | None = None
    package_manager: str | None = None
    description: str | None = None
    author: str | None = None
    version: str | None = None
    features: list[str] | None = None
    skip_prompts: bool = False
    dry_run: bool = False
    force: bool = False
    ai: bool = False
    describe: str | None = None
    git: bool = True
    install: bool = True
    verbose: bool = False
    cwd: Path = Field(default_factory=Path.cwd)


async def create_project(
    options: CreateOptions,
    prompter: Prompter | None = None,
    config: Config | None = None,
    fetcher: TemplateFetcher | None = None,
    registry: FeatureRegistry | None = None,
) -> Result[Path | None, CreateError]:
    """Create a project; ``Ok(path)`` on success, ``Ok(None)`` if cancelled.

    Never raises.
    """
    config = config or Config()
    resolver = TemplateResolver(default_template=config.default_template)
    metadata_manager = TemplateMetadataManager()
    try:
        workflow = ProjectSetupWorkflow(prompter or Prompter(), config, resolver, metadata_manager)
        outcome = await workflow.run(_setup_options(options))
        if outcome.cancelled or outcome.result is None:
            return Ok(None)
        path = await _scaffold(
            outcome.result,
            options,
            config,
            resolver,
            fetcher or TemplateFetcher(resolver, metadata_manager),
            registry or default_registry,
        )
    except PromptCancelled:
        print_warning("Operation cancelled")
        return Ok(None)
    except CreateError as exc:
        return Err(exc)
    except Exception as exc:  # noqa: BLE001
        return Err(to_create_error(exc))
    return Ok(path)


async def handle_create_command(
    options: CreateOptions,
    config: Config | None = None,
    prompter: Prompter | None = None,
) -> int:
    """CLI entry for ``create``; returns the process exit status."""
    match await create_project(options, prompter, config):
        case Ok():
            return 0
        case Err(error=error):
            print_error(user_friendly_message(error, options.verbose))
            return exit_code_for(error.code)
    return 1


def build_render_context(
    result: ProjectSetupResult,
    metadata: TemplateMetadata | None = None,
) -> dict[str, Any]:
    """Variables available to every ``.j2`` file in a template.

    Template variable defaults from ``template.json`` are filled in for
    anything the user was not asked about.
    """
    c = result.customization
    variables: dict[str, Any] = {}
    if metadata is not None:
        variables = {v.name: v.default for v in metadata.variables or [] if v.default is not None}
    variables.update(c.variables)
    return {
        "project_name": result.project_name,
        "description": c.description,
        "author": c.author,
        "version": c.version,
        "package_manager": c.package_manager,
        "features": c.features,
        "variables": variables,
    }


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


def _setup_options(options: CreateOptions) -> SetupOptions:
    return SetupOptions(
        name=options.name,
        template=options.template,
        description=options.description,
        author=options.author,
        version=options.version,
        package_manager=options.package_manager,
        output_dir=options.output_dir,
        features=options.features,
        skip_prompts=options.skip_prompts,
        ai=options.ai,
        describe=options.describe,
        cwd=options.cwd,
    )


async def _scaffold(
    result: ProjectSetupResult,
    options: CreateOptions,
    config: Config,
    resolver: TemplateResolver,
    fetcher: TemplateFetcher,
    registry: FeatureRegistry,
) -> Path:
    started = time.monotonic()
    c = result.customization
    output_dir = c.output_dir if c.output_dir.is_absolute() else options.cwd / c.output_dir

    match resolver.validate(result.template):
        case Err(error=error):
            raise error
        case Ok(value=source):
            pass

    print_step_header("Creating project")
    if options.verbose:
        print_info(f"Template: {stringify_template_source(source)}")

    with tempfile.TemporaryDirectory(prefix="createkit-") as workdir:
        match await fetcher.fetch(source, Path(workdir)):
            case Err(error=error):
                raise error
            case Ok(value=fetched):
                pass

        if output_dir.exists() and not is_empty_dir(output_dir) and not options.force:
            raise CreateError(
                ErrorCode.DIRECTORY_EXISTS,
                f"Directory {output_dir} already exists and is not empty",
                details=["Use --force to write into it anyway"],
            )

        context = build_render_context(result, fetched.metadata)
        match await TemplateProcessor().process(fetched.path, output_dir, context, dry_run=options.dry_run):
            case Err(error=error):
                raise error
            case Ok(value=operations):
                if options.verbose:
                    print_info(f"Processed {len(operations)} template file(s)")

    if options.dry_run:
        if c.features:
            print_info(f"Would add features: {', '.join(c.features)}")
        print_info("Dry run complete. No files were written")
        return output_dir

    await _apply_features(output_dir, c.features, registry, options.verbose)

    if options.install:
        print_step_header("Installing dependencies")
        await install_dependencies(output_dir, c.package_manager, timeout=config.install_timeout)

    if options.git:
        await init_git(output_dir)

    _print_next_steps(result, output_dir, options, time.monotonic() - started)
    return output_dir


async def _apply_features(
    output_dir: Path,
    features: list[str],
    registry: FeatureRegistry,
    verbose: bool,
) -> None:
    if not features:
        return
    info = analyze_project(output_dir)
    for name in features:
        registry.check(name, info.type)
    for name in features:
        await registry.add_feature(
            name,
            FeatureContext(target_dir=output_dir, project_info=info, verbose=verbose, install=False),
        )


async def init_git(project_dir: Path) -> bool:
    """Initialise a git repository; failures only warn."""
    returncode, _, stderr = await run_command(["git", "init"], cwd=project_dir, timeout=30)
    if returncode != 0:
        print_warning(f"Failed to initialize git repository: {stderr or f'exit code {returncode}'}")
        return False
    print_info("Initialized git repository")
    return True


def _print_next_steps(
    result: ProjectSetupResult, output_dir: Path, options: CreateOptions, elapsed: float
) -> None:
    pm = result.customization.package_manager
    print_success(f"Created {result.project_name} in {output_dir} ({format_duration(elapsed)})")
    console.print("\n[bold]Next steps:[/bold]")
    try:
        shown = output_dir.relative_to(options.cwd)
    except ValueError:
        shown = output_dir
    steps = [f"cd {shown}"]
    if not options.install:
        steps.append(f"{pm} install")
    steps.append(f"{pm} run dev")
    for step in steps:
        console.print(f"  {step}", highlight=False, markup=False)
