"""Interactive project setup as a forward-only state machine.

States run in this order, each at most once::

    START -> NAME_COLLECTION -> AI_ANALYSIS -> TEMPLATE_SELECTION
          -> CUSTOMIZATION -> CONFIRMATION -> COMPLETE

NAME_COLLECTION is skipped when a name was supplied and AI_ANALYSIS when AI
was not requested or is unavailable.  Any state can move to CANCELLED.
Nothing here touches the filesystem; the caller acts on the returned
``SetupOutcome``.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from createkit.ai.analyzer import ProjectAnalysis, ProjectAnalyzer
from createkit.ai.availability import get_ai_availability
from createkit.ai.client import create_llm_client
from createkit.ai.registry_cache import DependencyRecommender, PackageExistenceCache
from createkit.config import Config
from createkit.errors import CreateError, ErrorCode
from createkit.project_detection import detect_package_manager
from createkit.prompts.confirmation import confirm_setup
from createkit.prompts.customization import (
    ProjectCustomization,
    customize_project,
    optional_features,
    validate_customization,
)
from createkit.prompts.prompter import Prompter, PromptCancelled
from createkit.prompts.template_selection import select_template
from createkit.result import Ok
from createkit.templates.metadata import TemplateMetadata, TemplateMetadataManager
from createkit.templates.resolver import TemplateResolver, TemplateSource
from createkit.utils import print_info, print_step_header, print_warning, sanitize_name

NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$|^[a-z0-9]$")


class WorkflowState(str, Enum):
    START = "start"
    NAME_COLLECTION = "name_collection"
    AI_ANALYSIS = "ai_analysis"
    TEMPLATE_SELECTION = "template_selection"
    CUSTOMIZATION = "customization"
    CONFIRMATION = "confirmation"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


_ORDER = [
    WorkflowState.START,
    WorkflowState.NAME_COLLECTION,
    WorkflowState.AI_ANALYSIS,
    WorkflowState.TEMPLATE_SELECTION,
    WorkflowState.CUSTOMIZATION,
    WorkflowState.CONFIRMATION,
    WorkflowState.COMPLETE,
]


class SetupOptions(BaseModel):
    """Values supplied up front (usually from the command line)."""

    name: str | None = None
    template: str | None = None
    description: str | None = None
    author: str | None = None
    version: str | None = None
    package_manager: str | None = None
    output_dir: Path | None = None
    features: list[str] | None = None
    skip_prompts: bool = False
    ai: bool = False
    describe: str | None = None
    cwd: Path = Field(default_factory=Path.cwd)


class ProjectSetupResult(BaseModel):
    project_name: str
    template: TemplateSource
    customization: ProjectCustomization
    ai_analysis: ProjectAnalysis | None = None


@dataclass
class SetupOutcome:
    state: WorkflowState
    result: ProjectSetupResult | None = None
    history: list[WorkflowState] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.state is WorkflowState.CANCELLED


def project_name_error(name: str) -> str | None:
    if not name:
        return "Project name is required"
    if NAME_RE.match(name) is None:
        return (
            "Project name must contain only lowercase letters, numbers and hyphens, "
            "and must start and end with a letter or number"
        )
    return None


def classify_ai_failure(exc: BaseException) -> str:
    """Short reason shown when AI analysis is skipped after an error."""
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "request timed out"
    text = str(exc).lower()
    code = getattr(exc, "code", None)
    if code is ErrorCode.AI_TIMEOUT or "timed out" in text or "timeout" in text:
        return "request timed out"
    if "rate limit" in text or "429" in text:
        return "rate limit exceeded"
    if "401" in text or "403" in text or "api key" in text or "authentication" in text:
        return "authentication failed"
    if "connect" in text or "network" in text:
        return "network error"
    return "unexpected error"


class ProjectSetupWorkflow:
    """Drives the prompts for ``create`` and returns the collected choices.

    Args:
        prompter: Where questions are asked.
        config: Global configuration (AI settings, defaults).
        resolver: Template resolver; a default one is built when omitted.
        metadata_manager: Used for template previews and variables.
        analyzer: AI analyzer; built from ``config.ai`` on first use.
    """

    def __init__(
        self,
        prompter: Prompter,
        config: Config | None = None,
        resolver: TemplateResolver | None = None,
        metadata_manager: TemplateMetadataManager | None = None,
        analyzer: ProjectAnalyzer | None = None,
    ) -> None:
        self.prompter = prompter
        self.config = config or Config()
        self.resolver = resolver or TemplateResolver(default_template=self.config.default_template)
        self.metadata_manager = metadata_manager or TemplateMetadataManager()
        self.analyzer = analyzer
        self.history: list[WorkflowState] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, options: SetupOptions) -> SetupOutcome:
        """Run the workflow to COMPLETE or CANCELLED.

        Raises:
            CreateError: ``INVALID_PROJECT_NAME`` for a supplied name that
                fails validation, ``VALIDATION_FAILED`` in non-interactive
                mode without a name or with invalid settings.
        """
        self.history = []
        self._enter(WorkflowState.START)

        if options.skip_prompts:
            result = self._non_interactive(options)
            self._enter(WorkflowState.COMPLETE)
            return SetupOutcome(WorkflowState.COMPLETE, result, list(self.history))

        try:
            name = self._collect_name(options)
            analysis = await self._analyze(name, options)
            template = self._select_template(options, analysis)
            customization = self._customize(name, template, options, analysis)
            result = ProjectSetupResult(
                project_name=name,
                template=template,
                customization=customization,
                ai_analysis=analysis,
            )
            self._enter(WorkflowState.CONFIRMATION)
            if not confirm_setup(self.prompter, result):
                raise PromptCancelled("Project creation cancelled")
        except PromptCancelled as exc:
            print_warning(str(exc) or "Operation cancelled")
            self._enter(WorkflowState.CANCELLED)
            return SetupOutcome(WorkflowState.CANCELLED, None, list(self.history))

        self._enter(WorkflowState.COMPLETE)
        return SetupOutcome(WorkflowState.COMPLETE, result, list(self.history))

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _enter(self, state: WorkflowState) -> None:
        if state is not WorkflowState.CANCELLED and self.history:
            if _ORDER.index(state) <= _ORDER.index(self.history[-1]):
                raise RuntimeError(f"Invalid workflow transition {self.history[-1].value} -> {state.value}")
        self.history.append(state)

    def _collect_name(self, options: SetupOptions) -> str:
        if options.name:
            self._check_name(options.name)
            return options.name
        self._enter(WorkflowState.NAME_COLLECTION)
        print_step_header("Project name")
        return self.prompter.text("Project name", validate=project_name_error)

    async def _analyze(self, name: str, options: SetupOptions) -> ProjectAnalysis | None:
        if not (options.ai or options.describe):
            return None
        availability = get_ai_availability(self.config.ai)
        if not availability.available:
            print_warning(f"AI assistance unavailable: {availability.reason}")
            return None

        self._enter(WorkflowState.AI_ANALYSIS)
        print_step_header("AI analysis")
        description = options.describe or self.prompter.text(
            "Describe your project",
            validate=lambda v: None if v else "A description is required for AI analysis",
        )
        analyzer = self.analyzer or ProjectAnalyzer(
            create_llm_client(self.config.ai), DependencyRecommender(PackageExistenceCache())
        )
        try:
            analysis = await asyncio.wait_for(
                analyzer.analyze(description, name, options.package_manager),
                timeout=self.config.ai.timeout,
            )
        except Exception as exc:  # noqa: BLE001
            print_warning(f"AI analysis skipped ({classify_ai_failure(exc)}); continuing without AI")
            return None

        print_info(
            f"Detected {analysis.project_type} project "
            f"({analysis.confidence:.0%} confidence, {analysis.source})"
        )
        return analysis

    def _select_template(self, options: SetupOptions, analysis: ProjectAnalysis | None) -> TemplateSource:
        self._enter(WorkflowState.TEMPLATE_SELECTION)
        if options.template:
            return self.resolver.resolve(options.template)

        builtins = self.resolver.get_builtin_templates()
        recommended = next((t for t in (analysis.templates if analysis else []) if t in builtins), None)
        if recommended is not None:
            print_info(f"Using recommended template: {recommended}")
            return self.resolver.resolve(recommended)

        print_step_header("Template")
        return select_template(self.prompter, self.resolver, self.metadata_manager)

    def _customize(
        self,
        name: str,
        template: TemplateSource,
        options: SetupOptions,
        analysis: ProjectAnalysis | None,
    ) -> ProjectCustomization:
        self._enter(WorkflowState.CUSTOMIZATION)
        print_step_header("Customization")
        customization = customize_project(
            self.prompter,
            template,
            self._defaults(name, template, options, analysis),
            self._builtin_metadata(template),
        )
        self._check_customization(customization)
        return customization

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _non_interactive(self, options: SetupOptions) -> ProjectSetupResult:
        if not options.name:
            raise CreateError(
                ErrorCode.VALIDATION_FAILED,
                "Project name is required when prompts are skipped",
            )
        self._check_name(options.name)
        template = self.resolver.resolve(options.template)
        customization = self._defaults(options.name, template, options, None)
        self._check_customization(customization)
        return ProjectSetupResult(project_name=options.name, template=template, customization=customization)

    def _defaults(
        self,
        name: str,
        template: TemplateSource,
        options: SetupOptions,
        analysis: ProjectAnalysis | None,
    ) -> ProjectCustomization:
        if options.features is not None:
            features = list(options.features)
        elif analysis is not None:
            features = [f for f in analysis.features if f in optional_features(template)]
        else:
            features = []
        return ProjectCustomization(
            description=options.description or (analysis.description if analysis else ""),
            author=options.author or "",
            version=options.version or "0.1.0",
            package_manager=options.package_manager
            or detect_package_manager(options.cwd)
            or self.config.default_package_manager,
            output_dir=options.output_dir or options.cwd / name,
            features=features,
        )

    def _builtin_metadata(self, template: TemplateSource) -> TemplateMetadata | None:
        if template.type != "builtin":
            return None
        loaded = self.metadata_manager.load(self.resolver.get_builtin_template_path(template.location))
        return loaded.value if isinstance(loaded, Ok) else None

    @staticmethod
    def _check_name(name: str) -> None:
        error = project_name_error(name)
        if error is not None:
            details = [error]
            suggestion = sanitize_name(name)
            if suggestion and project_name_error(suggestion) is None:
                details.append(f"Try: {suggestion}")
            raise CreateError(ErrorCode.INVALID_PROJECT_NAME, f"Invalid project name {name!r}", details=details)

    @staticmethod
    def _check_customization(customization: ProjectCustomization) -> None:
        errors = validate_customization(customization)
        if errors:
            raise CreateError(ErrorCode.VALIDATION_FAILED, "Invalid project settings", details=errors)
