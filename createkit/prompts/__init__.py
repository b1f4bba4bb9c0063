"""createkit prompts -- the interactive ``create`` workflow.

Key classes:
    Prompter              - rich.prompt-backed question asker
    ProjectSetupWorkflow  - Forward-only state machine collecting the setup
    SetupOutcome          - Final state, result and visited states
"""

from createkit.prompts.customization import ProjectCustomization, validate_customization
from createkit.prompts.project_setup import (
    ProjectSetupResult,
    ProjectSetupWorkflow,
    SetupOptions,
    SetupOutcome,
    WorkflowState,
)
from createkit.prompts.prompter import Choice, PromptCancelled, Prompter

__all__ = [
    "Choice",
    "ProjectCustomization",
    "ProjectSetupResult",
    "ProjectSetupWorkflow",
    "PromptCancelled",
    "Prompter",
    "SetupOptions",
    "SetupOutcome",
    "WorkflowState",
    "validate_customization",
]
