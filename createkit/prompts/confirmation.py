"""Final review of the chosen settings before anything is written."""

from __future__ import annotations

from typing import TYPE_CHECKING

from createkit.prompts.prompter import Prompter
from createkit.templates.resolver import stringify_template_source
from createkit.utils import print_summary_table

if TYPE_CHECKING:
    from createkit.prompts.project_setup import ProjectSetupResult


def summary_rows(result: "ProjectSetupResult") -> dict[str, str]:
    c = result.customization
    rows = {
        "Project name": result.project_name,
        "Template": stringify_template_source(result.template),
        "Description": c.description or "-",
        "Author": c.author or "-",
        "Version": c.version,
        "Package manager": c.package_manager,
        "Output directory": str(c.output_dir),
        "Features": ", ".join(c.features) or "none",
    }
    for name, value in c.variables.items():
        rows[f"Variable: {name}"] = str(value)
    if result.ai_analysis is not None:
        rows["AI analysis"] = f"{result.ai_analysis.project_type} ({result.ai_analysis.confidence:.0%})"
    return rows


def confirm_setup(prompter: Prompter, result: "ProjectSetupResult") -> bool:
    """Show the summary table and require an explicit yes."""
    print_summary_table(summary_rows(result), title="Project summary")
    return prompter.confirm("Create project with these settings?", default=True)
