"""Choose the template for a new project."""

from __future__ import annotations

from createkit.errors import CreateError, user_friendly_message
from createkit.prompts.prompter import Choice, Prompter
from createkit.result import Ok
from createkit.templates.metadata import TemplateMetadata, TemplateMetadataManager
from createkit.templates.resolver import TemplateResolver, TemplateSource
from createkit.utils import print_error

CUSTOM = "custom"


def builtin_choices(resolver: TemplateResolver, metadata_manager: TemplateMetadataManager) -> list[Choice]:
    choices = []
    for name in resolver.get_builtin_templates():
        loaded = metadata_manager.load(resolver.get_builtin_template_path(name))
        hint = loaded.value.description if isinstance(loaded, Ok) else ""
        choices.append(Choice(value=name, label=name, hint=hint))
    return choices


def describe_template(metadata: TemplateMetadata) -> str:
    lines = [metadata.description, f"Version: {metadata.version}"]
    if metadata.author:
        lines.append(f"Author: {metadata.author}")
    if metadata.tags:
        lines.append(f"Tags: {', '.join(metadata.tags)}")
    if metadata.variables:
        lines.append(f"Variables: {', '.join(v.name for v in metadata.variables)}")
    return "\n".join(lines)


def select_template(
    prompter: Prompter,
    resolver: TemplateResolver,
    metadata_manager: TemplateMetadataManager,
    recommended: str | None = None,
) -> TemplateSource:
    """Ask for a builtin template (previewing its metadata) or a custom source."""
    choices = builtin_choices(resolver, metadata_manager)
    names = [c.value for c in choices]
    default = recommended if recommended in names else resolver.default_template
    choices.append(Choice(value=CUSTOM, label="Custom template", hint="GitHub repository, URL or local path"))

    picked = prompter.select("Choose a template", choices, default=default)
    if picked == CUSTOM:
        return ask_custom_source(prompter, resolver)

    loaded = metadata_manager.load(resolver.get_builtin_template_path(picked))
    if isinstance(loaded, Ok):
        prompter.note(f"Template: {picked}", describe_template(loaded.value))
    return resolver.resolve(picked)


def ask_custom_source(prompter: Prompter, resolver: TemplateResolver) -> TemplateSource:
    """Prompt until the entered source resolves and passes validation."""
    while True:
        raw = prompter.text(
            "Template source (owner/repo, URL or path)",
            validate=lambda v: None if v else "Template source is required",
        )
        try:
            source = resolver.resolve(raw, strict=True)
        except CreateError as exc:
            print_error(user_friendly_message(exc))
            continue
        match resolver.validate(source):
            case Ok(value=valid):
                return valid
            case err:
                print_error(user_friendly_message(err.error))
