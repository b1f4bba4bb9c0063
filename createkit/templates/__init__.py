"""createkit templates -- resolving, fetching and rendering project templates.

Key classes:
    TemplateResolver         - Classify a template string into a TemplateSource
    TemplateMetadataManager  - Load/validate/save ``template.json``
    TemplateFetcher          - Make any source available as a local directory
    TemplateProcessor        - Render a template directory into a project
"""

from createkit.templates.fetcher import FetchedTemplate, TemplateFetcher
from createkit.templates.metadata import TemplateMetadata, TemplateMetadataManager, TemplateVariable
from createkit.templates.processor import FileOperation, TemplateProcessor
from createkit.templates.resolver import (
    TemplateResolver,
    TemplateSource,
    are_sources_equal,
    get_source_id,
    stringify_template_source,
)

__all__ = [
    "FetchedTemplate",
    "FileOperation",
    "TemplateFetcher",
    "TemplateMetadata",
    "TemplateMetadataManager",
    "TemplateProcessor",
    "TemplateResolver",
    "TemplateSource",
    "TemplateVariable",
    "are_sources_equal",
    "get_source_id",
    "stringify_template_source",
]
