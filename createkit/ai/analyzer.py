"""Turn a free-text project description into setup recommendations.

``ProjectAnalyzer.analyze`` asks the LLM for a JSON analysis and normalises
it into a ``ProjectAnalysis``.  When no provider is usable, or the reply
cannot be parsed, a keyword-based analysis is returned instead.  A failed
provider request raises ``CreateError`` so the caller can report why AI was
skipped.
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from createkit.ai.client import LLMClient
from createkit.ai.registry_cache import DependencyRecommender
from createkit.errors import CreateError, ErrorCode
from createkit.utils import print_warning

SYSTEM_PROMPT = (
    "You are an expert TypeScript and Node.js consultant. Classify the project, "
    "recommend a starter template and the essential dependencies and tooling. "
    "Prefer TypeScript-first, well-maintained packages. Reply with JSON only."
)

RESPONSE_FORMAT = {
    "projectType": "library | cli | web-app | api | config | other",
    "confidence": 0.9,
    "description": "Brief project summary",
    "features": ["typescript", "eslint", "prettier", "vitest"],
    "templates": ["default | library | cli | node | react"],
    "dependencies": [{"name": "package-name", "isDev": False}],
}

# (keywords, project type, template), checked in order
KEYWORD_RULES: list[tuple[tuple[str, ...], str, str]] = [
    (("cli", "command"), "cli", "cli"),
    (("lib", "package", "npm"), "library", "library"),
    (("react", "web", "frontend"), "web-app", "react"),
    (("api", "server", "backend"), "api", "node"),
]

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ProjectAnalysis(BaseModel):
    """Recommendations for a new project."""

    project_type: str = Field(default="other")
    confidence: float = Field(default=0.5)
    description: str = Field(default="")
    features: list[str] = Field(default_factory=list)
    templates: list[str] = Field(default_factory=list, description="Recommended builtin templates, best first")
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)
    source: Literal["ai", "fallback"] = Field(default="ai")

    @field_validator("confidence")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return max(0.0, min(1.0, value))


class ProjectAnalyzer:
    """Analyses project descriptions with an ``LLMClient``."""

    def __init__(self, client: LLMClient, recommender: DependencyRecommender | None = None) -> None:
        self.client = client
        self.recommender = recommender

    async def analyze(
        self,
        description: str,
        name: str | None = None,
        package_manager: str | None = None,
    ) -> ProjectAnalysis:
        """Return recommendations for the described project.

        Raises:
            CreateError: with the provider's ``AI_*`` code when the request
                fails.
        """
        if not self.client.is_available():
            return keyword_analysis(description, name)

        prompt = build_prompt(description, name, package_manager)
        response = await self.client.complete(prompt, system=SYSTEM_PROMPT)
        if not response.success:
            raise CreateError(
                response.error_code or ErrorCode.AI_REQUEST_FAILED,
                response.error or "AI request failed",
            )

        try:
            analysis = parse_analysis(response.content, name)
        except CreateError as exc:
            print_warning(f"{exc.message}; using keyword analysis")
            return keyword_analysis(description, name)

        if self.recommender is not None:
            analysis.dependencies = await self.recommender.verify(analysis.dependencies)
            analysis.dev_dependencies = await self.recommender.verify(analysis.dev_dependencies)
        return analysis


def build_prompt(description: str, name: str | None = None, package_manager: str | None = None) -> str:
    parts = ["Please analyze the following project requirements and provide recommendations:"]
    if name:
        parts.append(f"Project Name: {name}")
    if description.strip():
        parts.append(f"Description: {description.strip()}")
    if package_manager:
        parts.append(f"Package manager: {package_manager}")
    parts += ["", "Respond in the following JSON format:", json.dumps(RESPONSE_FORMAT, indent=2)]
    return "\n".join(parts)


def parse_analysis(content: str, name: str | None = None) -> ProjectAnalysis:
    """Extract the JSON object from an LLM reply (fenced or bare).

    Raises:
        CreateError: ``AI_RESPONSE_INVALID`` if no JSON object can be parsed.
    """
    match = _JSON_OBJECT.search(content)
    if match is None:
        raise CreateError(ErrorCode.AI_RESPONSE_INVALID, "No JSON found in AI response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise CreateError(ErrorCode.AI_RESPONSE_INVALID, f"Failed to parse AI response: {exc}") from exc
    if not isinstance(data, dict):
        raise CreateError(ErrorCode.AI_RESPONSE_INVALID, "AI response is not a JSON object")

    runtime: list[str] = []
    dev: list[str] = []
    for dep in _as_list(data.get("dependencies")):
        if isinstance(dep, str):
            runtime.append(dep)
        elif isinstance(dep, dict) and dep.get("name"):
            is_dev = dep.get("isDev") or dep.get("type") == "dev"
            (dev if is_dev else runtime).append(str(dep["name"]))

    try:
        confidence = float(data.get("confidence", 0.5))
    except (TypeError, ValueError):
        confidence = 0.5

    return ProjectAnalysis(
        project_type=str(data.get("projectType") or "other"),
        confidence=confidence,
        description=str(data.get("description") or name or "Project"),
        features=[str(f) for f in _as_list(data.get("features")) if isinstance(f, str)],
        templates=[t for t in (_template_name(t) for t in _as_list(data.get("templates"))) if t],
        dependencies=runtime,
        dev_dependencies=dev,
        source="ai",
    )


def keyword_analysis(description: str, name: str | None = None) -> ProjectAnalysis:
    """Classify the project by keywords in its description."""
    text = description.lower()
    project_type, template, confidence = "other", "default", 0.6
    for keywords, rule_type, rule_template in KEYWORD_RULES:
        if any(keyword in text for keyword in keywords):
            project_type, template, confidence = rule_type, rule_template, 0.7
            break
    return ProjectAnalysis(
        project_type=project_type,
        confidence=confidence,
        description=description or name or "TypeScript project",
        features=["typescript", "eslint", "prettier"],
        templates=[template],
        dev_dependencies=["typescript", "eslint", "prettier"],
        source="fallback",
    )


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _template_name(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        source = value.get("source")
        if isinstance(source, dict) and source.get("location"):
            return str(source["location"])
        if value.get("name"):
            return str(value["name"])
    return None
