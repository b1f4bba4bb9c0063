"""Template manifest (``template.json``) loading, validation and saving.

A template directory may ship a ``template.json`` describing itself and the
variables it accepts.  The manifest is optional: without one the template gets
default metadata derived from its directory name.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
    model_validator,
)

from createkit.errors import CreateError, ErrorCode
from createkit.result import Err, Ok, Result
from createkit.utils import dump_json, print_warning

MANIFEST_NAME = "template.json"
DEFAULT_DESCRIPTION = "Template description not available"
DEFAULT_VERSION = "1.0.0"
SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+")

# Serialisation order for known keys; anything else follows in insertion order.
KEY_ORDER = [
    "name",
    "description",
    "version",
    "author",
    "tags",
    "variables",
    "dependencies",
    "nodeVersion",
]


class TemplateVariable(BaseModel):
    """A value the template asks the user for."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    description: str
    type: Literal["string", "boolean", "number", "select"]
    default: Any = None
    required: StrictBool | None = None
    options: list[str] | None = None
    pattern: str | None = None

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"pattern is not a valid regular expression: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _select_has_options(self) -> "TemplateVariable":
        if self.type == "select" and not self.options:
            raise ValueError(f"variable {self.name!r} of type select requires options")
        return self


class TemplateMetadata(BaseModel):
    """Parsed ``template.json``.  Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    description: str
    version: str
    author: str | None = None
    tags: list[str] | None = None
    variables: list[TemplateVariable] | None = None
    dependencies: list[str] | None = None
    node_version: str | None = Field(default=None, alias="nodeVersion")

    def to_manifest(self) -> dict[str, Any]:
        """Return a JSON-ready dict with keys in the canonical order."""
        data = self.model_dump(by_alias=True, exclude_none=True, exclude={"variables"})
        if self.variables is not None:
            data["variables"] = [v.model_dump(exclude_none=True) for v in self.variables]
        ordered = {key: data.pop(key) for key in KEY_ORDER if key in data}
        ordered.update(data)
        return ordered


class MetadataValidation(BaseModel):
    """Outcome of validating a raw manifest."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    metadata: TemplateMetadata | None = None


class TemplateMetadataManager:
    """Loads, validates and writes template manifests."""

    def load(self, template_dir: str | Path) -> Result[TemplateMetadata, CreateError]:
        """Read ``template.json`` from *template_dir*.

        A missing manifest is not an error: defaults are returned.  A manifest
        with schema problems fails with every violation listed in ``details``.
        """
        directory = Path(template_dir)
        manifest = directory / MANIFEST_NAME
        if not manifest.exists():
            return Ok(
                TemplateMetadata(
                    name=directory.resolve().name or "template",
                    description=DEFAULT_DESCRIPTION,
                    version=DEFAULT_VERSION,
                )
            )

        try:
            raw = json.loads(manifest.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return Err(
                CreateError(
                    ErrorCode.TEMPLATE_METADATA_INVALID,
                    f"Malformed {MANIFEST_NAME} in {directory}",
                    details=[str(exc)],
                )
            )
        except OSError as exc:
            return Err(
                CreateError(
                    ErrorCode.FILE_SYSTEM_ERROR,
                    f"Could not read {manifest}: {exc}",
                )
            )

        validation = self.validate(raw)
        if not validation.valid or validation.metadata is None:
            return Err(
                CreateError(
                    ErrorCode.TEMPLATE_METADATA_INVALID,
                    f"Invalid {MANIFEST_NAME} in {directory}",
                    details=validation.errors,
                )
            )
        for warning in validation.warnings:
            print_warning(warning)
        return Ok(validation.metadata)

    def validate(self, raw: Any) -> MetadataValidation:
        """Check *raw* against the manifest schema.

        All violations are collected; a non-semver version is only a warning.
        """
        if not isinstance(raw, dict):
            return MetadataValidation(
                valid=False, errors=["Template metadata must be a JSON object"]
            )

        try:
            metadata = TemplateMetadata.model_validate(raw)
        except ValidationError as exc:
            return MetadataValidation(valid=False, errors=_format_errors(exc))

        warnings: list[str] = []
        if not SEMVER_RE.match(metadata.version):
            warnings.append(
                f'Version "{metadata.version}" does not follow semantic versioning (x.y.z)'
            )
        return MetadataValidation(valid=True, warnings=warnings, metadata=metadata)

    def save(
        self, template_dir: str | Path, metadata: TemplateMetadata
    ) -> Result[None, CreateError]:
        """Validate *metadata* and write it to ``<template_dir>/template.json``."""
        manifest = metadata.to_manifest()
        validation = self.validate(manifest)
        if not validation.valid:
            return Err(
                CreateError(
                    ErrorCode.TEMPLATE_METADATA_INVALID,
                    "Refusing to save invalid template metadata",
                    details=validation.errors,
                )
            )
        target = Path(template_dir) / MANIFEST_NAME
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(dump_json(manifest), encoding="utf-8")
        except OSError as exc:
            return Err(CreateError(ErrorCode.FILE_SYSTEM_ERROR, f"Could not write {target}: {exc}"))
        return Ok(None)

    def create(
        self,
        template_dir: str | Path,
        name: str,
        description: str,
        author: str | None = None,
        tags: list[str] | None = None,
    ) -> Result[TemplateMetadata, CreateError]:
        """Write a fresh manifest for a new template."""
        metadata = TemplateMetadata(
            name=name,
            description=description,
            version=DEFAULT_VERSION,
            author=author,
            tags=tags,
        )
        match self.save(template_dir, metadata):
            case Err() as failure:
                return failure
        return Ok(metadata)


def _format_errors(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        messages.append(f"{location}: {error['msg']}")
    return messages
