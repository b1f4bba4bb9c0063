"""Template source resolution.

Turns a user-supplied template string into a ``TemplateSource``.  Accepted
forms::

    user/repo                       GitHub shorthand
    github:user/repo#v2/examples    explicit GitHub, ref ``v2``, subdir ``examples``
    https://example.com/t.tar.gz    URL
    ./path  ../path  /abs  ~/path   local directory
    library                         builtin template name

Classification is tried in that order and the first match wins.  Nothing here
writes to disk; validation only checks for existence.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, model_validator

from createkit.errors import CreateError, ErrorCode
from createkit.result import Err, Ok, Result
from createkit.utils import print_warning

BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "builtin"
DEFAULT_TEMPLATE = "default"

GITHUB_PREFIX = "github:"
GITHUB_PART_RE = re.compile(r"^[\w.-]+$")
GITHUB_LOCATION_RE = re.compile(r"^[\w.-]+/[\w.-]+$")

SourceType = Literal["github", "local", "url", "builtin"]


class TemplateSource(BaseModel):
    """Where a template comes from.  Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    type: SourceType
    location: str = Field(min_length=1)
    ref: str | None = None
    subdir: str | None = None

    @model_validator(mode="after")
    def _github_only_fields(self) -> "TemplateSource":
        if self.type != "github" and (self.ref or self.subdir):
            raise ValueError("ref and subdir are only valid for github sources")
        return self


class TemplateResolver:
    """Classifies, validates and normalizes template sources.

    Args:
        builtin_dir: Directory holding one sub-directory per builtin template.
        default_template: Builtin used when the input is empty or names an
            unknown builtin.
    """

    def __init__(
        self,
        builtin_dir: str | Path | None = None,
        default_template: str = DEFAULT_TEMPLATE,
    ) -> None:
        self.builtin_dir = Path(builtin_dir) if builtin_dir else BUILTIN_TEMPLATES_DIR
        self.default_template = default_template

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, raw: str | None, *, strict: bool = False) -> TemplateSource:
        """Classify *raw* into a ``TemplateSource``.

        Raises:
            CreateError: ``PATH_TRAVERSAL_ATTEMPT`` for a local path with a
                ``..`` segment (raised before touching the filesystem), or
                ``VALIDATION_FAILED`` when *strict* and a GitHub source is not
                owner/repo or has characters outside ``[\\w.-]``.
        """
        value = (raw or "").strip()
        if not value:
            return TemplateSource(type="builtin", location=self.default_template)

        github = _parse_github(value)
        if github is not None:
            if strict:
                _check_github_strict(github.location)
            return github

        if _is_url(value):
            return TemplateSource(type="url", location=value)

        if _is_local(value):
            _reject_traversal(value)
            return TemplateSource(
                type="local", location=os.path.abspath(os.path.expanduser(value))
            )

        if value in self.get_builtin_templates():
            return TemplateSource(type="builtin", location=value)

        print_warning(
            f'Unknown template "{value}", falling back to "{self.default_template}"'
        )
        return TemplateSource(type="builtin", location=self.default_template)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, source: TemplateSource) -> Result[TemplateSource, CreateError]:
        """Run the per-type checks for *source*.

        Returns ``Ok(source)`` or an ``Err`` whose ``details`` lists every
        problem found.
        """
        if "\0" in source.location:
            return Err(
                CreateError(ErrorCode.VALIDATION_FAILED, "Template source contains a null byte")
            )

        match source.type:
            case "github":
                errors = _github_errors(source.location)
                if errors:
                    return Err(
                        CreateError(
                            ErrorCode.TEMPLATE_INVALID,
                            f"Invalid GitHub template: {source.location}",
                            details=errors,
                        )
                    )
            case "url":
                if not _is_url(source.location):
                    return Err(
                        CreateError(
                            ErrorCode.TEMPLATE_INVALID,
                            f"Invalid template URL: {source.location}",
                        )
                    )
            case "local":
                path = Path(source.location)
                if not path.exists():
                    return Err(
                        CreateError(
                            ErrorCode.TEMPLATE_NOT_FOUND,
                            f"Local template not found: {source.location}",
                        )
                    )
                if not path.is_dir():
                    return Err(
                        CreateError(
                            ErrorCode.TEMPLATE_INVALID,
                            f"Local template is not a directory: {source.location}",
                        )
                    )
            case "builtin":
                if not self.get_builtin_template_path(source.location).is_dir():
                    return Err(
                        CreateError(
                            ErrorCode.TEMPLATE_NOT_FOUND,
                            f"Builtin template not found: {source.location}",
                            details=[f"Available: {', '.join(self.get_builtin_templates())}"],
                        )
                    )
        return Ok(source)

    def normalize(self, source: TemplateSource) -> TemplateSource:
        """Return a canonical copy of *source*.

        GitHub locations lose a trailing ``.git``; local paths become absolute.
        """
        if source.type == "github" and source.location.endswith(".git"):
            return source.model_copy(update={"location": source.location[: -len(".git")]})
        if source.type == "local":
            return source.model_copy(
                update={"location": os.path.abspath(os.path.expanduser(source.location))}
            )
        return source

    # ------------------------------------------------------------------
    # Builtin templates
    # ------------------------------------------------------------------

    def get_builtin_templates(self) -> list[str]:
        """Names of the builtin templates, sorted."""
        if not self.builtin_dir.is_dir():
            return []
        return sorted(p.name for p in self.builtin_dir.iterdir() if p.is_dir())

    def get_builtin_template_path(self, name: str) -> Path:
        return self.builtin_dir / name


# ---------------------------------------------------------------------------
# Source helpers
# ---------------------------------------------------------------------------


def stringify_template_source(source: TemplateSource) -> str:
    """Render *source* back into the template-string grammar."""
    if source.type != "github":
        return source.location
    text = f"{GITHUB_PREFIX}{source.location}"
    if source.ref:
        text += f"#{source.ref}"
    if source.subdir:
        text += f"/{source.subdir}"
    return text


def get_source_id(source: TemplateSource) -> str:
    """Stable identifier for *source*, suitable as a cache key."""
    parts = [source.type, source.location]
    if source.ref:
        parts += ["ref", source.ref]
    if source.subdir:
        parts += ["subdir", source.subdir]
    return ":".join(parts)


def are_sources_equal(a: TemplateSource, b: TemplateSource, resolver: TemplateResolver | None = None) -> bool:
    """Compare two sources after normalization."""
    resolver = resolver or TemplateResolver()
    return resolver.normalize(a) == resolver.normalize(b)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _looks_like_github_shorthand(value: str) -> bool:
    path_part = value.split("#", 1)[0]
    return (
        "/" in path_part
        and "://" not in value
        and not value.startswith(("./", "../", "/", "~"))
        and "." not in path_part
        and ":" not in path_part
        and "\\" not in path_part
    )


def _parse_github(value: str) -> TemplateSource | None:
    explicit = value.startswith(GITHUB_PREFIX)
    body = value[len(GITHUB_PREFIX):] if explicit else value
    if not explicit and not _looks_like_github_shorthand(body):
        return None

    path_part, _, ref_part = body.partition("#")
    segments = [segment for segment in path_part.split("/") if segment]
    if len(segments) < 2:
        if explicit:
            return TemplateSource(
                type="github", location=path_part.strip("/") or value, ref=ref_part or None
            )
        return None

    subdir_parts = segments[2:]
    ref: str | None = None
    if ref_part:
        ref, _, ref_subdir = ref_part.partition("/")
        if ref_subdir.strip("/"):
            subdir_parts.append(ref_subdir.strip("/"))

    return TemplateSource(
        type="github",
        location=f"{segments[0]}/{segments[1]}",
        ref=ref or None,
        subdir="/".join(subdir_parts) or None,
    )


def _github_errors(location: str) -> list[str]:
    parts = location.split("/")
    if len(parts) != 2:
        return [f"Expected owner/repo, got {location!r}"]
    errors: list[str] = []
    owner, repo = parts
    if not GITHUB_PART_RE.match(owner):
        errors.append(f"Invalid GitHub owner: {owner!r}")
    if not GITHUB_PART_RE.match(repo):
        errors.append(f"Invalid GitHub repository: {repo!r}")
    return errors


def _check_github_strict(location: str) -> None:
    errors = _github_errors(location)
    if errors:
        raise CreateError(
            ErrorCode.VALIDATION_FAILED,
            f"Invalid GitHub template: {location}",
            details=errors,
        )


def _is_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    if len(parsed.scheme) < 2:
        return False
    return bool(parsed.netloc) or parsed.scheme == "file"


def _is_local(value: str) -> bool:
    return value.startswith(("./", "../", "/", "~/")) or value in (".", "..", "~") or os.path.isabs(value)


def _reject_traversal(value: str) -> None:
    segments = re.split(r"[\\/]+", value)
    if ".." in segments:
        raise CreateError(
            ErrorCode.PATH_TRAVERSAL_ATTEMPT,
            f"Template path must not contain '..' segments: {value}",
            context={"path": value},
        )
