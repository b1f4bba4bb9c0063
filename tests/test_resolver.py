"""Unit tests for template source resolution (createkit.templates.resolver).

Tests cover:
- GitHub shorthand, explicit prefix, ref and subdir parsing
- URL, local path and builtin classification
- Unknown builtin fallback and empty input
- Path traversal rejection and strict mode
- validate() per source type
- normalize / stringify / get_source_id / are_sources_equal
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from createkit.errors import CreateError, ErrorCode
from createkit.result import Err, Ok
from createkit.templates.resolver import (
    TemplateResolver,
    TemplateSource,
    are_sources_equal,
    get_source_id,
    stringify_template_source,
)


@pytest.fixture
def resolver() -> TemplateResolver:
    return TemplateResolver()


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestResolveGithub:
    @pytest.mark.unit
    def test_shorthand(self, resolver: TemplateResolver):
        source = resolver.resolve("user/repo")
        assert source == TemplateSource(type="github", location="user/repo")
        assert source.ref is None
        assert source.subdir is None

    @pytest.mark.unit
    def test_ref_and_subdir(self, resolver: TemplateResolver):
        source = resolver.resolve("user/repo#v2/examples/basic")
        assert source.type == "github"
        assert source.location == "user/repo"
        assert source.ref == "v2"
        assert source.subdir == "examples/basic"

    @pytest.mark.unit
    def test_explicit_prefix(self, resolver: TemplateResolver):
        source = resolver.resolve("github:acme/starter.js#main")
        assert source.location == "acme/starter.js"
        assert source.ref == "main"

    @pytest.mark.unit
    def test_subdir_from_path(self, resolver: TemplateResolver):
        source = resolver.resolve("user/repo/packages/app")
        assert source.location == "user/repo"
        assert source.subdir == "packages/app"

    @pytest.mark.unit
    def test_explicit_prefix_without_repo_defers_to_validate(self, resolver: TemplateResolver):
        source = resolver.resolve("github:onlyowner")
        assert source == TemplateSource(type="github", location="onlyowner")
        result = resolver.validate(source)
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.TEMPLATE_INVALID
        assert result.error.details == ["Expected owner/repo, got 'onlyowner'"]

    @pytest.mark.unit
    def test_strict_rejects_missing_repo(self, resolver: TemplateResolver):
        with pytest.raises(CreateError) as exc_info:
            resolver.resolve("github:onlyowner", strict=True)
        assert exc_info.value.code is ErrorCode.VALIDATION_FAILED

    @pytest.mark.unit
    def test_strict_rejects_bad_characters(self, resolver: TemplateResolver):
        with pytest.raises(CreateError) as exc_info:
            resolver.resolve("user/re po", strict=True)
        assert exc_info.value.code is ErrorCode.VALIDATION_FAILED

    @pytest.mark.unit
    def test_lenient_mode_defers_to_validate(self, resolver: TemplateResolver):
        source = resolver.resolve("user/re po")
        result = resolver.validate(source)
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.TEMPLATE_INVALID
        assert any("re po" in detail for detail in result.error.details)


class TestResolveOtherTypes:
    @pytest.mark.unit
    def test_url(self, resolver: TemplateResolver):
        source = resolver.resolve("https://example.com/t.tar.gz")
        assert source == TemplateSource(type="url", location="https://example.com/t.tar.gz")

    @pytest.mark.unit
    def test_relative_local_path_is_absolute(self, resolver: TemplateResolver):
        source = resolver.resolve("./my-template")
        assert source.type == "local"
        assert Path(source.location).is_absolute()
        assert source.location.endswith("my-template")

    @pytest.mark.unit
    def test_absolute_local_path(self, resolver: TemplateResolver, tmp_path: Path):
        source = resolver.resolve(str(tmp_path))
        assert source == TemplateSource(type="local", location=str(tmp_path))

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ["../secret", "./a/../../b", "..", "/tmp/x/../y"])
    def test_traversal_rejected(self, resolver: TemplateResolver, raw: str):
        with pytest.raises(CreateError) as exc_info:
            resolver.resolve(raw)
        assert exc_info.value.code is ErrorCode.PATH_TRAVERSAL_ATTEMPT

    @pytest.mark.unit
    def test_builtin(self, resolver: TemplateResolver):
        assert resolver.resolve("library") == TemplateSource(type="builtin", location="library")

    @pytest.mark.unit
    def test_unknown_builtin_falls_back(self, resolver: TemplateResolver, capsys):
        source = resolver.resolve("no-such-template")
        assert source == TemplateSource(type="builtin", location="default")
        assert "no-such-template" in capsys.readouterr().out

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_input_uses_default(self, resolver: TemplateResolver, raw):
        assert resolver.resolve(raw) == TemplateSource(type="builtin", location="default")

    @pytest.mark.unit
    def test_custom_default(self):
        resolver = TemplateResolver(default_template="cli")
        assert resolver.resolve("").location == "cli"


class TestTemplateSourceModel:
    @pytest.mark.unit
    def test_ref_only_for_github(self):
        with pytest.raises(ValidationError):
            TemplateSource(type="url", location="https://x", ref="main")

    @pytest.mark.unit
    def test_frozen(self):
        source = TemplateSource(type="builtin", location="default")
        with pytest.raises(ValidationError):
            source.location = "cli"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidate:
    @pytest.mark.unit
    def test_valid_github(self, resolver: TemplateResolver):
        source = TemplateSource(type="github", location="user/repo")
        assert resolver.validate(source) == Ok(source)

    @pytest.mark.unit
    def test_github_lists_every_problem(self, resolver: TemplateResolver):
        result = resolver.validate(TemplateSource(type="github", location="b@d/w!de"))
        assert isinstance(result, Err)
        assert len(result.error.details) == 2

    @pytest.mark.unit
    def test_null_byte(self, resolver: TemplateResolver):
        result = resolver.validate(TemplateSource(type="local", location="/tmp/a\0b"))
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.VALIDATION_FAILED

    @pytest.mark.unit
    def test_missing_local(self, resolver: TemplateResolver, tmp_path: Path):
        result = resolver.validate(TemplateSource(type="local", location=str(tmp_path / "gone")))
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.TEMPLATE_NOT_FOUND

    @pytest.mark.unit
    def test_local_file_is_not_a_template(self, resolver: TemplateResolver, tmp_path: Path):
        path = tmp_path / "file.txt"
        path.write_text("x", encoding="utf-8")
        result = resolver.validate(TemplateSource(type="local", location=str(path)))
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.TEMPLATE_INVALID

    @pytest.mark.unit
    def test_existing_local(self, resolver: TemplateResolver, tmp_path: Path):
        source = TemplateSource(type="local", location=str(tmp_path))
        assert isinstance(resolver.validate(source), Ok)

    @pytest.mark.unit
    def test_bad_url(self, resolver: TemplateResolver):
        result = resolver.validate(TemplateSource(type="url", location="not a url"))
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.TEMPLATE_INVALID

    @pytest.mark.unit
    def test_missing_builtin(self, resolver: TemplateResolver):
        result = resolver.validate(TemplateSource(type="builtin", location="nope"))
        assert isinstance(result, Err)
        assert result.error.code is ErrorCode.TEMPLATE_NOT_FOUND
        assert "default" in result.error.details[0]


class TestBuiltins:
    @pytest.mark.unit
    def test_shipped_builtins(self, resolver: TemplateResolver):
        assert resolver.get_builtin_templates() == ["cli", "default", "library", "node", "react"]

    @pytest.mark.unit
    def test_custom_builtin_dir(self, tmp_path: Path):
        (tmp_path / "alpha").mkdir()
        (tmp_path / "notes.txt").write_text("", encoding="utf-8")
        resolver = TemplateResolver(builtin_dir=tmp_path)
        assert resolver.get_builtin_templates() == ["alpha"]
        assert resolver.get_builtin_template_path("alpha") == tmp_path / "alpha"

    @pytest.mark.unit
    def test_missing_builtin_dir(self, tmp_path: Path):
        assert TemplateResolver(builtin_dir=tmp_path / "none").get_builtin_templates() == []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSourceHelpers:
    @pytest.mark.unit
    def test_normalize_strips_git_suffix(self, resolver: TemplateResolver):
        source = TemplateSource(type="github", location="user/repo.git")
        assert resolver.normalize(source).location == "user/repo"

    @pytest.mark.unit
    def test_stringify_roundtrip(self, resolver: TemplateResolver):
        source = resolver.resolve("user/repo#v2/examples/basic")
        assert stringify_template_source(source) == "github:user/repo#v2/examples/basic"
        assert resolver.resolve(stringify_template_source(source)) == source

    @pytest.mark.unit
    def test_stringify_non_github(self):
        assert stringify_template_source(TemplateSource(type="builtin", location="cli")) == "cli"

    @pytest.mark.unit
    def test_source_id(self):
        source = TemplateSource(type="github", location="user/repo", ref="v2", subdir="x")
        assert get_source_id(source) == "github:user/repo:ref:v2:subdir:x"
        assert get_source_id(TemplateSource(type="builtin", location="cli")) == "builtin:cli"

    @pytest.mark.unit
    def test_sources_equal_after_normalization(self):
        a = TemplateSource(type="github", location="user/repo.git")
        b = TemplateSource(type="github", location="user/repo")
        assert are_sources_equal(a, b)
        assert not are_sources_equal(a, TemplateSource(type="github", location="user/other"))
