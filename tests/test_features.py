"""Unit tests for the feature handlers and the feature registry.

Tests cover:
- typescript: fresh config, merge into existing tsconfig, dry run, idempotence
- eslint / prettier / vitest: config files, dependencies, scripts
- react-component / vue-component: generated files and option validation
- FeatureRegistry: lookup, support checks, planned files, dispatch, install
- Dry run of every registered feature leaves the project untouched
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from createkit.errors import CreateError, ErrorCode
from createkit.features import FeatureContext, build_default_registry
from createkit.features.common import FeatureOutcome
from createkit.features.registry import FeatureInfo, FeatureRegistry
from createkit.project_detection import analyze_project


@pytest.fixture
def registry() -> FeatureRegistry:
    return build_default_registry()


@pytest.fixture
def vue_project(tmp_project_dir: Path, package_json_writer) -> Path:
    package_json_writer(tmp_project_dir, dependencies={"vue": "^3.4.0"})
    return tmp_project_dir


def make_context(project: Path, **kwargs) -> FeatureContext:
    kwargs.setdefault("install", False)
    return FeatureContext(target_dir=project, project_info=analyze_project(project), **kwargs)


def snapshot(project: Path) -> dict[str, bytes]:
    return {
        p.relative_to(project).as_posix(): p.read_bytes() for p in sorted(project.rglob("*")) if p.is_file()
    }


def package(project: Path) -> dict:
    return json.loads((project / "package.json").read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# typescript
# ---------------------------------------------------------------------------


class TestTypescriptFeature:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fresh_project(self, registry, node_project: Path):
        outcome = await registry.add_feature("typescript", make_context(node_project))

        tsconfig = json.loads((node_project / "tsconfig.json").read_text(encoding="utf-8"))
        assert tsconfig["extends"] == "@bfra.me/tsconfig"
        assert outcome.files_written == ["tsconfig.json"]
        assert outcome.dependencies_added == ["@bfra.me/tsconfig", "typescript", "@types/node"]
        assert package(node_project)["scripts"]["type-check"] == "tsc --noEmit"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run_on_existing_config(self, registry, ts_project: Path, capsys):
        before = snapshot(ts_project)
        await registry.add_feature("typescript", make_context(ts_project, dry_run=True))

        out = capsys.readouterr().out
        assert "Existing config found: tsconfig.json" in out
        assert "Would write tsconfig.json" in out
        assert snapshot(ts_project) == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_merges_extends(self, registry, ts_project: Path):
        await registry.add_feature("typescript", make_context(ts_project))
        tsconfig = json.loads((ts_project / "tsconfig.json").read_text(encoding="utf-8"))
        assert tsconfig == {"extends": "@bfra.me/tsconfig", "compilerOptions": {"strict": True}}
        assert package(ts_project)["devDependencies"]["typescript"] == "^5.4.0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_idempotent(self, registry, node_project: Path):
        await registry.add_feature("typescript", make_context(node_project))
        before = snapshot(node_project)

        outcome = await registry.add_feature("typescript", make_context(node_project))
        assert outcome == FeatureOutcome()
        assert snapshot(node_project) == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unparseable_tsconfig_replaced(self, registry, ts_project: Path, capsys):
        (ts_project / "tsconfig.json").write_text("{ // comment\n}", encoding="utf-8")
        await registry.add_feature("typescript", make_context(ts_project))
        assert "Could not parse tsconfig.json" in capsys.readouterr().out
        assert json.loads((ts_project / "tsconfig.json").read_text(encoding="utf-8"))["extends"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_utf8_tsconfig_replaced(self, registry, ts_project: Path, capsys):
        (ts_project / "tsconfig.json").write_bytes(b'{"compilerOptions": "\xff\xfe"}')
        await registry.add_feature("typescript", make_context(ts_project))
        assert "Could not parse tsconfig.json" in capsys.readouterr().out
        assert json.loads((ts_project / "tsconfig.json").read_text(encoding="utf-8"))["extends"]


# ---------------------------------------------------------------------------
# eslint / prettier / vitest
# ---------------------------------------------------------------------------


class TestToolingFeatures:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_eslint_typescript(self, registry, ts_project: Path):
        outcome = await registry.add_feature("eslint", make_context(ts_project))
        config = (ts_project / "eslint.config.ts").read_text(encoding="utf-8")
        assert "@bfra.me/eslint-config" in config
        assert "tsconfigPath" in config
        assert "@typescript-eslint/parser" in outcome.dependencies_added
        assert package(ts_project)["scripts"]["lint"] == "eslint ."

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_eslint_javascript(self, registry, node_project: Path):
        await registry.add_feature("eslint", make_context(node_project))
        config = (node_project / "eslint.config.js").read_text(encoding="utf-8")
        assert "tsconfigPath" not in config
        assert "name: 'node'" in config

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_eslint_react(self, registry, react_project: Path):
        outcome = await registry.add_feature("eslint", make_context(react_project))
        assert "react: true" in (react_project / "eslint.config.ts").read_text(encoding="utf-8")
        assert "eslint-plugin-react-hooks" in outcome.dependencies_added

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prettier(self, registry, node_project: Path):
        outcome = await registry.add_feature("prettier", make_context(node_project))
        assert (node_project / ".prettierrc").read_text(encoding="utf-8").startswith(
            '"@bfra.me/prettier-config'
        )
        assert outcome.dependencies_added == ["@bfra.me/prettier-config", "prettier"]
        assert outcome.scripts_added == ["format", "format:check"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prettier_existing_config_announced(self, registry, node_project: Path, capsys):
        (node_project / ".prettierrc.json").write_text("{}", encoding="utf-8")
        await registry.add_feature("prettier", make_context(node_project, dry_run=True))
        assert "Existing config found: .prettierrc.json" in capsys.readouterr().out

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_vitest_node(self, registry, node_project: Path):
        outcome = await registry.add_feature("vitest", make_context(node_project))
        config = (node_project / "vitest.config.js").read_text(encoding="utf-8")
        assert "environment: 'node'" in config
        assert (node_project / "test" / "example.test.js").is_file()
        assert package(node_project)["scripts"]["test"] == "vitest run"
        assert outcome.dependencies_added == ["vitest", "@vitest/ui"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_vitest_react(self, registry, react_project: Path):
        outcome = await registry.add_feature("vitest", make_context(react_project))
        assert "jsdom" in (react_project / "vitest.config.ts").read_text(encoding="utf-8")
        assert (react_project / "test" / "example.test.ts").is_file()
        assert "@testing-library/react" in outcome.dependencies_added

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_vitest_keeps_existing_test_dir(self, registry, node_project: Path):
        (node_project / "test").mkdir()
        (node_project / "test" / "mine.test.js").write_text("// mine\n", encoding="utf-8")
        outcome = await registry.add_feature("vitest", make_context(node_project))
        assert outcome.files_written == ["vitest.config.js"]
        assert not (node_project / "test" / "example.test.js").exists()


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class TestComponents:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_react_component(self, registry, react_project: Path):
        context = make_context(react_project, options={"name": "UserCard", "withStory": "true"})
        outcome = await registry.add_feature("react-component", context)

        base = "src/components/UserCard"
        assert outcome.files_written == [
            f"{base}/UserCard.tsx",
            f"{base}/index.ts",
            f"{base}/UserCard.test.tsx",
            f"{base}/UserCard.stories.tsx",
        ]
        component = (react_project / base / "UserCard.tsx").read_text(encoding="utf-8")
        assert "export interface UserCardProps" in component
        assert 'className="user-card"' in component
        assert (react_project / base / "index.ts").read_text(encoding="utf-8").startswith(
            "export {UserCard} from './UserCard'"
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_react_component_custom_path_without_test(self, registry, react_project: Path):
        context = make_context(
            react_project, options={"name": "Nav", "path": "ui/layout", "withTest": "false"}
        )
        outcome = await registry.add_feature("react-component", context)
        assert outcome.files_written == ["src/ui/layout/Nav/Nav.tsx", "src/ui/layout/Nav/index.ts"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_vue_component(self, registry, tmp_project_dir: Path, package_json_writer):
        package_json_writer(tmp_project_dir, dependencies={"vue": "^3.4.0"})
        context = make_context(tmp_project_dir, options={"name": "TodoItem"})
        outcome = await registry.add_feature("vue-component", context)
        assert outcome.files_written == [
            "src/components/TodoItem/TodoItem.vue",
            "src/components/TodoItem/TodoItem.test.js",
        ]
        vue = (tmp_project_dir / "src/components/TodoItem/TodoItem.vue").read_text(encoding="utf-8")
        assert "{{ title }}" in vue
        assert "defineProps({title: String})" in vue

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options, code",
        [
            ({}, ErrorCode.VALIDATION_FAILED),
            ({"name": "userCard"}, ErrorCode.VALIDATION_FAILED),
            ({"name": "UserCard", "path": "../outside"}, ErrorCode.PATH_TRAVERSAL_ATTEMPT),
        ],
    )
    async def test_invalid_options(self, registry, react_project: Path, options, code):
        before = snapshot(react_project)
        with pytest.raises(CreateError) as exc_info:
            await registry.add_feature("react-component", make_context(react_project, options=options))
        assert exc_info.value.code is code
        assert snapshot(react_project) == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_component(self, registry, react_project: Path):
        context = make_context(react_project, options={"name": "Card"})
        await registry.add_feature("react-component", context)
        with pytest.raises(CreateError) as exc_info:
            await registry.add_feature("react-component", make_context(react_project, options={"name": "Card"}))
        assert exc_info.value.code is ErrorCode.DIRECTORY_EXISTS


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestFeatureRegistry:
    @pytest.mark.unit
    def test_catalogue(self, registry):
        assert registry.names() == [
            "typescript",
            "eslint",
            "prettier",
            "vitest",
            "react-component",
            "vue-component",
        ]
        assert registry.get("nope") is None
        assert [info.name for info in registry.by_category("component")] == [
            "react-component",
            "vue-component",
        ]

    @pytest.mark.unit
    def test_support(self, registry):
        assert registry.is_supported("typescript", "typescript")
        assert registry.is_supported("vitest", "node")
        assert not registry.is_supported("typescript", "react")
        assert not registry.is_supported("missing", "node")
        assert registry.names_for_framework("vue") == ["eslint", "prettier", "vitest", "vue-component"]

    @pytest.mark.unit
    def test_empty_support_list_means_all(self):
        registry = FeatureRegistry()
        registry.register(
            FeatureInfo(name="x", description="x", category="configuration"),
            AsyncMock(return_value=FeatureOutcome()),
            lambda context: [],
        )
        assert registry.is_supported("x", "angular")

    @pytest.mark.unit
    def test_check_unknown(self, registry):
        with pytest.raises(CreateError) as exc_info:
            registry.check("graphql", "node")
        assert exc_info.value.code is ErrorCode.VALIDATION_FAILED
        assert "typescript" in exc_info.value.details[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unsupported_has_no_side_effects(self, registry, react_project: Path):
        before = snapshot(react_project)
        with pytest.raises(CreateError) as exc_info:
            await registry.add_feature("vue-component", make_context(react_project, options={"name": "A"}))
        assert "not supported for react projects" in exc_info.value.message
        assert snapshot(react_project) == before

    @pytest.mark.unit
    def test_planned_files(self, registry, node_project: Path):
        context = make_context(node_project)
        assert registry.planned_files("vitest", context) == [
            "vitest.config.js",
            "test/example.test.js",
            "package.json",
        ]
        assert registry.planned_files("typescript", context) == ["tsconfig.json", "package.json"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_installs_when_dependencies_added(self, registry, node_project: Path):
        (node_project / "pnpm-lock.yaml").write_text("", encoding="utf-8")
        installer = AsyncMock(return_value=True)
        with patch("createkit.features.registry.install_dependencies", installer):
            await registry.add_feature("prettier", make_context(node_project, install=True))
        installer.assert_awaited_once_with(node_project, "pnpm")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_install_in_dry_run(self, registry, node_project: Path):
        installer = AsyncMock(return_value=True)
        with patch("createkit.features.registry.install_dependencies", installer):
            await registry.add_feature("prettier", make_context(node_project, install=True, dry_run=True))
        installer.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "feature, project_fixture, options",
        [
            ("typescript", "node_project", {}),
            ("eslint", "ts_project", {}),
            ("prettier", "node_project", {}),
            ("vitest", "react_project", {}),
            ("react-component", "react_project", {"name": "Button"}),
            ("vue-component", "vue_project", {"name": "Card"}),
        ],
    )
    async def test_every_feature_dry_run_touches_nothing(
        self, registry, request, feature, project_fixture, options, capsys
    ):
        project = request.getfixturevalue(project_fixture)
        before = snapshot(project)
        paths = sorted(p.relative_to(project).as_posix() for p in project.rglob("*"))
        installer = AsyncMock(return_value=True)
        with patch("createkit.features.registry.install_dependencies", installer):
            outcome = await registry.add_feature(
                feature, make_context(project, install=True, dry_run=True, options=options)
            )

        assert snapshot(project) == before
        assert sorted(p.relative_to(project).as_posix() for p in project.rglob("*")) == paths
        assert outcome.files_written == []
        installer.assert_not_awaited()
        assert "Would write" in capsys.readouterr().out

    @pytest.mark.unit
    def test_print_table(self, registry, capsys):
        registry.print_table()
        out = capsys.readouterr().out
        assert "Available features" in out
        assert "vue-component" in out
