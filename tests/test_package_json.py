"""Unit tests for package.json editing (createkit.features.package_json).

Tests cover:
- read_package_json error mapping
- add_dependencies: sections, idempotence, dry run, dedupe
- add_scripts: existing names kept, dry run, missing package.json
- install_dependencies success and failure (run_command mocked)
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from createkit.errors import CreateError, ErrorCode
from createkit.features.package_json import (
    add_dependencies,
    add_scripts,
    install_command,
    install_dependencies,
    read_package_json,
)


def read(project: Path) -> dict:
    return json.loads((project / "package.json").read_text(encoding="utf-8"))


class TestReadPackageJson:
    @pytest.mark.unit
    def test_missing(self, tmp_project_dir: Path):
        with pytest.raises(CreateError) as exc_info:
            read_package_json(tmp_project_dir)
        assert exc_info.value.code is ErrorCode.FILE_SYSTEM_ERROR

    @pytest.mark.unit
    def test_malformed(self, tmp_project_dir: Path):
        (tmp_project_dir / "package.json").write_text("{", encoding="utf-8")
        with pytest.raises(CreateError) as exc_info:
            read_package_json(tmp_project_dir)
        assert exc_info.value.code is ErrorCode.VALIDATION_FAILED

    @pytest.mark.unit
    def test_not_an_object(self, tmp_project_dir: Path):
        (tmp_project_dir / "package.json").write_text("[]", encoding="utf-8")
        with pytest.raises(CreateError):
            read_package_json(tmp_project_dir)


class TestAddDependencies:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_adds_to_sections(self, node_project: Path):
        added = await add_dependencies(node_project, ["lodash"], ["vitest", "vitest"])
        assert added == ["lodash", "vitest"]
        data = read(node_project)
        assert data["dependencies"] == {"lodash": "latest"}
        assert data["devDependencies"] == {"vitest": "latest"}
        assert data["scripts"] == {"start": "node index.js"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_versions_kept(self, ts_project: Path):
        added = await add_dependencies(ts_project, dev_dependencies=["typescript", "prettier"])
        assert added == ["prettier"]
        assert read(ts_project)["devDependencies"]["typescript"] == "^5.4.0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_idempotent(self, node_project: Path):
        await add_dependencies(node_project, dev_dependencies=["eslint"])
        before = (node_project / "package.json").read_bytes()
        assert await add_dependencies(node_project, dev_dependencies=["eslint"]) == []
        assert (node_project / "package.json").read_bytes() == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_present_in_other_section(self, tmp_project_dir: Path, package_json_writer):
        package_json_writer(tmp_project_dir, dependencies={"typescript": "5.0.0"})
        assert await add_dependencies(tmp_project_dir, dev_dependencies=["typescript"]) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run(self, node_project: Path, capsys):
        before = (node_project / "package.json").read_bytes()
        added = await add_dependencies(node_project, dev_dependencies=["eslint"], dry_run=True)
        assert added == ["eslint"]
        assert (node_project / "package.json").read_bytes() == before
        assert "Would add dependencies: eslint" in capsys.readouterr().out


class TestAddScripts:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keeps_existing(self, node_project: Path):
        added = await add_scripts(node_project, {"start": "other", "lint": "eslint ."})
        assert added == ["lint"]
        assert read(node_project)["scripts"] == {"start": "node index.js", "lint": "eslint ."}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_dry_run(self, node_project: Path):
        before = (node_project / "package.json").read_bytes()
        assert await add_scripts(node_project, {"lint": "eslint ."}, dry_run=True) == ["lint"]
        assert (node_project / "package.json").read_bytes() == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_without_package_json(self, tmp_project_dir: Path):
        assert await add_scripts(tmp_project_dir, {"lint": "eslint ."}) == []
        assert not (tmp_project_dir / "package.json").exists()


class TestInstall:
    @pytest.mark.unit
    def test_install_command(self):
        assert install_command("pnpm") == ["pnpm", "install"]
        assert install_command(None) == ["npm", "install"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, tmp_path: Path):
        runner = AsyncMock(return_value=(0, "", ""))
        with patch("createkit.features.package_json.run_command", runner):
            assert await install_dependencies(tmp_path, "yarn", timeout=5) is True
        runner.assert_awaited_once_with(["yarn", "install"], cwd=tmp_path, timeout=5)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_warns(self, tmp_path: Path, capsys):
        runner = AsyncMock(return_value=(1, "", "npm ERR! network\nETIMEDOUT"))
        with patch("createkit.features.package_json.run_command", runner):
            assert await install_dependencies(tmp_path, "npm") is False
        out = " ".join(capsys.readouterr().out.split())
        assert "ETIMEDOUT" in out
        assert '"npm install" manually' in out
