"""Shared pytest fixtures for the createkit test suite.

Provides reusable fixtures for:
- Temporary project directories (plain, node, TypeScript, React)
- A scripted prompter standing in for the interactive terminal
- Configuration with AI disabled and backups under tmp_path
- Mocked httpx clients
- A clean environment (no API keys leaking in from the host)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from createkit.config import AIConfig, BackupConfig, Config
from createkit.prompts.prompter import Choice, PromptCancelled, Prompter
from createkit.safety.backup import BackupManager

ENV_VARS = [
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "AI_ENABLED",
    "AI_PROVIDER",
    "CREATEKIT_AI_TIMEOUT",
    "CREATEKIT_OPENAI_KEY_PATTERN",
    "CREATEKIT_ANTHROPIC_KEY_PATTERN",
    "CREATEKIT_BACKUP_DIR",
    "CREATEKIT_DEFAULT_TEMPLATE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host API keys and overrides out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Empty temporary project directory."""
    project_dir = tmp_path / "test-project"
    project_dir.mkdir()
    yield project_dir


def write_package_json(project_dir: Path, **fields: Any) -> Path:
    data = {"name": "test-project", "version": "1.0.0", **fields}
    path = project_dir / "package.json"
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def node_project(tmp_project_dir: Path) -> Path:
    """Plain Node project: a package.json and nothing else."""
    write_package_json(tmp_project_dir, scripts={"start": "node index.js"})
    return tmp_project_dir


@pytest.fixture
def ts_project(tmp_project_dir: Path) -> Path:
    """TypeScript project with an existing tsconfig.json."""
    write_package_json(tmp_project_dir, devDependencies={"typescript": "^5.4.0"})
    (tmp_project_dir / "tsconfig.json").write_text(
        json.dumps({"compilerOptions": {"strict": True}}, indent=2) + "\n", encoding="utf-8"
    )
    return tmp_project_dir


@pytest.fixture
def react_project(tmp_project_dir: Path) -> Path:
    """React project (detected from the react dependency)."""
    write_package_json(tmp_project_dir, dependencies={"react": "^18.2.0", "react-dom": "^18.2.0"})
    (tmp_project_dir / "src").mkdir()
    return tmp_project_dir


@pytest.fixture
def package_json_writer():
    """Expose ``write_package_json`` to tests."""
    return write_package_json


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config with AI disabled and backups kept under tmp_path."""
    return Config(
        ai=AIConfig(enabled=False),
        backup=BackupConfig(backup_dir=tmp_path / "backups"),
    )


@pytest.fixture
def backup_manager(tmp_path: Path) -> BackupManager:
    return BackupManager(tmp_path / "backups")


# ---------------------------------------------------------------------------
# Scripted prompter
# ---------------------------------------------------------------------------


class ScriptedPrompter(Prompter):
    """Answers prompts from a fixed list.

    ``None`` accepts the prompt's default; ``ScriptedPrompter.CANCEL``
    simulates Ctrl-C.  A text answer rejected by the validator consumes the
    next answer, as a re-prompt would.
    """

    CANCEL = object()

    def __init__(self, answers: list[Any] | None = None) -> None:
        super().__init__()
        self.answers = list(answers or [])
        self.asked: list[str] = []
        self.notes: list[str] = []

    def _next(self, message: str) -> Any:
        self.asked.append(message)
        if not self.answers:
            raise AssertionError(f"No scripted answer for prompt: {message!r}")
        answer = self.answers.pop(0)
        if answer is self.CANCEL:
            raise PromptCancelled("Operation cancelled")
        return answer

    def text(self, message: str, default: str | None = None, validate=None) -> str:
        while True:
            answer = self._next(message)
            if answer is None:
                answer = default or ""
            if validate is None or validate(answer) is None:
                return answer

    def confirm(self, message: str, default: bool = True) -> bool:
        answer = self._next(message)
        return default if answer is None else bool(answer)

    def select(self, message: str, choices: list[Choice], default: str | None = None) -> str:
        answer = self._next(message)
        if answer is None:
            return default or choices[0].value
        assert answer in [c.value for c in choices], f"{answer!r} is not a choice for {message!r}"
        return answer

    def multiselect(self, message: str, choices: list[Choice], defaults: list[str] | None = None) -> list[str]:
        answer = self._next(message)
        return list(defaults or []) if answer is None else list(answer)

    def note(self, title: str, body: str) -> None:
        self.notes.append(title)


@pytest.fixture
def make_prompter():
    """Factory: ``make_prompter([...answers])``; ``make_prompter.CANCEL`` aborts."""
    return ScriptedPrompter


# ---------------------------------------------------------------------------
# Mock httpx
# ---------------------------------------------------------------------------


def make_http_response(status_code: int = 200, json_data: Any = None, content: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data if json_data is not None else {}
    response.content = content
    response.text = json.dumps(json_data) if json_data is not None else content.decode("utf-8", "replace")
    response.raise_for_status = MagicMock()
    return response


def make_async_client(**methods: AsyncMock) -> AsyncMock:
    """An ``httpx.AsyncClient`` stand-in usable as an async context manager."""
    client = AsyncMock()
    for name, method in methods.items():
        setattr(client, name, method)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.fixture
def http_response():
    return make_http_response


@pytest.fixture
def async_client():
    return make_async_client
