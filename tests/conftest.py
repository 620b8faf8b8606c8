"""Shared pytest fixtures for the Stamper test suite.

Provides reusable fixtures for:
- A ``Config`` isolated to a temporary preset directory
- A sample template tree with plain, nested and underscore templates
- A descriptor writer
- Mock subprocess helpers
- A scripted prompter that records the questions it was asked
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from stamper.config import Config
from stamper.scaffolder.prompts import Question


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config whose presets live under the test's temporary directory."""
    return Config(preset_dir=tmp_path / "presets")


# ---------------------------------------------------------------------------
# Template trees
# ---------------------------------------------------------------------------

@pytest.fixture
def template_tree(tmp_path: Path) -> Path:
    """A cloned-looking template directory.

    Layout::

        project/
            README.md.hbs
            static.txt
            _partial.hbs
            src/app.py.hbs
            src/deep/nested/config.json.hbs
    """
    root = tmp_path / "project"
    (root / "src" / "deep" / "nested").mkdir(parents=True)
    (root / "README.md.hbs").write_text("# {{ name }}\n\n{{ description }}\n", encoding="utf-8")
    (root / "static.txt").write_text("left {{ alone }}\n", encoding="utf-8")
    (root / "_partial.hbs").write_text("Hello {{ name }}!\n", encoding="utf-8")
    (root / "src" / "app.py.hbs").write_text(
        'APP = "{{ name | slugify }}"\n', encoding="utf-8"
    )
    (root / "src" / "deep" / "nested" / "config.json.hbs").write_text(
        '{"port": {{ port }}}\n', encoding="utf-8"
    )
    return root


@pytest.fixture
def write_descriptor():
    """Return a helper that writes ``stamper.config.py`` into a directory."""

    def _write(directory: Path, source: str, filename: str = "stamper.config.py") -> Path:
        path = directory / filename
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------

class ScriptedPrompter:
    """Prompter that answers from a fixed mapping and records its questions.

    Questions missing from *answers* are answered with their default.
    """

    def __init__(self, answers: dict[str, Any] | None = None) -> None:
        self.answers = answers or {}
        self.asked: list[list[Question]] = []

    async def ask(self, questions: list[Question]) -> dict[str, Any]:
        self.asked.append(list(questions))
        return {q.name: self.answers.get(q.name, q.default) for q in questions}


@pytest.fixture
def scripted_prompter():
    """Factory for ``ScriptedPrompter`` instances."""

    def factory(answers: dict[str, Any] | None = None) -> ScriptedPrompter:
        return ScriptedPrompter(answers)

    return factory


# ---------------------------------------------------------------------------
# Mock subprocess helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
