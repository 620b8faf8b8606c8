"""Integration tests for the clone-then-render pipeline.

These tests build a real local git repository, scaffold it twice with the
real clone step, and check the generated tree and the remembered preset.
Skipped when git is not installed.
"""

from __future__ import annotations

import json
import shutil
import subprocess
import textwrap
from pathlib import Path

import pytest

from stamper.config import Config
from stamper.pipeline import ScaffoldPipeline
from stamper.scaffolder.presets import fingerprint
from stamper.scaffolder.prompts import DefaultsPrompter

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed"),
]


_DESCRIPTOR = textwrap.dedent(
    """
    save_preset = ["author"]

    def prompts(directory):
        return [
            {"name": "name", "message": "Project name", "default": directory.name},
            {"name": "author", "message": "Author"},
            {"name": "license", "type": "list", "choices": ["MIT", "BSD-3-Clause"], "default": "MIT"},
        ]

    def transform(data):
        return {**data, "package": data["name"].replace("-", "_")}

    def finished(*, directory, data, fs, utils):
        fs.copy(directory / "LICENSE", directory / "COPYING")
    """
)


@pytest.fixture
def template_repo(tmp_path: Path) -> Path:
    """A committed template repository with nested and underscore templates."""
    repo = tmp_path / "template-repo"
    (repo / "src" / "pkg").mkdir(parents=True)
    (repo / "stamper.config.py").write_text(_DESCRIPTOR, encoding="utf-8")
    (repo / "README.md.hbs").write_text("# {{ name }}\n\nBy {{ author }}.\n", encoding="utf-8")
    (repo / "LICENSE.hbs").write_text("{{ license }} (c) {{ author }}\n", encoding="utf-8")
    (repo / "src" / "pkg" / "__init__.py.hbs").write_text(
        'PACKAGE = "{{ package }}"\n', encoding="utf-8"
    )
    (repo / "_ci.yml.hbs").write_text("name: {{ name }}\n", encoding="utf-8")
    (repo / "keep.txt").write_text("unchanged\n", encoding="utf-8")
    for args in (
        ["init"],
        ["config", "user.email", "test@stamper.local"],
        ["config", "user.name", "Stamper Test"],
        ["config", "commit.gpgsign", "false"],
        ["add", "."],
        ["commit", "-m", "Initial commit"],
    ):
        subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)
    return repo


class TestScaffoldEndToEnd:
    async def test_scaffold_from_local_repository(self, tmp_path: Path, template_repo: Path):
        config = Config(preset_dir=tmp_path / "presets")
        pipeline = ScaffoldPipeline(config, DefaultsPrompter())
        dest = tmp_path / "my-app"

        data = await pipeline.run(str(template_repo), dest, {"author": "Ada"})

        assert data == {
            "name": "my-app",
            "author": "Ada",
            "license": "MIT",
            "package": "my_app",
        }
        assert not (dest / ".git").exists()
        assert not (dest / "stamper.config.py").exists()
        assert (dest / "README.md").read_text(encoding="utf-8") == "# my-app\n\nBy Ada.\n"
        assert (dest / "LICENSE").read_text(encoding="utf-8") == "MIT (c) Ada\n"
        assert (dest / "COPYING").read_text(encoding="utf-8") == "MIT (c) Ada\n"
        assert (dest / "src" / "pkg" / "__init__.py").read_text(encoding="utf-8") == (
            'PACKAGE = "my_app"\n'
        )
        assert (dest / "ci.yml.hbs").read_text(encoding="utf-8") == "name: my-app\n"
        assert (dest / "keep.txt").read_text(encoding="utf-8") == "unchanged\n"
        assert sorted(p.name for p in dest.rglob("*.hbs")) == ["ci.yml.hbs"]

        preset_file = config.preset_path(fingerprint(str(template_repo)))
        assert json.loads(preset_file.read_text(encoding="utf-8")) == {"author": "Ada"}

    async def test_second_run_reuses_preset(self, tmp_path: Path, template_repo: Path):
        config = Config(preset_dir=tmp_path / "presets")
        await ScaffoldPipeline(config, DefaultsPrompter()).run(
            str(template_repo), tmp_path / "first", {"author": "Ada"}
        )

        data = await ScaffoldPipeline(config, DefaultsPrompter()).run(
            str(template_repo), tmp_path / "second"
        )

        assert data["author"] == "Ada"
        assert data["name"] == "second"
