"""Stamper configuration.

Process-wide, typed configuration for the scaffolding pipeline. Settings use
Pydantic v2 models so they are validated at construction time and can be
loaded from a JSON file or built from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


_DEFAULT_PRESET_DIR = Path.home() / ".stamper" / "presets"


class Config(BaseModel):
    """Global Stamper configuration.

    Instances are created once by the CLI entry point (or by the caller) and
    passed explicitly into ``PresetStore``, ``TemplateRenderer`` and
    ``ScaffoldPipeline``.
    """

    preset_dir: Path = Field(default=_DEFAULT_PRESET_DIR)
    descriptor_filename: str = Field(default="stamper.config.py", min_length=1)
    template_suffix: str = Field(default=".hbs")
    max_parallel_renders: int = Field(
        default=8, ge=1, description="Maximum template files rendered concurrently"
    )
    git_executable: str = Field(default="git", min_length=1)
    clone_timeout: int = Field(default=300, ge=1, description="Clone timeout in seconds")

    @field_validator("template_suffix")
    @classmethod
    def _suffix_has_dot(cls, value: str) -> str:
        if len(value) < 2 or not value.startswith("."):
            raise ValueError(f"template_suffix must look like '.ext', got {value!r}")
        return value

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    def preset_path(self, fingerprint: str) -> Path:
        """Path of the preset file stored for *fingerprint*."""
        return self.preset_dir / f"{fingerprint}.json"

    def descriptor_path(self, directory: str | Path) -> Path:
        """Path where a template descriptor is expected inside *directory*."""
        return Path(directory) / self.descriptor_filename

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "Config":
        """Load a configuration from a JSON file (``stamper --config``)."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STAMPER_PRESET_DIR, STAMPER_DESCRIPTOR, STAMPER_TEMPLATE_SUFFIX,
            STAMPER_MAX_PARALLEL_RENDERS, STAMPER_GIT, STAMPER_CLONE_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STAMPER_PRESET_DIR"):
            kwargs["preset_dir"] = Path(os.environ["STAMPER_PRESET_DIR"]).expanduser()
        if os.environ.get("STAMPER_DESCRIPTOR"):
            kwargs["descriptor_filename"] = os.environ["STAMPER_DESCRIPTOR"]
        if os.environ.get("STAMPER_TEMPLATE_SUFFIX"):
            kwargs["template_suffix"] = os.environ["STAMPER_TEMPLATE_SUFFIX"]
        if os.environ.get("STAMPER_MAX_PARALLEL_RENDERS"):
            kwargs["max_parallel_renders"] = int(os.environ["STAMPER_MAX_PARALLEL_RENDERS"])
        if os.environ.get("STAMPER_GIT"):
            kwargs["git_executable"] = os.environ["STAMPER_GIT"]
        if os.environ.get("STAMPER_CLONE_TIMEOUT"):
            kwargs["clone_timeout"] = int(os.environ["STAMPER_CLONE_TIMEOUT"])
        return cls(**kwargs)
