"""Stamper scaffold pipeline.

Implements the end-to-end scaffold workflow:

1. CLONE    -- clone the template repository and strip ``.git``.
2. DESCRIBE -- load the optional template descriptor.
3. RECALL   -- merge the saved preset with caller-supplied answers.
4. RENDER   -- ask questions, transform, render every template file.
5. REMEMBER -- save the answers as the template's preset (if allowed).
6. CLEAN    -- remove the descriptor from the generated project.

Usage::

    python -m stamper.pipeline https://github.com/acme/template.git ./my-project
    python -m stamper.pipeline ../template ./my-project --data name=demo --no-input
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from rich.panel import Panel

from stamper.config import Config
from stamper.scaffolder.clone import CloneError, CloneResult, clone_repo_and_clean
from stamper.scaffolder.descriptor import DescriptorLoadError, load_descriptor, remove_descriptor
from stamper.scaffolder.presets import PresetIOError, PresetStore
from stamper.scaffolder.prompts import DefaultsPrompter, Prompter, PromptError
from stamper.scaffolder.templates import TemplateRenderError, TemplateRenderer
from stamper.utils import (
    console,
    deep_merge,
    load_json,
    print_error,
    print_success,
    print_summary_table,
)

CloneFn = Callable[[str, Path, Config], Awaitable[CloneResult]]

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScaffoldError(Exception):
    """Raised when a scaffold cannot start (for example a non-empty destination)."""

    def __init__(self, message: str, source: str, destination: Path) -> None:
        self.source = source
        self.destination = destination
        super().__init__(message)


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """Clones a template, renders it and remembers the answers.

    Attributes:
        config: Process-wide configuration.
        presets: Store for remembered answers.
        renderer: Renders the cloned template.
    """

    def __init__(
        self,
        config: Config | None = None,
        prompter: Prompter | None = None,
        clone: CloneFn = clone_repo_and_clean,
    ) -> None:
        self.config = config or Config()
        self.presets = PresetStore(self.config)
        self.renderer = TemplateRenderer(self.config, prompter)
        self._clone = clone

    async def run(
        self,
        source: str,
        destination: str | Path,
        overrides: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Scaffold *source* into *destination*.

        Args:
            source: Git URL or path of the template repository.  Its exact
                string is the preset key.
            destination: Directory to create the project in.
            overrides: Answers that win over the saved preset.

        Returns:
            The data the templates were rendered with.

        Raises:
            CloneError, DescriptorLoadError, PromptError, TemplateRenderError,
            PresetIOError: propagated unchanged.  Once the clone succeeded the
            descriptor is removed even when a later step fails.
        """
        overrides = dict(overrides or {})
        dest = Path(destination)

        console.print(
            Panel(
                f"Template    : {source}\n"
                f"Destination : {dest.resolve()}",
                title="[bold]Stamper[/bold]",
                border_style="bright_cyan",
            )
        )

        await self._clone(source, dest, self.config)

        try:
            descriptor = load_descriptor(dest, self.config)
            preset = await self.presets.load(source, dest, descriptor)
            defaults = deep_merge(preset, overrides)

            data = await self.renderer.render(dest, defaults, descriptor=descriptor)

            if descriptor.saves_preset:
                remembered = deep_merge(descriptor.filter_answers(data), overrides)
                await self.presets.save(source, remembered)
        finally:
            remove_descriptor(dest, self.config)

        print_success(f"Project ready at {dest}")
        return data


async def create(
    source: str,
    destination: str | Path,
    overrides: dict[str, Any] | None = None,
    config: Config | None = None,
    prompter: Prompter | None = None,
) -> dict[str, Any]:
    """Run a one-off ``ScaffoldPipeline``."""
    return await ScaffoldPipeline(config, prompter).run(source, destination, overrides)


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------


def _parse_value(raw: str) -> Any:
    """Interpret a ``--data`` value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def parse_data_args(pairs: list[str]) -> dict[str, Any]:
    """Turn ``KEY=VALUE`` pairs into an answer mapping.

    Dotted keys build nested mappings::

        parse_data_args(["author.name=Ada", "port=8080"])
        -> {"author": {"name": "Ada"}, "port": 8080}

    Raises:
        ValueError: If a pair has no ``=`` or an empty key.
    """
    data: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        *parents, leaf = key.strip().split(".")
        nested: dict[str, Any] = {leaf: _parse_value(raw)}
        for parent in reversed(parents):
            nested = {parent: nested}
        data = deep_merge(data, nested)
    return data


def _check_destination(source: str, destination: Path) -> None:
    if destination.exists() and (not destination.is_dir() or any(destination.iterdir())):
        raise ScaffoldError(
            f"Destination {destination} already exists and is not empty",
            source=source,
            destination=destination,
        )


def main() -> None:
    """CLI entry point for ``stamper`` / ``python -m stamper.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Stamper -- scaffold a project from a template repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stamper https://github.com/acme/template.git ./my-project\n"
            "  stamper ../template ./my-project --data name=demo --data port=8080\n"
            "  stamper ../template ./my-project --data-file answers.json --no-input\n"
        ),
    )

    parser.add_argument("source", help="Git URL or path of the template repository")
    parser.add_argument("destination", help="Directory to create the project in")
    parser.add_argument(
        "--data", "-d",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Answer override; repeatable, dotted keys nest, values parse as JSON",
    )
    parser.add_argument(
        "--data-file",
        default=None,
        help="JSON file with answer overrides (applied before --data)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON settings file (default: STAMPER_* environment variables)",
    )
    parser.add_argument(
        "--preset-dir",
        default=None,
        help="Directory holding saved presets (default: ~/.stamper/presets)",
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Do not prompt; answer every question with its default",
    )

    args = parser.parse_args()

    try:
        overrides: dict[str, Any] = {}
        if args.data_file:
            overrides = load_json(args.data_file)
        overrides = deep_merge(overrides, parse_data_args(args.data))
    except (OSError, ValueError) as exc:
        print_error(f"Error: invalid answer data: {exc}")
        sys.exit(1)

    try:
        config = Config.load(args.config) if args.config else Config.from_env()
    except (OSError, ValueError) as exc:
        print_error(f"Error: invalid settings: {exc}")
        sys.exit(1)
    if args.preset_dir:
        config = config.model_copy(update={"preset_dir": Path(args.preset_dir).expanduser()})

    destination = Path(args.destination)
    prompter = DefaultsPrompter() if args.no_input else None

    try:
        _check_destination(args.source, destination)
        data = asyncio.run(create(args.source, destination, overrides, config, prompter))
    except (
        ScaffoldError,
        CloneError,
        DescriptorLoadError,
        PromptError,
        TemplateRenderError,
        PresetIOError,
    ) as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)

    print_summary_table(data, title="Answers")


if __name__ == "__main__":
    main()
