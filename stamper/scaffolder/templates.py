"""Jinja2 template rendering for cloned template repositories.

Provides the TemplateRenderer class which discovers template files (``.hbs``
by default) inside a destination tree, asks the descriptor's questions,
applies the descriptor's ``transform`` hook, and renders every template in
place:

- ``README.md.hbs`` is rendered to ``README.md`` and the template removed.
- ``_nested.hbs`` is rendered to ``nested.hbs``: only the leading underscore
  is stripped, so the file stays a template for a later stage.
"""

from __future__ import annotations

import asyncio
import inspect
import os
import re
import shutil
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from jinja2 import ChainableUndefined, Environment, TemplateError
from pydantic import ValidationError

from stamper import utils
from stamper.config import Config
from stamper.scaffolder.descriptor import DescriptorLoadError, TemplateDescriptor, load_descriptor
from stamper.scaffolder.prompts import Prompter, Question, RichPrompter
from stamper.utils import console, deep_merge, write_text_atomic


class TemplateRenderError(Exception):
    """Raised when a template file cannot be rendered or written."""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(message)


def _finalize(value: Any) -> Any:
    return "" if value is None else value


async def _resolve(value: Any) -> Any:
    """Await *value* if a hook returned a coroutine."""
    if inspect.isawaitable(value):
        return await value
    return value


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the template files of a cloned repository.

    Missing variables (including nested lookups such as ``{{ author.email }}``)
    and ``None`` values render as empty strings.  Output is not HTML-escaped.
    """

    def __init__(self, config: Config | None = None, prompter: Prompter | None = None) -> None:
        self.config = config or Config()
        self.prompter: Prompter = prompter or RichPrompter()
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=ChainableUndefined,
            finalize=_finalize,
        )
        # Register custom filters
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter

    # -- Engine ------------------------------------------------------------

    def compile(self, template_string: str) -> Callable[[Mapping[str, Any]], str]:
        """Compile *template_string* into a function of the rendering data."""
        template = self.env.from_string(template_string)

        def render_fn(data: Mapping[str, Any]) -> str:
            return template.render(dict(data))

        return render_fn

    def render_string(self, template_string: str, context: Mapping[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        return self.compile(template_string)(context)

    # -- Discovery ---------------------------------------------------------

    def is_template(self, path: Path) -> bool:
        suffix = self.config.template_suffix
        return path.name.endswith(suffix) and len(path.name) > len(suffix)

    def discover(self, directory: str | Path) -> list[Path]:
        """Return every template file under *directory*, in a stable order.

        Directories are walked top-down with sorted entries.  Symbolic links
        (to files or directories) are never followed, so nothing outside the
        tree is read or rewritten.
        """
        found: list[Path] = []
        for root, dirnames, filenames in os.walk(directory, followlinks=False):
            dirnames.sort()
            for name in sorted(filenames):
                path = Path(root) / name
                if path.is_symlink() or not self.is_template(path):
                    continue
                found.append(path)
        return found

    def destination_for(self, path: Path) -> Path:
        """Where the rendered output of template *path* is written."""
        name = path.name
        if name.startswith("_"):
            return path.with_name(name[1:])
        return path.with_name(name[: -len(self.config.template_suffix)])

    # -- Questions ---------------------------------------------------------

    async def build_questions(
        self,
        descriptor: TemplateDescriptor,
        directory: Path,
        defaults: Mapping[str, Any] | None,
    ) -> list[Question]:
        """Call the descriptor's prompt builder and validate its questions.

        When *defaults* is given, a question without its own default takes
        ``defaults[name]``.
        """
        if descriptor.prompts is None:
            return []

        path = self.config.descriptor_path(directory)
        raw = await _resolve(descriptor.prompts(directory))
        try:
            questions = [
                q if isinstance(q, Question) else Question.model_validate(q) for q in raw or []
            ]
        except (TypeError, ValidationError) as exc:
            raise DescriptorLoadError(f"Invalid prompts in {path}: {exc}", path=path) from exc

        if defaults:
            questions = [
                q.model_copy(update={"default": defaults[q.name]})
                if q.name in defaults and q.default is None
                else q
                for q in questions
            ]
        return questions

    # -- Rendering ---------------------------------------------------------

    def _render_file(self, src: Path, data: Mapping[str, Any]) -> Path:
        """Render one template and retire its source.

        The rendered text is fully written to the destination before the
        source is removed, so a failure never loses the template.
        """
        dst = self.destination_for(src)
        try:
            rendered = self.compile(src.read_text(encoding="utf-8"))(data)
            write_text_atomic(dst, rendered)
            shutil.copymode(src, dst)
            src.unlink()
        except (TemplateError, OSError, UnicodeDecodeError) as exc:
            raise TemplateRenderError(f"Failed to render template {src}: {exc}", path=src) from exc
        return dst

    async def render_files(self, files: list[Path], data: Mapping[str, Any]) -> list[Path]:
        """Render *files* concurrently, at most ``max_parallel_renders`` at once.

        The first failure aborts the batch.  Files still waiting for a slot
        are skipped; renders already running finish before the error is
        raised.
        """
        semaphore = asyncio.Semaphore(self.config.max_parallel_renders)
        aborted = asyncio.Event()

        async def _one(src: Path) -> Path | None:
            async with semaphore:
                if aborted.is_set():
                    return None
                try:
                    dst = await asyncio.to_thread(self._render_file, src, data)
                except Exception:
                    aborted.set()
                    raise
            console.print(f"  [dim]rendered {dst}[/dim]")
            return dst

        results = await asyncio.gather(*(_one(src) for src in files), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return [dst for dst in results if dst is not None]

    async def render(
        self,
        directory: str | Path,
        defaults: Mapping[str, Any] | None = None,
        descriptor: TemplateDescriptor | None = None,
    ) -> dict[str, Any]:
        """Ask, transform and render everything under *directory*.

        Args:
            directory: Root of the cloned template.
            defaults: Preset and caller-supplied answers.  They pre-fill
                question defaults and are the base the answers merge onto.
            descriptor: Already loaded descriptor; read from *directory*
                when omitted.

        Returns:
            The final data the templates were rendered with.
        """
        dest = Path(directory)
        defaults = dict(defaults or {})
        if descriptor is None:
            descriptor = load_descriptor(dest, self.config)
        files = await asyncio.to_thread(self.discover, dest)

        collected: dict[str, Any] = {}
        if descriptor.prompts is not None:
            injected = defaults if descriptor.saves_preset else None
            questions = await self.build_questions(descriptor, dest, injected)
            collected = await self.prompter.ask(questions)

        data = deep_merge(defaults, collected)

        if descriptor.transform is not None:
            data = await _resolve(descriptor.transform(data))
            if not isinstance(data, Mapping):
                path = self.config.descriptor_path(dest)
                raise DescriptorLoadError(
                    f"transform in {path} returned {type(data).__name__}, expected a mapping",
                    path=path,
                )
            data = dict(data)

        await self.render_files(files, data)

        if descriptor.finished is not None:
            await _resolve(descriptor.finished(directory=dest, data=data, fs=shutil, utils=utils))

        return data


async def render(
    directory: str | Path,
    defaults: Mapping[str, Any] | None = None,
    config: Config | None = None,
    prompter: Prompter | None = None,
) -> dict[str, Any]:
    """Render *directory* with a one-off ``TemplateRenderer``."""
    return await TemplateRenderer(config, prompter).render(directory, defaults)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", str(value))
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", str(value))
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""
