"""Template descriptor discovery, loading and removal.

A template repository may ship a Python file (``stamper.config.py`` by
default) at its root.  It is executed as a plugin module and may define:

- ``prompts(directory)`` returning the questions to ask,
- ``transform(data)`` returning the final rendering data,
- ``finished(*, directory, data, fs, utils)`` called after rendering,
- ``save_preset``: ``True``/``False`` or a list of answer keys to remember.

The descriptor is removed from the destination once scaffolding ends so it
never ships with the generated project.
"""

from __future__ import annotations

import runpy
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError

from stamper.config import Config
from stamper.utils import console, pick, print_warning

DESCRIPTOR_FIELDS: tuple[str, ...] = ("prompts", "transform", "finished", "save_preset")


class DescriptorLoadError(Exception):
    """Raised when a template descriptor cannot be executed or is malformed."""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(message)


class TemplateDescriptor(BaseModel):
    """Per-template configuration controlling prompts, hooks and presets."""

    model_config = ConfigDict(frozen=True)

    prompts: Callable[..., Any] | None = None
    transform: Callable[..., Any] | None = None
    finished: Callable[..., Any] | None = None
    save_preset: Union[StrictBool, list[StrictStr]] = Field(default=True)

    @property
    def saves_preset(self) -> bool:
        """Whether answers should be remembered (an empty key list counts as no)."""
        return bool(self.save_preset)

    @property
    def preset_keys(self) -> list[str] | None:
        """Keys to retain, or ``None`` when every answer is retained."""
        if isinstance(self.save_preset, list):
            return list(self.save_preset)
        return None

    def filter_answers(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Reduce *data* to what the save policy retains.

        Keys listed by the policy but absent from *data* are omitted.
        """
        if not self.saves_preset:
            return {}
        keys = self.preset_keys
        if keys is None:
            return dict(data)
        return pick(data, keys)


def _run_descriptor(path: Path) -> dict[str, Any]:
    """Run the descriptor file and return its globals.

    ``runpy`` compiles from source without writing bytecode, so no
    ``__pycache__`` is left inside the destination.
    """
    try:
        return runpy.run_path(str(path), run_name="stamper_descriptor")
    except Exception as exc:
        raise DescriptorLoadError(
            f"Failed to load template descriptor {path}: {exc}", path=path
        ) from exc


def load_descriptor(directory: str | Path, config: Config | None = None) -> TemplateDescriptor:
    """Load the template descriptor found in *directory*.

    Returns the default descriptor (``save_preset=True``, no hooks) when the
    file does not exist.  Fields the module defines override the defaults one
    by one; the others keep their default values.

    Raises:
        DescriptorLoadError: If the module raises while executing or a field
            has the wrong shape (for example a non-callable ``prompts``).
    """
    config = config or Config()
    path = config.descriptor_path(directory)
    if not path.is_file():
        return TemplateDescriptor()

    namespace = _run_descriptor(path)
    fields = {name: namespace[name] for name in DESCRIPTOR_FIELDS if name in namespace}
    try:
        descriptor = TemplateDescriptor(**fields)
    except ValidationError as exc:
        raise DescriptorLoadError(
            f"Invalid template descriptor {path}: {exc}", path=path
        ) from exc

    console.print(f"  Loaded template descriptor [bold]{path.name}[/bold]")
    return descriptor


def remove_descriptor(directory: str | Path, config: Config | None = None) -> bool:
    """Delete the descriptor file from *directory*.

    A missing file is not an error.  Deletion failures are reported as a
    warning and swallowed since the rendered content is already in place.

    Returns:
        ``True`` if a file was removed.
    """
    config = config or Config()
    path = config.descriptor_path(directory)
    try:
        if not path.exists():
            return False
        path.unlink()
    except OSError as exc:
        print_warning(f"  Could not remove template descriptor {path}: {exc}")
        return False
    return True
