"""Persisted answer presets keyed by template source.

Answers collected for a template are stored as one JSON file per template
address under ``Config.preset_dir``.  The file name is the md5 fingerprint of
the raw address string, so the same template reused at a different
destination finds the same preset.

Concurrent scaffolds of the same template are not coordinated here: each
save replaces the whole file, so the last writer wins.
"""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from typing import Any

from stamper.config import Config
from stamper.scaffolder.descriptor import TemplateDescriptor, load_descriptor
from stamper.utils import console, load_json, print_warning, save_json


class PresetIOError(Exception):
    """Raised when a preset cannot be written."""

    def __init__(self, message: str, fingerprint: str, path: Path):
        self.fingerprint = fingerprint
        self.path = path
        super().__init__(message)


def fingerprint(address: str) -> str:
    """Return the stable preset key for a template *address*."""
    return hashlib.md5(address.encode("utf-8")).hexdigest()


class PresetStore:
    """Loads and saves answer presets under a single preset directory."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    def path_for(self, address: str) -> Path:
        """Preset file used for *address*."""
        return self.config.preset_path(fingerprint(address))

    async def load(
        self,
        address: str,
        lookup_dir: str | Path,
        descriptor: TemplateDescriptor | None = None,
    ) -> dict[str, Any]:
        """Load the preset saved for *address*.

        The descriptor in *lookup_dir* decides the policy: when it disables
        presets an empty mapping is returned without touching storage; when
        it lists keys the preset is filtered down to them.  A missing or
        unreadable preset yields an empty mapping.
        """
        if descriptor is None:
            descriptor = load_descriptor(lookup_dir, self.config)
        if not descriptor.saves_preset:
            return {}

        path = self.path_for(address)
        if not path.is_file():
            return {}

        try:
            preset = await asyncio.to_thread(load_json, path)
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError is a ValueError
            print_warning(f"  Ignoring unreadable preset {path}: {exc}")
            return {}

        console.print(f"  Loaded preset [dim]{path.name}[/dim]")
        return descriptor.filter_answers(preset)

    async def save(self, address: str, answers: dict[str, Any]) -> Path:
        """Replace the preset stored for *address* with *answers*.

        Raises:
            PresetIOError: If the answers cannot be serialised or written.
        """
        key = fingerprint(address)
        path = self.config.preset_path(key)
        try:
            await save_json(answers, path)
        except (OSError, TypeError, ValueError) as exc:
            raise PresetIOError(
                f"Failed to save preset for {address} to {path}: {exc}",
                fingerprint=key,
                path=path,
            ) from exc

        console.print(f"  Saved preset [dim]{path.name}[/dim]")
        return path

    def remove(self, address: str) -> bool:
        """Forget the preset for *address*.  Returns ``True`` if one existed."""
        path = self.path_for(address)
        if not path.exists():
            return False
        path.unlink()
        return True

