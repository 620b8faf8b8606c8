"""Stamper scaffolder -- turns a template repository into a project.

The pieces, in the order the pipeline uses them:

- ``clone``: fetch the template and strip ``.git``.
- ``descriptor``: load the optional ``stamper.config.py`` plugin.
- ``presets``: recall answers given the last time this template was used.
- ``templates``: ask questions and render every template file in place.

Quick usage::

    from stamper.scaffolder import TemplateRenderer

    data = await TemplateRenderer().render("/tmp/my-project", {"name": "demo"})
"""

from stamper.scaffolder.clone import CloneError, CloneResult, clone_repo_and_clean
from stamper.scaffolder.descriptor import (
    DescriptorLoadError,
    TemplateDescriptor,
    load_descriptor,
    remove_descriptor,
)
from stamper.scaffolder.presets import PresetIOError, PresetStore, fingerprint
from stamper.scaffolder.prompts import (
    DefaultsPrompter,
    Prompter,
    PromptError,
    Question,
    RichPrompter,
)
from stamper.scaffolder.templates import TemplateRenderError, TemplateRenderer, render

__all__ = [
    "CloneError",
    "CloneResult",
    "DefaultsPrompter",
    "DescriptorLoadError",
    "PresetIOError",
    "PresetStore",
    "PromptError",
    "Prompter",
    "Question",
    "RichPrompter",
    "TemplateDescriptor",
    "TemplateRenderError",
    "TemplateRenderer",
    "clone_repo_and_clean",
    "fingerprint",
    "load_descriptor",
    "remove_descriptor",
    "render",
]
