"""Stamper -- scaffold projects from template repositories.

Quick usage::

    from stamper import create

    answers = await create("https://github.com/acme/template.git", "./my-project")
"""

from stamper.config import Config
from stamper.pipeline import ScaffoldError, ScaffoldPipeline, create
from stamper.scaffolder import clone_repo_and_clean, render

__all__ = [
    "Config",
    "ScaffoldError",
    "ScaffoldPipeline",
    "clone_repo_and_clean",
    "create",
    "render",
]
