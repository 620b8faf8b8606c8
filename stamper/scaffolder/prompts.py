"""Question models and prompt front-ends.

Template descriptors describe their questions as ``Question`` objects (or
plain dicts that validate into one).  A ``Prompter`` turns a list of
questions into an answer mapping; ``RichPrompter`` asks on the terminal and
``DefaultsPrompter`` answers every question with its default.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field, model_validator
from rich.console import Console
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt

from stamper.utils import console as _default_console

QuestionType = Literal["input", "confirm", "number", "list", "password"]


class PromptError(Exception):
    """Raised when interactive input is aborted."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class Question(BaseModel):
    """A single question asked before rendering."""

    name: str = Field(..., min_length=1, description="Answer key")
    message: str = Field(default="", description="Prompt text; falls back to the name")
    type: QuestionType = Field(default="input")
    default: Any = Field(default=None, description="None means no default")
    choices: list[Any] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_choices(self) -> "Question":
        if self.type == "list" and not self.choices:
            raise ValueError(f"question {self.name!r} of type 'list' needs choices")
        if not self.message:
            self.message = self.name
        return self


class Prompter(Protocol):
    """Collects answers for an ordered list of questions."""

    async def ask(self, questions: list[Question]) -> dict[str, Any]: ...


class DefaultsPrompter:
    """Non-interactive prompter: every answer is the question's default.

    Questions without a default are left unanswered so values supplied by
    the caller are not overwritten with ``None``.
    """

    async def ask(self, questions: list[Question]) -> dict[str, Any]:
        return {q.name: q.default for q in questions if q.default is not None}


class RichPrompter:
    """Asks questions one by one on the terminal using ``rich.prompt``."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or _default_console

    async def ask(self, questions: list[Question]) -> dict[str, Any]:
        answers: dict[str, Any] = {}
        for question in questions:
            answers[question.name] = await asyncio.to_thread(self._ask_one, question)
        return answers

    def _ask_one(self, question: Question) -> Any:
        kwargs: dict[str, Any] = {"console": self.console}
        if question.default is not None:
            kwargs["default"] = question.default

        try:
            if question.type == "confirm":
                return Confirm.ask(question.message, **kwargs)
            if question.type == "number":
                if isinstance(question.default, float):
                    return FloatPrompt.ask(question.message, **kwargs)
                return IntPrompt.ask(question.message, **kwargs)
            if question.type == "list":
                choices = [str(c) for c in question.choices]
                if "default" in kwargs:
                    # a stale preset value may no longer be a valid choice
                    if str(kwargs["default"]) in choices:
                        kwargs["default"] = str(kwargs["default"])
                    else:
                        del kwargs["default"]
                answer = Prompt.ask(question.message, choices=choices, **kwargs)
                # hand back the original choice object, not its string form
                return question.choices[choices.index(answer)]
            if question.type == "password":
                return Prompt.ask(question.message, password=True, **kwargs)
            return Prompt.ask(question.message, **kwargs)
        except (KeyboardInterrupt, EOFError) as exc:
            raise PromptError(
                f"Input aborted while answering {question.name!r}", key=question.name
            ) from exc
