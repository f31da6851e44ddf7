"""Validation hook for incoming message data."""

from __future__ import annotations

from typing import Mapping

from ..errors import InvalidInput
from .base import Failure, HookContext, HookResult, Ok


class ValidateText:
    """Reject data without a usable ``text`` field.

    On success the context data is replaced by a new dictionary holding only
    ``text`` and the fields listed in ``forward``, so callers cannot store
    arbitrary properties. ``forward`` maps each extra field name to the type
    its value must have when present.
    """

    def __init__(self, forward: Mapping[str, type] | None = None):
        self.forward = dict(forward or {})

    def __repr__(self) -> str:
        return f"ValidateText(forward={sorted(self.forward)!r})"

    async def __call__(self, context: HookContext) -> HookResult:
        data = context.data if isinstance(context.data, dict) else {}

        text = data.get("text")
        if text is None:
            return Failure(InvalidInput("Message text must exist"))
        if not isinstance(text, str) or not text.strip():
            return Failure(InvalidInput("Message text is invalid"))

        cleaned = {"text": str(text)}
        for name, expected in self.forward.items():
            if data.get(name) is None:
                continue
            value = data[name]
            # bool is an int subclass but never a valid counter
            if isinstance(value, bool) or not isinstance(value, expected):
                return Failure(
                    InvalidInput(
                        f"Message {name} is invalid",
                        details={"field": name, "expected": expected.__name__},
                    )
                )
            cleaned[name] = value

        context.data = cleaned
        return Ok(context)
