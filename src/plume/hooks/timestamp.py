"""Hooks stamping fields with the current time."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable

from .base import HookContext, HookResult, Ok

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SetTimestamp:
    """Set a single field on the context data to the current time."""

    def __init__(self, name: str, clock: Clock | None = None):
        self.name = name
        self.clock = clock or utcnow

    def __repr__(self) -> str:
        return f"SetTimestamp({self.name!r})"

    async def __call__(self, context: HookContext) -> HookResult:
        if context.data is None:
            context.data = {}
        context.data[self.name] = self.clock()
        return Ok(context)


class SetTimestamps:
    """Set several fields to one shared current-time value."""

    def __init__(self, names: Iterable[str], clock: Clock | None = None):
        self.names = tuple(names)
        if not self.names:
            raise ValueError("SetTimestamps needs at least one field name")
        self.clock = clock or utcnow

    def __repr__(self) -> str:
        return f"SetTimestamps({list(self.names)!r})"

    async def __call__(self, context: HookContext) -> HookResult:
        if context.data is None:
            context.data = {}
        now = self.clock()
        for name in self.names:
            context.data[name] = now
        return Ok(context)
