"""Hook tables and the before/after pipeline runner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from .base import Failure, Hook, HookContext, HookResult, Ok
from .timestamp import SetTimestamp, SetTimestamps
from .validate import ValidateText

__all__ = [
    "Failure",
    "Hook",
    "HookContext",
    "HookResult",
    "HookTable",
    "Ok",
    "SetTimestamp",
    "SetTimestamps",
    "ValidateText",
    "run_hooks",
]

logger = logging.getLogger(__name__)

ALL = "all"
METHODS = ("find", "get", "create", "update", "patch", "remove")


def _freeze(hooks: Mapping[str, Hook | Iterable[Hook]] | None):
    frozen: dict[str, tuple[Hook, ...]] = {}
    for method, steps in (hooks or {}).items():
        if method != ALL and method not in METHODS:
            raise ValueError(f"Unknown service method for hooks: {method!r}")
        frozen[method] = (steps,) if callable(steps) else tuple(steps)
    return MappingProxyType(frozen)


@dataclass(frozen=True, init=False)
class HookTable:
    """Immutable mapping of ``phase -> method -> hooks``.

    Built once when a service is configured. Each method entry may be a
    single hook or a sequence of hooks; the special ``all`` entry applies to
    every method and runs after the method-specific hooks.
    """

    before: Mapping[str, tuple[Hook, ...]]
    after: Mapping[str, tuple[Hook, ...]]

    def __init__(
        self,
        before: Mapping[str, Hook | Iterable[Hook]] | None = None,
        after: Mapping[str, Hook | Iterable[Hook]] | None = None,
    ) -> None:
        object.__setattr__(self, "before", _freeze(before))
        object.__setattr__(self, "after", _freeze(after))

    def chain(self, phase: str, method: str) -> tuple[Hook, ...]:
        """Return the hooks to run for ``method`` in ``phase``, in order."""
        table = self.before if phase == "before" else self.after
        return table.get(method, ()) + table.get(ALL, ())


async def run_hooks(hooks: Iterable[Hook], context: HookContext) -> HookResult:
    """Run ``hooks`` in order, stopping at the first :class:`Failure`."""
    for hook in hooks:
        outcome = await hook(context)
        if isinstance(outcome, Failure):
            logger.debug(
                "Hook %r stopped %s.%s: %s",
                hook,
                context.path,
                context.method,
                outcome.error,
            )
            return outcome
        context = outcome.context
    return Ok(context)
