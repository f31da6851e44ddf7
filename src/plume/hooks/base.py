"""Base types shared by all hook implementations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from ..errors import ServiceException

__all__ = ["HookContext", "Ok", "Failure", "HookResult", "Hook"]


@dataclass
class HookContext:
    """Per-call state passed through the hook chain.

    A context is created at the start of every service call and discarded
    once the call completes. Hooks may replace :attr:`data` (before hooks)
    or :attr:`result` (after hooks).
    """

    path: str
    method: str
    type: str = "before"
    id: Any = None
    data: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: ServiceException | None = None


@dataclass(frozen=True)
class Ok:
    """Hook succeeded; the chain continues with ``context``."""

    context: HookContext


@dataclass(frozen=True)
class Failure:
    """Hook rejected the call; the chain stops and ``error`` is raised."""

    error: ServiceException


HookResult = Union[Ok, Failure]

Hook = Callable[[HookContext], Awaitable[HookResult]]
