"""Service facade composing a store, a hook pipeline and an event emitter."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from .errors import GeneralError, ServiceException
from .events import EVENTS, EventEmitter, Listener
from .hooks import Failure, HookContext, HookTable, run_hooks
from .store import RecordStore

__all__ = ["Service", "Application", "ErrorObserver"]

logger = logging.getLogger(__name__)

ErrorObserver = Callable[[str, str, ServiceException], Any]


class Service:
    """Uniform ``find/get/create/update/patch/remove`` interface over a store.

    Every call builds a :class:`HookContext`, runs the ``before`` hooks, calls
    the store, runs the ``after`` hooks and, for mutating methods, emits the
    matching event. A failure at any stage stops the call, notifies the error
    observers and is raised to the caller.
    """

    def __init__(
        self,
        path: str,
        store: RecordStore,
        hooks: HookTable | None = None,
        emitter: EventEmitter | None = None,
        error_observers: Iterable[ErrorObserver] = (),
    ):
        self.path = path.strip("/")
        self.store = store
        self.hooks = hooks or HookTable()
        self.emitter = emitter or EventEmitter()
        self.error_observers = tuple(error_observers)

    def on(self, event: str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``created``/``updated``/``patched``/``removed``."""
        self.emitter.on(event, listener)

    async def find(self, query: dict[str, Any] | None = None) -> Any:
        return await self._call("find", params=query or {})

    async def get(self, id: Any) -> Any:
        return await self._call("get", id=id)

    async def create(self, data: dict[str, Any]) -> Any:
        return await self._call("create", data=data)

    async def update(self, id: Any, data: dict[str, Any]) -> Any:
        return await self._call("update", id=id, data=data)

    async def patch(self, id: Any, data: dict[str, Any]) -> Any:
        return await self._call("patch", id=id, data=data)

    async def remove(self, id: Any) -> Any:
        return await self._call("remove", id=id)

    async def _call(self, method: str, id: Any = None, data: Any = None, params=None):
        context = HookContext(
            path=self.path,
            method=method,
            id=id,
            data=dict(data) if isinstance(data, dict) else data,
            params=dict(params or {}),
        )
        try:
            outcome = await run_hooks(self.hooks.chain("before", method), context)
            if isinstance(outcome, Failure):
                raise outcome.error
            context = outcome.context

            context.result = await self._execute(context)

            context.type = "after"
            outcome = await run_hooks(self.hooks.chain("after", method), context)
            if isinstance(outcome, Failure):
                raise outcome.error
            context = outcome.context
        except ServiceException as e:
            context.error = e
            self._notify_error(context)
            raise
        except Exception as e:
            logger.exception("Unexpected error in %s.%s", self.path, method)
            context.error = GeneralError(str(e) or type(e).__name__)
            self._notify_error(context)
            raise context.error from e

        event = EVENTS.get(method)
        if event is not None:
            self.emitter.emit(event, context.result)
        return context.result

    async def _execute(self, context: HookContext) -> Any:
        method = context.method
        if method == "find":
            return await self.store.find(context.params)
        if method in ("get", "remove"):
            return await getattr(self.store, method)(context.id)
        if method == "create":
            return await self.store.create(context.data or {})
        return await getattr(self.store, method)(context.id, context.data or {})

    def _notify_error(self, context: HookContext) -> None:
        for observer in self.error_observers:
            try:
                observer(context.path, context.method, context.error)
            except Exception:
                logger.exception("Error observer %r failed", observer)


class Application:
    """Registry of services sharing the process-wide error observers."""

    def __init__(self, error_observers: Iterable[ErrorObserver] = ()):
        self.error_observers = tuple(error_observers)
        self._services: dict[str, Service] = {}

    def use(
        self,
        path: str,
        store: RecordStore,
        hooks: HookTable | None = None,
        emitter: EventEmitter | None = None,
    ) -> Service:
        """Register ``store`` under ``path`` and return the wrapping service."""
        service = Service(
            path,
            store,
            hooks=hooks,
            emitter=emitter,
            error_observers=self.error_observers,
        )
        self._services[service.path] = service
        return service

    def service(self, path: str) -> Service:
        try:
            return self._services[path.strip("/")]
        except KeyError:
            raise KeyError(f"No service registered at {path!r}") from None

    @property
    def services(self) -> dict[str, Service]:
        return dict(self._services)
