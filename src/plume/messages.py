"""Wiring of the ``messages`` resource: hooks, listeners and error logging."""

from __future__ import annotations

import logging
from typing import Mapping

from .config import Settings
from .database import DatabaseStore, Paginate
from .errors import ServiceException
from .hooks import HookTable, SetTimestamp, SetTimestamps, ValidateText
from .hooks.timestamp import Clock
from .service import Application, Service
from .store import MemoryStore

__all__ = [
    "MESSAGES_PATH",
    "message_hooks",
    "log_service_error",
    "subscribe_logging_listeners",
    "create_messages_app",
]

logger = logging.getLogger(__name__)

MESSAGES_PATH = "messages"


def message_hooks(
    forward: Mapping[str, type] | None = None, clock: Clock | None = None
) -> HookTable:
    """Build the hook table of the messages service.

    ``create`` validates the input and stamps all three timestamps with one
    value, ``patch`` stamps ``patchedAt`` and ``update`` stamps ``updatedAt``.
    ``forward`` lists extra fields kept by validation, e.g. ``{"counter": int}``
    for the database store.
    """
    return HookTable(
        before={
            "create": [
                ValidateText(forward=forward),
                SetTimestamps(["createdAt", "patchedAt", "updatedAt"], clock=clock),
            ],
            "patch": SetTimestamp("patchedAt", clock=clock),
            "update": SetTimestamp("updatedAt", clock=clock),
        }
    )


def log_service_error(path: str, method: str, error: ServiceException) -> None:
    """Application-level error observer."""
    logger.error(
        "Error in '%s' service method '%s': %s",
        path,
        method,
        error,
        exc_info=(type(error), error, error.__traceback__),
    )


def subscribe_logging_listeners(service: Service) -> None:
    service.on("created", lambda message: logger.info("Created a new message %s", message))
    service.on("updated", lambda message: logger.info("Updated message %s", message))
    service.on("patched", lambda message: logger.info("Patched message %s", message))
    service.on("removed", lambda message: logger.info("Deleted message %s", message))


def create_store(settings: Settings):
    """Return the record store selected by ``settings.store``."""
    if settings.store == "database":
        return DatabaseStore(
            settings.database_url,
            paginate=Paginate(
                default=settings.paginate_default, max=settings.paginate_max
            ),
            echo=settings.database_echo,
        )
    return MemoryStore()


def create_messages_app(settings: Settings) -> Application:
    """Build an application exposing the messages service."""
    app = Application(error_observers=[log_service_error])
    store = create_store(settings)
    forward = {"counter": int} if isinstance(store, DatabaseStore) else None
    service = app.use(MESSAGES_PATH, store, hooks=message_hooks(forward=forward))
    subscribe_logging_listeners(service)
    logger.info("Messages service using %s store", settings.store)
    return app
