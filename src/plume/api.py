"""FastAPI application exposing the messages service over REST."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, Iterable

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .database import DatabaseStore
from .errors import InvalidInput, ServiceException
from .messages import MESSAGES_PATH, create_messages_app
from .models import ErrorResponse

logger = logging.getLogger(__name__)
logger.setLevel(settings.log_level)

__all__ = ["app", "create_app", "parse_query"]

_NESTED_KEY = re.compile(r"^([^\[\]]+)\[([^\[\]]+)\]$")


def parse_query(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Turn query-string pairs into a query dictionary.

    ``counter[$gt]=50`` becomes ``{"counter": {"$gt": "50"}}`` and
    ``$sort[id]=-1`` becomes ``{"$sort": {"id": "-1"}}``. Repeated
    ``$in``/``$nin`` keys collect into a list.
    """
    query: dict[str, Any] = {}
    for key, value in items:
        match = _NESTED_KEY.match(key)
        if match is None:
            query[key] = value
            continue
        outer, inner = match.groups()
        nested = query.setdefault(outer, {})
        if not isinstance(nested, dict):
            raise InvalidInput(f"Conflicting query parameters for {outer!r}")
        if inner in ("$in", "$nin"):
            nested.setdefault(inner, []).append(value)
        else:
            nested[inner] = value
    return query


async def _read_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        # JSONDecodeError and UnicodeDecodeError
        raise InvalidInput("Request body is not valid JSON") from None
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object")
    return body


def create_app(config: Settings | None = None) -> FastAPI:
    """Build the FastAPI app around a freshly configured messages service."""
    config = config or settings
    application = create_messages_app(config)
    messages = application.service(MESSAGES_PATH)

    @asynccontextmanager
    async def lifespan(api: FastAPI):
        store = messages.store
        if isinstance(store, DatabaseStore):
            await store.setup()
        yield
        await messages.emitter.drain()
        if isinstance(store, DatabaseStore):
            await store.close()

    api = FastAPI(lifespan=lifespan)
    api.state.application = application

    @api.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log basic information about incoming requests and outgoing responses."""
        logger.info("Request %s %s", request.method, request.url.path)
        response = await call_next(request)
        logger.info("Response %s %s", response.status_code, request.url.path)
        return response

    @api.exception_handler(ServiceException)
    async def service_error_handler(request: Request, exc: ServiceException):
        """Map service errors to their status code and a JSON body."""
        body = ErrorResponse(**exc.to_response())
        return JSONResponse(
            status_code=exc.error.status_code,
            content=body.model_dump(exclude_none=True),
        )

    @api.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "error_type": "internal_error"},
        )

    @api.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint.

        Returns a simple status dictionary indicating the API is running.
        """
        return {"status": "ok"}

    @api.get(f"/{MESSAGES_PATH}")
    async def find_messages(request: Request):
        query = parse_query(request.query_params.multi_items())
        return jsonable_encoder(await messages.find(query))

    @api.get(f"/{MESSAGES_PATH}/{{id}}")
    async def get_message(id: str):
        return jsonable_encoder(await messages.get(id))

    @api.post(f"/{MESSAGES_PATH}", status_code=201)
    async def create_message(request: Request):
        body = await _read_object(request)
        return jsonable_encoder(await messages.create(body))

    @api.put(f"/{MESSAGES_PATH}/{{id}}")
    async def update_message(id: str, request: Request):
        body = await _read_object(request)
        return jsonable_encoder(await messages.update(id, body))

    @api.patch(f"/{MESSAGES_PATH}/{{id}}")
    async def patch_message(id: str, request: Request):
        body = await _read_object(request)
        return jsonable_encoder(await messages.patch(id, body))

    @api.delete(f"/{MESSAGES_PATH}/{{id}}")
    async def remove_message(id: str):
        return jsonable_encoder(await messages.remove(id))

    return api


app = create_app()
