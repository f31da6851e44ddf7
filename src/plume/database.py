"""SQLAlchemy-backed record store for the messages resource."""

from __future__ import annotations

import logging
import operator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncGenerator

from sqlalchemy import DateTime, Integer, String, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from .errors import GeneralError, InvalidInput, NotFound
from .models import Page
from .store import Record, coerce_id

__all__ = ["Base", "Message", "Paginate", "DatabaseStore"]

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all plume ORM models."""


class Message(Base):
    __tablename__ = "messages"
    # AUTOINCREMENT keeps SQLite from reusing the id of the newest removed row
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(String(255), nullable=False)
    counter: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    createdAt: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updatedAt: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    patchedAt: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def to_dict(self) -> Record:
        return {column.key: getattr(self, column.key) for column in self.__table__.columns}


@dataclass(frozen=True)
class Paginate:
    """Page size applied when a query gives no ``$limit``, and its ceiling."""

    default: int = 5
    max: int = 10


OPERATORS = {
    "$lt": operator.lt,
    "$lte": operator.le,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$ne": operator.ne,
    "$in": lambda column, value: column.in_(value),
    "$nin": lambda column, value: column.not_in(value),
}

SPECIAL_KEYS = ("$limit", "$skip", "$sort")


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid value for {name}: {value!r}") from None


def _as_count(name: str, value: Any) -> int:
    """Parse ``$limit``/``$skip``; SQLite treats a negative LIMIT as unbounded."""
    count = _as_int(name, value)
    if count < 0:
        raise InvalidInput(f"Invalid value for {name}: {value!r}")
    return count


def _coerce(column, value: Any) -> Any:
    """Convert query-string text to the column's Python type."""
    if isinstance(value, (list, tuple)):
        return [_coerce(column, item) for item in value]
    if isinstance(value, dict):
        raise InvalidInput(f"Invalid value for {column.key}: {value!r}")
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    try:
        if python_type is int:
            return int(value)
        if python_type is datetime:
            return datetime.fromisoformat(value)
    except ValueError:
        raise InvalidInput(
            f"Invalid value for {column.key}: {value!r}"
        ) from None
    return value


def _column(name: str):
    column = Message.__table__.columns.get(name)
    if column is None:
        raise InvalidInput(f"Unknown field in query: {name!r}")
    return column


def build_filters(query: dict[str, Any]) -> list:
    """Translate a query dictionary into SQLAlchemy where clauses."""
    clauses = []
    for name, condition in query.items():
        if name in SPECIAL_KEYS:
            continue
        column = _column(name)
        if isinstance(condition, dict):
            for op, value in condition.items():
                compare = OPERATORS.get(op)
                if compare is None:
                    raise InvalidInput(f"Unsupported query operator: {op!r}")
                if op in ("$in", "$nin") and not isinstance(value, (list, tuple)):
                    value = [value]
                clauses.append(compare(column, _coerce(column, value)))
        else:
            clauses.append(column == _coerce(column, condition))
    return clauses


def build_order(sort: dict[str, Any] | None) -> list:
    if sort is not None and not isinstance(sort, dict):
        raise InvalidInput(f"Invalid $sort: {sort!r}")
    order = []
    for name, direction in (sort or {}).items():
        column = _column(name)
        order.append(column.desc() if _as_int("$sort", direction) < 0 else column.asc())
    if not order:
        order.append(Message.id.asc())
    return order


def _fields(data: Record) -> Record:
    """Keep only known columns, never the primary key."""
    columns = Message.__table__.columns
    return {k: v for k, v in data.items() if k in columns and k != "id"}


def create_engine_for(database_url: str, echo: bool = False):
    if ":memory:" in database_url:
        # One shared connection, otherwise every session sees an empty database
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


class DatabaseStore:
    """Delegate record operations to a SQL database through SQLAlchemy.

    Filtering, sorting and limit/skip are translated to SQL; nothing is
    evaluated in Python. When ``paginate`` is set, :meth:`find` returns a
    :class:`~plume.models.Page` dictionary instead of a plain list.
    """

    def __init__(
        self,
        database_url: str,
        paginate: Paginate | None = None,
        echo: bool = False,
    ):
        self.engine = create_engine_for(database_url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self.paginate = paginate

    async def setup(self) -> None:
        """Create the messages table if it does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a session committed on success and rolled back on error."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise InvalidInput("Integrity constraint violated") from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise GeneralError("Database operation failed") from e
        finally:
            await session.close()

    async def find(self, query: dict[str, Any] | None = None) -> list[Record] | dict[str, Any]:
        query = dict(query or {})
        filters = build_filters(query)
        order = build_order(query.get("$sort"))
        skip = _as_count("$skip", query.get("$skip", 0))

        limit = query.get("$limit")
        limit = _as_count("$limit", limit) if limit is not None else None
        if self.paginate is not None:
            if limit is None:
                limit = self.paginate.default
            limit = min(limit, self.paginate.max)

        stmt = select(Message).where(*filters).order_by(*order).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self.session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            data = [row.to_dict() for row in rows]
            if self.paginate is None:
                return data
            total = await session.scalar(
                select(func.count()).select_from(Message).where(*filters)
            )

        return Page(total=total or 0, limit=limit, skip=skip, data=data).model_dump()

    async def _lookup(self, session: AsyncSession, id: Any) -> Message:
        key = coerce_id(id)
        row = await session.get(Message, key) if key is not None else None
        if row is None:
            raise NotFound(f"Message with id {id} not found")
        return row

    async def get(self, id: Any) -> Record:
        async with self.session() as session:
            row = await self._lookup(session, id)
            return row.to_dict()

    async def create(self, data: Record) -> Record:
        async with self.session() as session:
            row = Message(**_fields(data))
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return row.to_dict()

    async def update(self, id: Any, data: Record) -> Record:
        """Replace every column except ``id``; missing columns reset to defaults."""
        fields = _fields(data)
        async with self.session() as session:
            row = await self._lookup(session, id)
            for column in Message.__table__.columns:
                if column.key == "id":
                    continue
                default = column.default.arg if column.default is not None else None
                setattr(row, column.key, fields.get(column.key, default))
            await session.flush()
            await session.refresh(row)
            return row.to_dict()

    async def patch(self, id: Any, data: Record) -> Record:
        async with self.session() as session:
            row = await self._lookup(session, id)
            for name, value in _fields(data).items():
                setattr(row, name, value)
            await session.flush()
            await session.refresh(row)
            return row.to_dict()

    async def remove(self, id: Any) -> Record:
        async with self.session() as session:
            row = await self._lookup(session, id)
            record = row.to_dict()
            await session.delete(row)
            return record
