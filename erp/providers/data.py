"""Relational data provider contract and its SQLModel implementation.

Callers address rows by relation name and equality predicates only:

    await data.select_one("users", id=identity_id)
    await data.update("tasks", {"status": "done"}, id=task_id, tenant_id=tid)

Tenant isolation is *not* enforced here. Callers must pass the tenant
filter themselves after the access gate has approved the request.
"""

import logging
from typing import Any, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from erp.models.base import touch
from erp.models.task import Task
from erp.models.tenant import Tenant
from erp.models.user import User

logger = logging.getLogger(__name__)

RELATIONS: dict[str, type[SQLModel]] = {
    "tenants": Tenant,
    "users": User,
    "tasks": Task,
}


class DataError(Exception):
    def __init__(self, relation: str, message: str) -> None:
        super().__init__(f"{relation}: {message}")
        self.relation = relation
        self.message = message


class DataConflictError(DataError):
    """A uniqueness constraint rejected the write."""


class UnknownRelation(DataError):
    pass


class DataProvider(Protocol):
    async def select(
        self, relation: str, *, order_by: str | None = None, **eq: Any
    ) -> list[Any]: ...

    async def select_one(self, relation: str, **eq: Any) -> Any | None: ...

    async def insert(self, relation: str, values: dict[str, Any]) -> Any: ...

    async def update(self, relation: str, values: dict[str, Any], **eq: Any) -> list[Any]: ...

    async def upsert(self, relation: str, values: dict[str, Any]) -> Any: ...

    async def delete(self, relation: str, **eq: Any) -> int: ...


class SqlDataProvider:
    """``DataProvider`` over an injected async session; one per request."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Reads ─────────────────────────────────────────────────

    async def select(
        self, relation: str, *, order_by: str | None = None, **eq: Any
    ) -> list[Any]:
        """Return every row matching ``eq``.

        ``order_by`` names a column; prefix it with ``-`` for descending.
        """
        model = self._model(relation)
        stmt = select(model).where(*self._predicates(relation, model, eq))
        if order_by:
            column = self._column(relation, model, order_by.lstrip("-"))
            stmt = stmt.order_by(column.desc() if order_by.startswith("-") else column.asc())
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise DataError(relation, str(exc)) from exc
        return list(result.scalars().all())

    async def select_one(self, relation: str, **eq: Any) -> Any | None:
        rows = await self.select(relation, **eq)
        return rows[0] if rows else None

    # ── Writes ────────────────────────────────────────────────

    async def insert(self, relation: str, values: dict[str, Any]) -> Any:
        model = self._model(relation)
        row = model(**values)
        self.session.add(row)
        await self._commit(relation)
        await self.session.refresh(row)
        return row

    async def update(self, relation: str, values: dict[str, Any], **eq: Any) -> list[Any]:
        """Apply ``values`` to every row matching ``eq``; return the updated rows."""
        rows = await self.select(relation, **eq)
        for row in rows:
            self._assign(row, values)
            self.session.add(row)
        if rows:
            await self._commit(relation)
        return rows

    async def upsert(self, relation: str, values: dict[str, Any]) -> Any:
        """Insert, or update the row with the same primary key."""
        model = self._model(relation)
        if "id" not in values:
            raise DataError(relation, "upsert requires an 'id'")

        row = await self.session.get(model, values["id"])
        if row is None:
            return await self.insert(relation, values)

        self._assign(row, values)
        self.session.add(row)
        await self._commit(relation)
        await self.session.refresh(row)
        return row

    async def delete(self, relation: str, **eq: Any) -> int:
        if not eq:
            raise DataError(relation, "refusing to delete without a filter")

        rows = await self.select(relation, **eq)
        for row in rows:
            await self.session.delete(row)
        if rows:
            await self._commit(relation)
        return len(rows)

    # ── Internal helpers ──────────────────────────────────────

    @staticmethod
    def _model(relation: str) -> type[SQLModel]:
        try:
            return RELATIONS[relation]
        except KeyError:
            raise UnknownRelation(relation, "no such relation") from None

    @staticmethod
    def _column(relation: str, model: type[SQLModel], name: str) -> Any:
        if name not in model.model_fields:
            raise DataError(relation, f"no such column '{name}'")
        return getattr(model, name)

    def _predicates(self, relation: str, model: type[SQLModel], eq: dict[str, Any]) -> list[Any]:
        return [self._column(relation, model, name) == value for name, value in eq.items()]

    @staticmethod
    def _assign(row: SQLModel, values: dict[str, Any]) -> None:
        for field, value in values.items():
            setattr(row, field, value)
        touch(row)

    async def _commit(self, relation: str) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if _is_unique_violation(exc):
                raise DataConflictError(relation, str(exc.orig)) from exc
            raise DataError(relation, str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Write to %s failed", relation)
            raise DataError(relation, str(exc)) from exc


def _is_unique_violation(exc: IntegrityError) -> bool:
    # asyncpg reports SQLSTATE 23505; SQLite only says so in the message
    sqlstate = getattr(exc.orig, "sqlstate", None)
    if sqlstate is not None:
        return sqlstate == "23505"
    return "unique" in str(exc.orig).lower()
