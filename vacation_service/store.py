"""
Thin query/command layer over an AsyncSession.

Only equality / IN filters and single-column ordering are offered; joins are
done by the callers. Every call is bounded by a timeout and any database
failure is re-raised as QueryFailure.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import QUERY_TIMEOUT_SECONDS
from .errors import QueryFailure

logger = logging.getLogger(__name__)

READ_FAILED = "Unable to load bookings"
WRITE_FAILED = "Unable to save changes"


class Store:
    def __init__(self, session: AsyncSession, timeout: float | None = None):
        self.session = session
        self.timeout = timeout if timeout is not None else QUERY_TIMEOUT_SECONDS

    async def _run(self, coro, failure_detail: str = READ_FAILED):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Store call timed out after %.1fs", self.timeout)
            raise QueryFailure("store timeout", public_detail=failure_detail)
        except SQLAlchemyError as e:
            logger.error("Store call failed: %s", e)
            raise QueryFailure(str(e), public_detail=failure_detail)

    @staticmethod
    def _where(model, filters: dict | None):
        clauses = []
        for name, value in (filters or {}).items():
            column = getattr(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    async def query(self, model, filters: dict | None = None, order_by: str | None = None, descending: bool = True):
        stmt = (
            select(model)
            .where(*self._where(model, filters))
            .execution_options(populate_existing=True)
        )
        if order_by:
            column = getattr(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())

        res = await self._run(self.session.execute(stmt))
        return list(res.scalars().all())

    async def get(self, model, record_id: str):
        return await self._run(
            self.session.get(model, record_id, populate_existing=True)
        )

    async def insert(self, record):
        self.session.add(record)
        await self._run(self.session.flush(), WRITE_FAILED)
        return record

    async def delete(self, record):
        await self._run(self.session.delete(record), WRITE_FAILED)
        await self._run(self.session.flush(), WRITE_FAILED)

    async def update_where(self, model, filters: dict, patch: dict) -> int:
        stmt = update(model).where(*self._where(model, filters)).values(**patch)
        res = await self._run(self.session.execute(stmt), WRITE_FAILED)
        return res.rowcount

    async def update(self, model, record_id: str, patch: dict) -> bool:
        return await self.update_where(model, {"id": record_id}, patch) == 1

    async def compare_and_swap(self, model, record_id: str, version: int, patch: dict) -> bool:
        """UPDATE ... WHERE id = :id AND version = :version, bumping the version."""
        stmt = (
            update(model)
            .where(model.id == record_id, model.version == version)
            .values(**patch, version=version + 1)
        )
        res = await self._run(self.session.execute(stmt), WRITE_FAILED)
        return res.rowcount == 1

    async def commit(self):
        await self._run(self.session.commit(), WRITE_FAILED)

    async def rollback(self):
        await self.session.rollback()

    @asynccontextmanager
    async def transaction(self):
        """Commit on success, roll back on any error."""
        try:
            yield self
            await self.commit()
        except Exception:
            await self.rollback()
            raise
