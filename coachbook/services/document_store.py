"""Tenant-scoped document store on top of the async SQLAlchemy session.

Collections are addressed by path (``tenants/{tenant_id}/{entity}``) and hold
JSON documents keyed by id. Scalar filters become SQL predicates on the JSON
column (``JSON_EXTRACT`` on SQLite, ``->>`` on PostgreSQL); list membership
and ordering run in Python over the rows that remain.

Live views are explicit :class:`Subscription` objects owned by the caller:
``sub = store.subscribe(...)``, ``await sub.open()``, ``sub.close()``.
"""

import inspect
import logging
import operator
import uuid
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from coachbook.models.document import Document

logger = logging.getLogger(__name__)

Filter = Tuple[str, str, Any]
Order = Tuple[str, str]
SnapshotCallback = Callable[[List[dict]], Union[None, Awaitable[None]]]


def tenant_collection(tenant_id: str, entity: str) -> str:
    """Collection path of an entity under a tenant."""
    if not tenant_id:
        raise ValueError("tenant_id is required")
    return f"tenants/{tenant_id}/{entity}"


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(field_value: Any, value: Any) -> bool:
        if field_value is None or value is None:
            return False
        try:
            return op(field_value, value)
        except TypeError:
            return False
    return check


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda field_value, value: field_value == value,
    "!=": lambda field_value, value: field_value != value,
    "<": _compare(operator.lt),
    "<=": _compare(operator.le),
    ">": _compare(operator.gt),
    ">=": _compare(operator.ge),
    "in": lambda field_value, value: field_value in value,
    "array-contains": lambda field_value, value: isinstance(field_value, list) and value in field_value,
}


_SQL_COMPARISONS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _typed_field(field: str, sample: Any):
    """JSON field cast to the SQL type of ``sample``, or None when it has no scalar type."""
    element = Document.data[field]
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    if isinstance(sample, str):
        return element.as_string()
    return None


def _sql_predicate(field: str, op: str, value: Any):
    """SQL form of a filter, or None when it has to be checked in Python."""
    if op == "in":
        if isinstance(value, str):
            return None
        values = list(value)
        if not values or len({type(v) for v in values}) != 1:
            return None
        column = _typed_field(field, values[0])
        return column.in_(values) if column is not None else None

    compare = _SQL_COMPARISONS.get(op)
    column = _typed_field(field, value) if compare else None
    if column is None:
        return None
    if op == "!=":
        # a missing field is "not equal" as well
        return or_(column != value, column.is_(None))
    return compare(column, value)


def matches(doc: dict, filters: Optional[Sequence[Filter]]) -> bool:
    for field, op, value in filters or ():
        check = _OPERATORS.get(op)
        if check is None:
            raise ValueError(f"Unsupported filter operator: {op}")
        if not check(doc.get(field), value):
            return False
    return True


def sort_documents(docs: List[dict], order: Optional[Order]) -> List[dict]:
    if not order:
        return docs
    field, direction = order
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unsupported order direction: {direction}")
    present = [d for d in docs if d.get(field) is not None]
    missing = [d for d in docs if d.get(field) is None]
    present.sort(key=lambda d: d[field], reverse=direction == "desc")
    return present + missing


class Subscription:
    """A live query. Delivers the full result list on open and after every write
    to its collection until closed.

    Fan-out is local to the owning :class:`DocumentStore`. The API builds one
    store per request session, so a subscription only sees writes made through
    that same store, never writes from other requests or processes.
    """

    def __init__(
        self,
        store: "DocumentStore",
        path: str,
        filters: Optional[Sequence[Filter]],
        order: Optional[Order],
        callback: SnapshotCallback,
    ):
        self.store = store
        self.path = path
        self.filters = list(filters or [])
        self.order = order
        self.callback = callback
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> "Subscription":
        if not self._open:
            self._open = True
            self.store._subscriptions.append(self)
            await self.deliver()
        return self

    def close(self) -> None:
        if self._open:
            self._open = False
            self.store._subscriptions.remove(self)

    async def deliver(self) -> None:
        if not self._open:
            return
        try:
            docs = await self.store.query(self.path, self.filters, self.order)
            result = self.callback(docs)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("Subscription on %s failed: %s", self.path, e)

    async def __aenter__(self) -> "Subscription":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class DocumentStore:
    """get / query / set / delete / subscribe over the ``documents`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._subscriptions: List[Subscription] = []
        self._batch_depth = 0
        self._dirty: Set[str] = set()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _row(self, path: str, doc_id: str) -> Optional[Document]:
        result = await self.db.execute(
            select(Document).where(Document.collection == path, Document.doc_id == doc_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_dict(row: Document) -> dict:
        return {**row.data, "id": row.doc_id}

    async def get(self, path: str, doc_id: str) -> Optional[dict]:
        row = await self._row(path, doc_id)
        return self._to_dict(row) if row else None

    async def query(
        self,
        path: str,
        filters: Optional[Sequence[Filter]] = None,
        order: Optional[Order] = None,
    ) -> List[dict]:
        """Documents of a collection matching every filter.

        Scalar comparisons run in SQL against the JSON column; the rest
        (``array-contains``, mixed-type ``in``, None values) is checked in Python.
        """
        stmt = select(Document).where(Document.collection == path)
        remaining = []
        for field, op, value in filters or ():
            if op not in _OPERATORS:
                raise ValueError(f"Unsupported filter operator: {op}")
            predicate = _sql_predicate(field, op, value)
            if predicate is None:
                remaining.append((field, op, value))
            else:
                stmt = stmt.where(predicate)

        result = await self.db.execute(stmt.order_by(Document.created_at))
        docs = [self._to_dict(row) for row in result.scalars().all()]
        return sort_documents([d for d in docs if matches(d, remaining)], order)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(self, path: str, doc_id: str, data: dict, merge: bool = False) -> None:
        """Create or replace a document. With ``merge`` only the given keys change."""
        payload = {k: v for k, v in data.items() if k != "id"}
        row = await self._row(path, doc_id)
        if row is None:
            self.db.add(Document(collection=path, doc_id=doc_id, data=payload))
        elif merge:
            row.data = {**row.data, **payload}
        else:
            row.data = payload
        await self._commit(path)

    async def add(self, path: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        await self.set(path, doc_id, data)
        return doc_id

    async def delete(self, path: str, doc_id: str) -> bool:
        row = await self._row(path, doc_id)
        if row is None:
            return False
        await self.db.delete(row)
        await self._commit(path)
        return True

    async def _commit(self, path: str) -> None:
        self._dirty.add(path)
        if self._batch_depth:
            await self.db.flush()
            return
        await self.db.commit()
        await self._notify()

    @asynccontextmanager
    async def batch(self):
        """Group writes into one commit. Everything is rolled back if the block raises."""
        self._batch_depth += 1
        try:
            yield self
        except BaseException:
            self._batch_depth -= 1
            if not self._batch_depth:
                await self.db.rollback()
                self._dirty.clear()
            raise
        self._batch_depth -= 1
        if not self._batch_depth:
            await self.db.commit()
            await self._notify()

    # ------------------------------------------------------------------
    # Live queries
    # ------------------------------------------------------------------

    def subscribe(
        self,
        path: str,
        filters: Optional[Sequence[Filter]] = None,
        order: Optional[Order] = None,
        callback: Optional[SnapshotCallback] = None,
    ) -> Subscription:
        if callback is None:
            raise ValueError("callback is required")
        return Subscription(self, path, filters, order, callback)

    async def _notify(self) -> None:
        dirty, self._dirty = self._dirty, set()
        for sub in list(self._subscriptions):
            if sub.path in dirty:
                await sub.deliver()
