"""
Document store over a single SQL table.

Collections hold JSON documents addressed by ``(collection, id)``. Queries
support equality, array-membership and ``in`` filters, ordering with cursor
pagination and limits. Writes are committed through one connection per call;
``WriteBatch`` and ``Transaction`` group several operations into a single SQL
transaction. Subscriptions are served in-process: after every committed write
each listener on a touched collection re-runs its query and receives the full
result set when it changed.
"""
import itertools
import json
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from database.documents.orm import (
    adapt_sql,
    begin_exclusive,
    get_connection,
    resolve_database_url,
)

logger = logging.getLogger(__name__)

# Largest value list accepted by an "in" filter
MAX_IN_FILTER_VALUES = 30

FILTER_OPS = ("==", "array-contains", "in")


class DocumentStoreError(Exception):
    """Base exception for document store errors"""

    pass


class DocumentNotFoundError(DocumentStoreError):
    """Raised when updating a document that does not exist"""

    pass


class DocumentExistsError(DocumentStoreError):
    """Raised when creating a document whose id is already taken"""

    pass


class QueryLimitError(DocumentStoreError):
    """Raised when a query exceeds a store ceiling"""

    pass


@dataclass
class Document:
    id: str
    data: Dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def matches(self, doc: Document) -> bool:
        current = doc.data.get(self.field)
        if self.op == "==":
            return current == self.value
        if self.op == "array-contains":
            return isinstance(current, list) and self.value in current
        if self.op == "in":
            return current in self.value
        raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    collection: str
    filters: Tuple[Filter, ...] = ()
    orderings: Tuple[OrderBy, ...] = ()
    max_results: Optional[int] = None
    cursor: Optional[Tuple[Any, ...]] = None

    def where(self, field_name: str, op: str, value: Any) -> "Query":
        if op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if op == "in":
            value = list(value)
            if len(value) > MAX_IN_FILTER_VALUES:
                raise QueryLimitError(
                    f"'in' filter accepts at most {MAX_IN_FILTER_VALUES} values, got {len(value)}"
                )
        return replace(self, filters=self.filters + (Filter(field_name, op, value),))

    def order_by(self, field_name: str, descending: bool = False) -> "Query":
        return replace(self, orderings=self.orderings + (OrderBy(field_name, descending),))

    def limit(self, count: int) -> "Query":
        return replace(self, max_results=count)

    def start_after(self, cursor: Optional[Tuple[Any, ...]]) -> "Query":
        return replace(self, cursor=cursor)

    def cursor_for(self, doc: Document) -> Tuple[Any, ...]:
        """Cursor positioned on ``doc`` for use with ``start_after``."""
        return tuple(doc.data.get(o.field) for o in self.orderings) + (doc.id,)


class ArrayUnion:
    """Update transform appending values missing from an array field."""

    def __init__(self, *values: Any):
        self.values = list(values)

    def apply(self, current: Any) -> List[Any]:
        result = list(current) if isinstance(current, list) else []
        for value in self.values:
            if value not in result:
                result.append(value)
        return result


class ArrayRemove:
    """Update transform removing every occurrence of the values from an array field."""

    def __init__(self, *values: Any):
        self.values = list(values)

    def apply(self, current: Any) -> List[Any]:
        if not isinstance(current, list):
            return []
        return [value for value in current if value not in self.values]


def _is_after(doc_values: Tuple[Any, ...], cursor: Tuple[Any, ...], orderings: Sequence[OrderBy]) -> bool:
    directions = [o.descending for o in orderings] + [False]
    for value, bound, descending in zip(doc_values, cursor, directions):
        if value == bound:
            continue
        return (value < bound) if descending else (value > bound)
    return False


def run_query(docs: List[Document], query: Query) -> List[Document]:
    """Apply filters, ordering, cursor and limit of ``query`` to ``docs``."""
    for f in query.filters:
        if f.op == "in" and not f.value:
            return []

    results = [doc for doc in docs if all(f.matches(doc) for f in query.filters)]

    # Documents lacking an ordered field are not part of an ordered result
    results = [
        doc for doc in results if all(o.field in doc.data and doc.data[o.field] is not None for o in query.orderings)
    ]
    results.sort(key=lambda doc: doc.id)
    for ordering in reversed(query.orderings):
        results.sort(key=lambda doc: doc.data[ordering.field], reverse=ordering.descending)

    if query.cursor is not None:
        results = [
            doc for doc in results if _is_after(query.cursor_for(doc), query.cursor, query.orderings)
        ]

    if query.max_results is not None:
        results = results[: query.max_results]
    return results


class Subscription:
    def __init__(self, store: "DocumentStore", listener_id: int, query: Query, callback: Callable[[List[Document]], None]):
        self._store = store
        self._listener_id = listener_id
        self.query = query
        self.callback = callback
        self.active = True
        self._last: Optional[List[Tuple[str, Dict[str, Any]]]] = None

    def _deliver(self, docs: List[Document]) -> None:
        fingerprint = [(doc.id, doc.data) for doc in docs]
        if not self.active or fingerprint == self._last:
            return
        self._last = fingerprint
        try:
            self.callback(docs)
        except Exception as e:
            logger.error(f"Subscription listener on '{self.query.collection}' failed: {e}")

    def unsubscribe(self) -> None:
        self.active = False
        self._store._remove_listener(self._listener_id)


class _Writer:
    """Applies write operations through an open cursor."""

    def __init__(self, store: "DocumentStore", cur):
        self._store = store
        self._cur = cur
        self.touched: Set[str] = set()

    def _execute(self, sql: str, params: Dict[str, Any]) -> None:
        self._cur.execute(adapt_sql(sql, self._store.database_url), params)

    def read(self, collection: str, doc_id: str) -> Optional[Document]:
        self._execute(
            "SELECT id, data FROM documents WHERE collection = %(collection)s AND id = %(id)s",
            {"collection": collection, "id": doc_id},
        )
        row = self._cur.fetchone()
        return Document(id=row[0], data=json.loads(row[1])) if row else None

    def read_collection(self, collection: str) -> List[Document]:
        self._execute(
            "SELECT id, data FROM documents WHERE collection = %(collection)s",
            {"collection": collection},
        )
        return [Document(id=row[0], data=json.loads(row[1])) for row in self._cur.fetchall()]

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        if merge:
            current = self.read(collection, doc_id)
            if current:
                data = {**current.data, **data}
        self._execute(
            """
            INSERT INTO documents (collection, id, data)
            VALUES (%(collection)s, %(id)s, %(data)s)
            ON CONFLICT (collection, id) DO UPDATE SET
              data = excluded.data,
              updated_at = CURRENT_TIMESTAMP
            """,
            {"collection": collection, "id": doc_id, "data": json.dumps(data, sort_keys=True)},
        )
        self.touched.add(collection)

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._execute(
            """
            INSERT INTO documents (collection, id, data)
            VALUES (%(collection)s, %(id)s, %(data)s)
            ON CONFLICT (collection, id) DO NOTHING
            """,
            {"collection": collection, "id": doc_id, "data": json.dumps(data, sort_keys=True)},
        )
        if self._cur.rowcount == 0:
            raise DocumentExistsError(f"Document {collection}/{doc_id} already exists")
        self.touched.add(collection)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        current = self.read(collection, doc_id)
        if current is None:
            raise DocumentNotFoundError(f"Document {collection}/{doc_id} not found")
        data = dict(current.data)
        for key, value in fields.items():
            if isinstance(value, (ArrayUnion, ArrayRemove)):
                data[key] = value.apply(data.get(key))
            else:
                data[key] = value
        self.set(collection, doc_id, data)

    def delete(self, collection: str, doc_id: str) -> None:
        self._execute(
            "DELETE FROM documents WHERE collection = %(collection)s AND id = %(id)s",
            {"collection": collection, "id": doc_id},
        )
        self.touched.add(collection)


class WriteBatch:
    """Collects writes and commits them all-or-nothing."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: List[Tuple[str, tuple]] = []
        self._committed = False

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self._ops.append(("set", (collection, doc_id, data, merge)))
        return self

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(("create", (collection, doc_id, data)))
        return self

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(("update", (collection, doc_id, fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(("delete", (collection, doc_id)))
        return self

    def __len__(self) -> int:
        return len(self._ops)

    def commit(self) -> None:
        if self._committed:
            raise DocumentStoreError("Batch already committed")
        ops = list(self._ops)

        def apply(writer: _Writer) -> None:
            for name, args in ops:
                getattr(writer, name)(*args)

        self._store._run(apply)
        self._committed = True


class Transaction:
    """Reads and writes on one exclusive connection, committed together."""

    def __init__(self, writer: _Writer):
        self._writer = writer

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return self._writer.read(collection, doc_id)

    def query(self, query: Query) -> List[Document]:
        return run_query(self._writer.read_collection(query.collection), query)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._writer.set(collection, doc_id, data, merge=merge)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = new_document_id()
        self._writer.create(collection, doc_id, data)
        return doc_id

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._writer.create(collection, doc_id, data)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._writer.update(collection, doc_id, fields)

    def delete(self, collection: str, doc_id: str) -> None:
        self._writer.delete(collection, doc_id)


def new_document_id() -> str:
    return uuid.uuid4().hex


class DocumentStore:
    def __init__(self, database_url: Optional[str] = None):
        self.database_url = resolve_database_url(database_url)
        self._listeners: Dict[int, Subscription] = {}
        self._listener_ids = itertools.count(1)
        self._lock = threading.Lock()

    # Reads

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        conn = get_connection(self.database_url)
        cur = conn.cursor()
        try:
            return _Writer(self, cur).read(collection, doc_id)
        finally:
            cur.close()
            conn.close()

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Document]:
        """Point-read up to ``MAX_IN_FILTER_VALUES`` documents in one round trip."""
        ids = list(dict.fromkeys(doc_ids))
        if len(ids) > MAX_IN_FILTER_VALUES:
            raise QueryLimitError(
                f"get_many accepts at most {MAX_IN_FILTER_VALUES} ids, got {len(ids)}"
            )
        if not ids:
            return []
        params: Dict[str, Any] = {"collection": collection}
        placeholders = []
        for index, doc_id in enumerate(ids):
            params[f"id{index}"] = doc_id
            placeholders.append(f"%(id{index})s")
        sql = (
            "SELECT id, data FROM documents WHERE collection = %(collection)s "
            f"AND id IN ({', '.join(placeholders)})"
        )
        conn = get_connection(self.database_url)
        cur = conn.cursor()
        try:
            cur.execute(adapt_sql(sql, self.database_url), params)
            found = {row[0]: Document(id=row[0], data=json.loads(row[1])) for row in cur.fetchall()}
        finally:
            cur.close()
            conn.close()
        return [found[doc_id] for doc_id in ids if doc_id in found]

    def query(self, query: Query) -> List[Document]:
        conn = get_connection(self.database_url)
        cur = conn.cursor()
        try:
            docs = _Writer(self, cur).read_collection(query.collection)
        finally:
            cur.close()
            conn.close()
        return run_query(docs, query)

    # Writes

    def _run(self, fn: Callable[[_Writer], Any]) -> Any:
        conn = get_connection(self.database_url)
        begin_exclusive(conn, self.database_url)
        cur = conn.cursor()
        writer = _Writer(self, cur)
        try:
            result = fn(writer)
            conn.commit()
        except DocumentStoreError:
            conn.rollback()
            raise
        except Exception as e:
            conn.rollback()
            logger.error(f"Error writing documents: {e}")
            raise
        finally:
            cur.close()
            conn.close()
        self._notify(writer.touched)
        return result

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = new_document_id()
        self._run(lambda w: w.create(collection, doc_id, data))
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._run(lambda w: w.set(collection, doc_id, data, merge=merge))

    def create(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._run(lambda w: w.create(collection, doc_id, data))

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._run(lambda w: w.update(collection, doc_id, fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self._run(lambda w: w.delete(collection, doc_id))

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        conn = get_connection(self.database_url)
        begin_exclusive(conn, self.database_url)
        cur = conn.cursor()
        writer = _Writer(self, cur)
        try:
            yield Transaction(writer)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cur.close()
            conn.close()
        self._notify(writer.touched)

    # Subscriptions

    def subscribe(self, query: Query, callback: Callable[[List[Document]], None]) -> Subscription:
        """Deliver the current result set now and after every change to it."""
        with self._lock:
            listener_id = next(self._listener_ids)
            subscription = Subscription(self, listener_id, query, callback)
            self._listeners[listener_id] = subscription
        subscription._deliver(self.query(query))
        return subscription

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def _notify(self, collections: Set[str]) -> None:
        if not collections:
            return
        with self._lock:
            listeners = [s for s in self._listeners.values() if s.query.collection in collections]
        for subscription in listeners:
            if not subscription.active:
                continue
            try:
                docs = self.query(subscription.query)
            except Exception as e:
                logger.error(f"Error refreshing subscription on '{subscription.query.collection}': {e}")
                continue
            subscription._deliver(docs)


# Anything that can serve reads: the store itself or an open transaction
DocumentReader = Union[DocumentStore, Transaction]
