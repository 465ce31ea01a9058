"""Document store used by the ReadDash core.

The core only ever sees collections of schemaless JSON documents addressed
by id, the way a hosted document database exposes them. `SqlDocumentStore`
keeps those documents in a single SQL table so the same code runs against
PostgreSQL in production and SQLite in tests.

Multi-document writes go through `WriteBatch`: operations are queued and
applied in one transaction on `commit()`, so a failed save never leaves a
partially written quiz or a half-reset history behind.
"""
import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections import namedtuple
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import Depends
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from readdash.db.sessions import get_db
from readdash.models.document import StoredDocument

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Placeholder replaced with the write time when a document is stored."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

# (field, operator, value)
Filter = Tuple[str, str, Any]

_WriteOp = namedtuple("_WriteOp", ["kind", "collection", "doc_id", "doc", "merge"])


def _safe_compare(compare):
    def wrapper(left, right):
        if left is None:
            return False
        try:
            return compare(left, right)
        except TypeError:
            return False
    return wrapper


OPERATORS = {
    "==": lambda left, right: left == right,
    "!=": lambda left, right: left != right,
    "<": _safe_compare(lambda left, right: left < right),
    "<=": _safe_compare(lambda left, right: left <= right),
    ">": _safe_compare(lambda left, right: left > right),
    ">=": _safe_compare(lambda left, right: left >= right),
    "in": lambda left, right: left in right,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def encode_value(value: Any, now: datetime) -> Any:
    """Convert a value into its JSON storage form.

    Datetimes are stored as UTC ISO-8601 strings with a fixed precision so
    that range filters on them compare correctly as strings.
    """
    if value is SERVER_TIMESTAMP:
        value = now
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): encode_value(v, now) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v, now) for v in value]
    return value


def get_field(doc: Dict[str, Any], path: str) -> Any:
    """Read a possibly dotted field path from a document."""
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def matches(doc: Dict[str, Any], filters: Sequence[Filter], now: datetime) -> bool:
    for field, op, value in filters:
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        if not OPERATORS[op](get_field(doc, field), encode_value(value, now)):
            return False
    return True


def sort_key(value: Any) -> Tuple[int, Any]:
    """Ordering key that ranks by type first, so mixed-type fields still sort."""
    if isinstance(value, bool):
        return (0, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, json.dumps(value, sort_keys=True, default=str))


def _string_element(field: str, dialect: str):
    element = StoredDocument.data[field]
    if dialect == "postgresql":
        # ->> renders numbers and booleans as text too
        return element.as_string(), func.json_typeof(element) == "string"
    return element.as_string(), None


def _column_filter(field: str, op: str, value: Any, dialect: str):
    """SQL clause equivalent to a string `==` or `in` filter, or None to filter in Python."""
    if op == "==" and isinstance(value, str):
        values = [value]
    elif op == "in" and isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        values = list(value)
    else:
        return None

    if field == "id":
        return StoredDocument.id.in_(values)
    if "." in field:
        return None
    element, type_check = _string_element(field, dialect)
    clause = element == values[0] if op == "==" else element.in_(values)
    return clause if type_check is None else and_(type_check, clause)


class WriteBatch:
    """Queue of writes applied atomically by `commit()`."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: List[_WriteOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, doc: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self._ops.append(_WriteOp("set", collection, doc_id, doc, merge))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(_WriteOp("delete", collection, doc_id, None, False))
        return self

    def commit(self) -> None:
        if not self._ops:
            return
        ops, self._ops = self._ops, []
        self._store.commit_batch(ops)


class DocumentStore(ABC):
    """Interface the core depends on instead of a concrete database client."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document with its `id` key set, or None."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching documents; `order_by="-field"` sorts descending."""

    @abstractmethod
    def commit_batch(self, ops: Sequence[_WriteOp]) -> None:
        """Apply queued writes in a single transaction."""

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def set(self, collection: str, doc_id: str, doc: Dict[str, Any], merge: bool = False) -> None:
        self.batch().set(collection, doc_id, doc, merge=merge).commit()

    def add(self, collection: str, doc: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, doc)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch().delete(collection, doc_id).commit()

    def batch_delete(self, collection: str, ids: Sequence[str]) -> None:
        batch = self.batch()
        for doc_id in ids:
            batch.delete(collection, doc_id)
        batch.commit()


class SqlDocumentStore(DocumentStore):
    """Document store backed by the `documents` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.get(StoredDocument, (collection, doc_id))
        if row is None:
            return None
        return dict(row.data or {}, id=row.id)

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        now = utcnow()
        filters = [(field, op, encode_value(value, now)) for field, op, value in filters]
        dialect = self.db.get_bind().dialect.name
        clauses = [_column_filter(field, op, value, dialect) for field, op, value in filters]
        pushed = [clause for clause in clauses if clause is not None]

        rows = (
            self.db.query(StoredDocument)
            .filter(StoredDocument.collection == collection, *pushed)
            .order_by(StoredDocument.created_at, StoredDocument.id)
        )
        if limit is not None and not order_by and len(pushed) == len(filters):
            rows = rows.limit(limit)

        # pushed clauses only narrow the scan; every filter is still checked here
        docs = [dict(row.data or {}, id=row.id) for row in rows.all()]
        docs = [doc for doc in docs if matches(doc, filters, now)]

        if order_by:
            descending = order_by.startswith("-")
            field = order_by.lstrip("-")
            present = [doc for doc in docs if get_field(doc, field) is not None]
            missing = [doc for doc in docs if get_field(doc, field) is None]
            present.sort(key=lambda doc: sort_key(get_field(doc, field)), reverse=descending)
            docs = present + missing

        if limit is not None:
            docs = docs[:limit]
        return docs

    def commit_batch(self, ops: Sequence[_WriteOp]) -> None:
        now = utcnow()
        try:
            for op in ops:
                if op.kind == "set":
                    self._write(op.collection, op.doc_id, op.doc, op.merge, now)
                else:
                    self._remove(op.collection, op.doc_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Batch of %d writes rolled back", len(ops))
            raise

    def _write(self, collection: str, doc_id: str, doc: Dict[str, Any], merge: bool, now: datetime) -> None:
        data = encode_value({k: v for k, v in doc.items() if k != "id"}, now)
        row = self.db.get(StoredDocument, (collection, doc_id))
        if row is None:
            self.db.add(StoredDocument(collection=collection, id=doc_id, data=data))
            self.db.flush()
            return
        # assign a new dict so the JSON column is marked dirty
        row.data = {**(row.data or {}), **data} if merge else data
        row.updated_at = now.replace(tzinfo=None)

    def _remove(self, collection: str, doc_id: str) -> None:
        row = self.db.get(StoredDocument, (collection, doc_id))
        if row is not None:
            self.db.delete(row)
            self.db.flush()


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)
