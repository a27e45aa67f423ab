"""Storage gateway: filtered reads and writes over the three collections.

The logic layer never talks to SQL directly. Drafts, respondent sessions and
the form catalogue receive a gateway at construction and call only
``select``/``insert``/``upsert``/``delete``. No multi-record transaction is
offered; each call commits on its own.

``SqlStorageGateway`` runs parameterised ``sqlalchemy.text`` statements
against PostgreSQL or SQLite. Column names are taken from a per-collection
whitelist, never from caller input, and every ``SQLAlchemyError`` is
re-raised as ``StorageError``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from sqlalchemy import bindparam, text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from formflow.logic.errors import StorageError

logger = logging.getLogger(__name__)

# collection -> column -> codec kind
COLLECTIONS: Dict[str, Dict[str, str]] = {
    "forms": {
        "id": "text",
        "title": "text",
        "description": "text",
        "created_at": "text",
        "updated_at": "text",
        "published": "bool",
        "public_url": "text",
    },
    "questions": {
        "id": "text",
        "form_id": "text",
        "question_text": "text",
        "question_type": "text",
        "required": "bool",
        "order_number": "int",
        "options": "json",
        "created_at": "text",
        "updated_at": "text",
    },
    "responses": {
        "id": "text",
        "form_id": "text",
        "response_data": "json",
        "created_at": "text",
    },
}


class StorageGateway(Protocol):
    def select(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]: ...

    def insert(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]: ...

    def upsert(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]: ...

    def delete(self, collection: str, filters: Mapping[str, Any]) -> int: ...

    def ping(self) -> bool: ...


def columns_for(collection: str) -> Dict[str, str]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"unknown collection: {collection}") from None


def check_columns(collection: str, names: Iterable[str]) -> None:
    cols = columns_for(collection)
    unknown = sorted(set(names) - set(cols))
    if unknown:
        raise ValueError(f"unknown columns for {collection}: {unknown}")


def parse_order(collection: str, order: Optional[str]) -> Optional[Tuple[str, bool]]:
    """Return (column, descending) for an order string such as '-created_at'."""
    if not order:
        return None
    descending = order.startswith("-")
    column = order.lstrip("-")
    check_columns(collection, [column])
    return column, descending


def is_multi(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _encode(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == "json":
        return json.dumps(value, ensure_ascii=False)
    if kind == "bool":
        return bool(value)
    if kind == "int":
        return int(value)
    return str(value)


def _decode(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == "json":
        return json.loads(value) if isinstance(value, (str, bytes)) else value
    if kind == "bool":
        return bool(value)
    if kind == "int":
        return int(value)
    return str(value)


class SqlStorageGateway:
    """Gateway over a SQLAlchemy Engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -- helpers ---------------------------------------------------------

    def _where(self, collection: str, filters: Optional[Mapping[str, Any]]):
        """Build a WHERE clause, its params and the names of expanding params."""
        cols = columns_for(collection)
        filters = dict(filters or {})
        check_columns(collection, filters)
        clauses: list[str] = []
        params: Dict[str, Any] = {}
        expanding: list[str] = []
        for i, (column, value) in enumerate(sorted(filters.items())):
            name = f"f{i}"
            if is_multi(value):
                clauses.append(f"{column} IN :{name}")
                params[name] = [_encode(cols[column], v) for v in value]
                expanding.append(name)
            elif value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = :{name}")
                params[name] = _encode(cols[column], value)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params, expanding

    def _decode_row(self, collection: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        cols = columns_for(collection)
        return {name: _decode(kind, row.get(name)) for name, kind in cols.items()}

    @staticmethod
    def _has_empty_in(filters: Optional[Mapping[str, Any]]) -> bool:
        return any(is_multi(v) and not v for v in (filters or {}).values())

    # -- gateway API -----------------------------------------------------

    def select(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if self._has_empty_in(filters):
            return []
        cols = columns_for(collection)
        where, params, expanding = self._where(collection, filters)
        sql = f"SELECT {', '.join(cols)} FROM {collection}{where}"
        ordering = parse_order(collection, order)
        if ordering:
            column, descending = ordering
            # Tie-break on id for deterministic listings
            sql += f" ORDER BY {column} {'DESC' if descending else 'ASC'}, id ASC"
        stmt = sql_text(sql)
        if expanding:
            stmt = stmt.bindparams(*(bindparam(n, expanding=True) for n in expanding))
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt, params).mappings().all()
        except SQLAlchemyError as exc:
            logger.error("storage.select_failed collection=%s filters=%s", collection, sorted(params), exc_info=True)
            raise StorageError(str(exc)) from exc
        return [self._decode_row(collection, r) for r in rows]

    def insert(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        cols = columns_for(collection)
        check_columns(collection, record)
        names = list(record)
        sql = f"INSERT INTO {collection} ({', '.join(names)}) VALUES ({', '.join(':' + n for n in names)})"
        params = {n: _encode(cols[n], record[n]) for n in names}
        try:
            with self.engine.begin() as conn:
                conn.execute(sql_text(sql), params)
        except SQLAlchemyError as exc:
            logger.error("storage.insert_failed collection=%s id=%s", collection, record.get("id"), exc_info=True)
            raise StorageError(str(exc)) from exc
        return dict(record)

    def upsert(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        cols = columns_for(collection)
        check_columns(collection, record)
        if not record.get("id"):
            raise ValueError("upsert requires a record id")
        names = list(record)
        updates = ", ".join(f"{n} = EXCLUDED.{n}" for n in names if n != "id")
        sql = (
            f"INSERT INTO {collection} ({', '.join(names)}) VALUES ({', '.join(':' + n for n in names)}) "
            f"ON CONFLICT (id) DO "
            + (f"UPDATE SET {updates}" if updates else "NOTHING")
        )
        params = {n: _encode(cols[n], record[n]) for n in names}
        try:
            with self.engine.begin() as conn:
                conn.execute(sql_text(sql), params)
                row = conn.execute(
                    sql_text(f"SELECT {', '.join(cols)} FROM {collection} WHERE id = :id"),
                    {"id": params["id"]},
                ).mappings().first()
        except SQLAlchemyError as exc:
            logger.error("storage.upsert_failed collection=%s id=%s", collection, record.get("id"), exc_info=True)
            raise StorageError(str(exc)) from exc
        return self._decode_row(collection, row) if row is not None else dict(record)

    def delete(self, collection: str, filters: Mapping[str, Any]) -> int:
        if not filters:
            raise ValueError("delete requires at least one filter")
        if self._has_empty_in(filters):
            return 0
        where, params, expanding = self._where(collection, filters)
        stmt = sql_text(f"DELETE FROM {collection}{where}")
        if expanding:
            stmt = stmt.bindparams(*(bindparam(n, expanding=True) for n in expanding))
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt, params)
        except SQLAlchemyError as exc:
            logger.error("storage.delete_failed collection=%s", collection, exc_info=True)
            raise StorageError(str(exc)) from exc
        return int(result.rowcount or 0)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.error("storage.ping_failed", exc_info=True)
            return False


__all__ = [
    "COLLECTIONS",
    "StorageGateway",
    "SqlStorageGateway",
    "columns_for",
    "check_columns",
    "parse_order",
    "is_multi",
]
