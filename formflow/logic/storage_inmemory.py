"""In-memory storage gateway (development and tests).

Holds one dict per collection keyed by record id. Mirrors the SQL gateway's
semantics: column whitelists, IN-filters for list values, ``-column``
descending order with an id tie-break, upsert merges into an existing row.
Records are deep-copied on the way in and out so callers never share
mutable state with the store.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from formflow.logic.errors import StorageError
from formflow.logic.storage_gateway import COLLECTIONS, check_columns, is_multi, parse_order

logger = logging.getLogger(__name__)


def _matches(record: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    for column, expected in filters.items():
        actual = record.get(column)
        if is_multi(expected):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryStorageGateway:
    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}

    def _table(self, collection: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self._tables[collection]
        except KeyError:
            raise ValueError(f"unknown collection: {collection}") from None

    def _complete(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        row = {name: None for name in COLLECTIONS[collection]}
        row.update(copy.deepcopy(dict(record)))
        return row

    def select(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        table = self._table(collection)
        filters = dict(filters or {})
        check_columns(collection, filters)
        rows = [r for r in table.values() if _matches(r, filters)]
        rows.sort(key=lambda r: str(r.get("id")))
        ordering = parse_order(collection, order)
        if ordering:
            column, descending = ordering
            # sort() stays stable under reverse=True, so the id tie-break stays ascending
            rows.sort(key=lambda r: _sort_key(r.get(column)), reverse=descending)
        return copy.deepcopy(rows)

    def insert(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        table = self._table(collection)
        check_columns(collection, record)
        rid = record.get("id")
        if not rid:
            raise ValueError("insert requires a record id")
        if rid in table:
            raise StorageError(f"duplicate key value violates unique constraint: {collection}.id={rid}")
        self._check_unique(collection, record)
        table[str(rid)] = self._complete(collection, record)
        return copy.deepcopy(table[str(rid)])

    def upsert(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        table = self._table(collection)
        check_columns(collection, record)
        rid = record.get("id")
        if not rid:
            raise ValueError("upsert requires a record id")
        self._check_unique(collection, record)
        existing = table.get(str(rid))
        if existing is None:
            table[str(rid)] = self._complete(collection, record)
        else:
            existing.update(copy.deepcopy(dict(record)))
        return copy.deepcopy(table[str(rid)])

    def delete(self, collection: str, filters: Mapping[str, Any]) -> int:
        if not filters:
            raise ValueError("delete requires at least one filter")
        table = self._table(collection)
        check_columns(collection, filters)
        doomed = [rid for rid, r in table.items() if _matches(r, filters)]
        for rid in doomed:
            del table[rid]
        return len(doomed)

    def ping(self) -> bool:
        return True

    def _check_unique(self, collection: str, record: Mapping[str, Any]) -> None:
        # forms.public_url carries a UNIQUE constraint in the SQL schema
        if collection != "forms" or not record.get("public_url"):
            return
        for rid, row in self._tables["forms"].items():
            if rid != record.get("id") and row.get("public_url") == record.get("public_url"):
                raise StorageError("duplicate key value violates unique constraint: forms.public_url")


def _sort_key(value: Any) -> tuple:
    # NULLs first, matching SQLite's ascending order
    return (value is not None, value if value is not None else "")


__all__ = ["InMemoryStorageGateway"]
