"""In-memory collection implementation.

Records are deep-copied on the way in and out, so documents never share
state with the table. Examples and queries use a small subset of the
MongoDB filter syntax: field equality, ``$or`` and ``$and``.
"""

import copy
import logging
import uuid
from itertools import islice
from typing import Any, Dict, Iterable, List, Mapping, Optional

from docbridge.store.base import Collection, EdgesMixin
from docbridge.store.exceptions import BackendError, InvalidArgumentError
from docbridge.store.options import CollectionType, Options

logger = logging.getLogger(__name__)


class Table:
    """Records of one collection, keyed by document key."""

    def __init__(self, collection_type: CollectionType = CollectionType.DOCUMENT):
        self.collection_type = collection_type
        self.records: Dict[Any, Dict[str, Any]] = {}
        self._revision = 0

    def next_revision(self) -> str:
        self._revision += 1
        return f"_r{self._revision}"


def matches(record: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    """Check a record against an example or filter."""
    for field, expected in criteria.items():
        if field == "$or":
            if not any(matches(record, item) for item in expected):
                return False
        elif field == "$and":
            if not all(matches(record, item) for item in expected):
                return False
        elif field.startswith("$"):
            raise InvalidArgumentError(f"Unsupported filter operator: {field}")
        elif record.get(field) != expected:
            return False
    return True


class MemoryCollection(Collection):
    """Collection stored in a Table."""

    def _check_filter(self, query: Any) -> Dict[str, Any]:
        if not isinstance(query, Mapping):
            raise InvalidArgumentError(
                f"Memory queries must be filter mappings, got {type(query).__name__}"
            )
        return dict(query)

    def _select(self, criteria: Mapping[str, Any]) -> List[Dict[str, Any]]:
        key = criteria.get(self.key_offset)
        if len(criteria) == 1 and key is not None:
            record = self._native.records.get(key)
            return [] if record is None else [record]
        return [record for record in self._native.records.values() if matches(record, criteria)]

    def _stamp(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            self.key_offset: record[self.key_offset],
            self.id_offset: record[self.id_offset],
            self.revision_offset: record[self.revision_offset],
        }

    def _insert(self, records: List[Any], options: Options) -> List[Dict[str, Any]]:
        table = self._native
        prepared = []
        seen = set()
        for record in records:
            record = copy.deepcopy(dict(record))
            key = record.get(self.key_offset)
            if key is None:
                key = uuid.uuid4().hex
            if key in table.records or key in seen:
                raise BackendError(f"Duplicate key '{key}' in collection '{self._name}'")
            seen.add(key)
            record[self.key_offset] = key
            record[self.id_offset] = f"{self._name}/{key}"
            prepared.append(record)

        stamps = []
        for record in prepared:
            record[self.revision_offset] = table.next_revision()
            table.records[record[self.key_offset]] = record
            stamps.append(self._stamp(record))
        return stamps

    def _update(self, criteria: Any, example: Dict[str, Any], many: bool, options: Options) -> int:
        criteria = self._check_filter(criteria)
        changes = criteria.pop("$set", {})
        removals = criteria.pop("$unset", {})
        if any(field.startswith("$") for field in criteria):
            raise InvalidArgumentError("Unsupported update operator")
        changes = {**criteria, **changes}
        for offset in (self.key_offset, self.id_offset):
            if offset in changes or offset in removals:
                raise InvalidArgumentError(f"Cannot update '{offset}'")

        count = 0
        for record in self._select(example):
            record.update(copy.deepcopy(changes))
            for field in removals:
                record.pop(field, None)
            record[self.revision_offset] = self._native.next_revision()
            count += 1
            if not many:
                break
        return count

    def _replace(self, record: Any, options: Options) -> Optional[Dict[str, Any]]:
        record = copy.deepcopy(dict(record))
        key = record[self.key_offset]
        current = self._native.records.get(key)
        if current is None:
            return None
        revision = record.get(self.revision_offset)
        if revision is not None and revision != current[self.revision_offset]:
            raise BackendError(f"Revision conflict on '{key}' in collection '{self._name}'")
        record[self.id_offset] = current[self.id_offset]
        record[self.revision_offset] = self._native.next_revision()
        self._native.records[key] = record
        return self._stamp(record)

    def _find(self, example: Dict[str, Any], options: Options) -> Iterable[Any]:
        start, limit = options.pagination()
        if not options.is_many(True):
            limit = 1
        selected = self._select(example)
        stop = None if limit is None else (start or 0) + limit
        return [copy.deepcopy(record) for record in islice(selected, start or 0, stop)]

    def _query(self, query: Any, options: Options) -> Iterable[Any]:
        return self._find(self._check_filter(query), options)

    def _delete(self, example: Dict[str, Any], many: bool, options: Options) -> int:
        selected = self._select(example)
        if not many:
            selected = selected[:1]
        for record in selected:
            del self._native.records[record[self.key_offset]]
        return len(selected)

    def _delete_query(self, query: Any, many: bool, options: Options) -> int:
        return self._delete(self._check_filter(query), many, options)

    def _count(self, example: Dict[str, Any]) -> int:
        return len(self._select(example))

    def _count_query(self, query: Any) -> int:
        return self._count(self._check_filter(query))

    def _truncate(self) -> None:
        self._native.records.clear()

    def _drop(self, options: Options) -> None:
        self.database.native.pop(self._name, None)


class MemoryEdges(EdgesMixin, MemoryCollection):
    """Edge collection stored in a Table."""

    def _find_vertex(self, offsets: List[str], value: Any, options: Options) -> Iterable[Any]:
        if len(offsets) == 1:
            criteria = {offsets[0]: value}
        else:
            criteria = {"$or": [{offset: value} for offset in offsets]}
        return self._find(criteria, options)
