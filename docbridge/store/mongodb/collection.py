"""MongoDB collection implementation.

Documents are keyed by ``_id``, which doubles as the internal identifier.
MongoDB has no revision token, so revisions are not tracked.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bson.raw_bson import RawBSONDocument

from docbridge.store.base import Collection, EdgesMixin
from docbridge.store.exceptions import InvalidArgumentError
from docbridge.store.mongodb.utils import has_operators, raises_backend_error
from docbridge.store.options import Options

logger = logging.getLogger(__name__)


class MongoCollection(Collection):
    """MongoDB implementation of Collection."""

    key_offset = "_id"
    id_offset = "_id"
    revision_offset = None

    def _is_native(self, data: Any) -> bool:
        return isinstance(data, RawBSONDocument)

    def _native_to_dict(self, data: Any) -> Dict[str, Any]:
        return {key: data[key] for key in data}

    def _check_filter(self, query: Any) -> Dict[str, Any]:
        if not isinstance(query, Mapping):
            raise InvalidArgumentError(
                f"MongoDB queries must be filter documents, got {type(query).__name__}"
            )
        return dict(query)

    @raises_backend_error
    def _insert(self, records: List[Any], options: Options) -> List[Dict[str, Any]]:
        if len(records) == 1:
            result = self._native.insert_one(records[0], **options.native)
            return [{self.key_offset: result.inserted_id}]
        result = self._native.insert_many(records, ordered=True, **options.native)
        return [{self.key_offset: key} for key in result.inserted_ids]

    @raises_backend_error
    def _update(self, criteria: Any, example: Dict[str, Any], many: bool, options: Options) -> int:
        criteria = self._check_filter(criteria)
        if not has_operators(criteria):
            criteria = {"$set": criteria}
        if many:
            result = self._native.update_many(example, criteria, **options.native)
        else:
            result = self._native.update_one(example, criteria, **options.native)
        return result.modified_count

    @raises_backend_error
    def _replace(self, record: Any, options: Options) -> Optional[Dict[str, Any]]:
        key = record[self.key_offset]
        result = self._native.replace_one({self.key_offset: key}, record, **options.native)
        if not result.matched_count:
            return None
        return {self.key_offset: key}

    @raises_backend_error
    def _find(self, example: Dict[str, Any], options: Options) -> Iterable[Any]:
        start, limit = options.pagination()
        if not options.is_many(True):
            limit = 1
        if limit == 0:
            # pymongo reads a zero limit as no limit.
            return []
        cursor = self._native.find(example, **options.native)
        if start:
            cursor = cursor.skip(start)
        if limit is not None:
            cursor = cursor.limit(limit)
        return list(cursor)

    def _query(self, query: Any, options: Options) -> Iterable[Any]:
        return self._find(self._check_filter(query), options)

    def _find_keys(self, keys: List[Any], options: Options) -> Iterable[Any]:
        return self._find({self.key_offset: {"$in": keys}}, options)

    @raises_backend_error
    def _delete(self, example: Dict[str, Any], many: bool, options: Options) -> int:
        if many:
            result = self._native.delete_many(example, **options.native)
        else:
            result = self._native.delete_one(example, **options.native)
        return result.deleted_count

    def _delete_query(self, query: Any, many: bool, options: Options) -> int:
        return self._delete(self._check_filter(query), many, options)

    @raises_backend_error
    def _count(self, example: Dict[str, Any]) -> int:
        return self._native.count_documents(example)

    def _count_query(self, query: Any) -> int:
        return self._count(self._check_filter(query))

    @raises_backend_error
    def _truncate(self) -> None:
        self._native.delete_many({})

    @raises_backend_error
    def _drop(self, options: Options) -> None:
        self._native.drop()


class MongoEdges(EdgesMixin, MongoCollection):
    """MongoDB edge collection; vertices are stored as ``[collection, key]`` pairs."""

    def _find_vertex(self, offsets: List[str], value: Any, options: Options) -> Iterable[Any]:
        if len(offsets) == 1:
            criteria = {offsets[0]: value}
        else:
            criteria = {"$or": [{offset: value} for offset in offsets]}
        return self._find(criteria, options)
