"""ArangoDB collection implementation.

Documents use ArangoDB's own ``_key``, ``_id`` and ``_rev`` attributes.
Native queries are AQL strings, or mappings with ``query`` and
``bind_vars`` entries; ``@@collection`` is bound to this collection unless
the caller binds it.
"""

import logging
from itertools import islice
from typing import Any, Dict, Iterable, List, Mapping, Optional

from arango.exceptions import DocumentDeleteError, DocumentReplaceError

from docbridge.store.arangodb.utils import is_missing, raises_backend_error
from docbridge.store.base import Collection, EdgesMixin
from docbridge.store.document import Handle
from docbridge.store.exceptions import BackendError, InvalidArgumentError, NotFoundError
from docbridge.store.options import Options

logger = logging.getLogger(__name__)

COUNT_QUERY = """
FOR doc IN @@collection
    FILTER MATCHES(doc, @example)
    COLLECT WITH COUNT INTO total
    RETURN total
"""


class ArangoCollection(Collection):
    """ArangoDB implementation of Collection."""

    def handle_to_native(self, handle: Handle) -> str:
        # ArangoDB references documents by their "collection/key" id.
        return str(handle)

    def _stamp(self, meta: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            self.key_offset: meta.get("_key"),
            self.id_offset: meta.get("_id"),
            self.revision_offset: meta.get("_rev"),
        }

    def _aql(self, query: Any) -> Dict[str, Any]:
        if isinstance(query, str):
            query, bind_vars = query, {}
        elif isinstance(query, Mapping) and "query" in query:
            query, bind_vars = query["query"], dict(query.get("bind_vars") or {})
        else:
            raise InvalidArgumentError(
                "ArangoDB queries must be AQL strings or mappings with a 'query' entry"
            )
        if "@@collection" in query:
            bind_vars.setdefault("@collection", self._name)
        return {"query": query, "bind_vars": bind_vars}

    def _execute(self, query: str, bind_vars: Dict[str, Any]) -> Any:
        return self.database.native.aql.execute(query, bind_vars=bind_vars)

    @raises_backend_error
    def _insert(self, records: List[Any], options: Options) -> List[Dict[str, Any]]:
        if len(records) == 1:
            return [self._stamp(self._native.insert(records[0], **options.native))]

        transaction = self.database.native.begin_transaction(write=[self._name])
        try:
            results = transaction.collection(self._name).insert_many(records, **options.native)
            failures = [result for result in results if isinstance(result, Exception)]
            if failures:
                raise BackendError(
                    f"Bulk insert into '{self._name}' failed: {failures[0]}", failures[0]
                )
        except Exception:
            transaction.abort_transaction()
            raise
        transaction.commit_transaction()
        return [self._stamp(result) for result in results]

    @raises_backend_error
    def _update(self, criteria: Any, example: Dict[str, Any], many: bool, options: Options) -> int:
        if not isinstance(criteria, Mapping):
            raise InvalidArgumentError("ArangoDB update criteria must be a mapping")
        return self._native.update_match(
            example, dict(criteria), limit=None if many else 1, **options.native
        )

    @raises_backend_error
    def _replace(self, record: Any, options: Options) -> Optional[Dict[str, Any]]:
        try:
            meta = self._native.replace(record, check_rev=True, **options.native)
        except DocumentReplaceError as e:
            if is_missing(e):
                return None
            raise
        return self._stamp(meta)

    @raises_backend_error
    def _find(self, example: Dict[str, Any], options: Options) -> Iterable[Any]:
        start, limit = options.pagination()
        if not options.is_many(True):
            limit = 1
        if limit == 0:
            return []
        key = example.get(self.key_offset)
        if len(example) == 1 and key is not None:
            document = self._native.get(key)
            return [] if document is None or start else [document]
        return list(self._native.find(example, skip=start, limit=limit))

    @raises_backend_error
    def _find_keys(self, keys: List[Any], options: Options) -> Iterable[Any]:
        return self._native.get_many(keys)

    @raises_backend_error
    def _query(self, query: Any, options: Options) -> Iterable[Any]:
        cursor = self._execute(**self._aql(query))
        start, limit = options.pagination()
        if start is None and limit is None:
            return list(cursor)
        stop = None if limit is None else start + limit
        return list(islice(cursor, start, stop))

    @raises_backend_error
    def _delete(self, example: Dict[str, Any], many: bool, options: Options) -> int:
        key = example.get(self.key_offset)
        if len(example) == 1 and key is not None:
            try:
                self._native.delete(key, **options.native)
            except DocumentDeleteError as e:
                if is_missing(e):
                    raise NotFoundError("document", key) from e
                raise
            return 1
        return self._native.delete_match(example, limit=None if many else 1, **options.native)

    @raises_backend_error
    def _count(self, example: Dict[str, Any]) -> int:
        if not example:
            return self._native.count()
        cursor = self._execute(COUNT_QUERY, {"@collection": self._name, "example": example})
        return next(iter(cursor), 0)

    @raises_backend_error
    def _truncate(self) -> None:
        self._native.truncate()

    @raises_backend_error
    def _drop(self, options: Options) -> None:
        self.database.native.delete_collection(self._name, ignore_missing=True)


class ArangoEdges(EdgesMixin, ArangoCollection):
    """ArangoDB edge collection; vertices are stored as document ids."""

    @raises_backend_error
    def _find_vertex(self, offsets: List[str], value: Any, options: Options) -> Iterable[Any]:
        condition = " OR ".join(f"edge.{offset} == @vertex" for offset in offsets)
        query = f"FOR edge IN @@collection FILTER {condition}"
        bind_vars = {"@collection": self._name, "vertex": value}

        start, limit = options.pagination()
        if not options.is_many(True):
            limit = 1
        if limit is not None:
            query += " LIMIT @start, @limit"
            bind_vars.update(start=start or 0, limit=limit)
        return list(self._execute(query + " RETURN edge", bind_vars))
