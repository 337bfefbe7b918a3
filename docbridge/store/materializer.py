"""Conversion of native query results into the requested format.

Every finder funnels the records returned by the driver through
``materialize``. The conversion is a single pass over records that were
already fetched; it never queries the backend again.
"""

from itertools import islice
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Union

from docbridge.store.document import Document
from docbridge.store.exceptions import InvalidArgumentError
from docbridge.store.options import Format, Options

if TYPE_CHECKING:
    from docbridge.store.base import Collection


def _standard(collection: "Collection", record: Any) -> Any:
    document = collection.new_document(record)
    if isinstance(document, Document):
        document._mark_selected()
    return document


_CONVERTERS: Dict[Format, Callable[["Collection", Any], Any]] = {
    Format.NATIVE: lambda collection, record: record,
    Format.STANDARD: _standard,
    Format.HANDLE: lambda collection, record: collection.new_document_handle(record),
    Format.KEY: lambda collection, record: collection.new_document_key(record),
}


def converter(format: Union[Format, str]) -> Callable[["Collection", Any], Any]:
    """Return the record converter for a format.

    Raises:
        InvalidArgumentError: If the format is not recognised
    """
    try:
        return _CONVERTERS[Format(format)]
    except ValueError:
        raise InvalidArgumentError(f"Invalid format: {format!r}")


def materialize(
    collection: "Collection",
    records: Optional[Iterable[Any]],
    options: Options,
    many: bool = True,
) -> Union[List[Any], Any, None]:
    """Convert native records according to ``options.format``.

    Args:
        collection: Collection the records belong to
        records: Native records (a driver cursor or any iterable)
        options: Options providing ``format`` and ``many``
        many: Cardinality used when ``options.many`` is unset

    Returns:
        A list of converted values when ``many``, otherwise the first
        converted value or None
    """
    convert = converter(options.format)
    if records is None:
        return [] if options.is_many(many) else None

    if options.is_many(many):
        return [convert(collection, record) for record in records]

    for record in islice(records, 1):
        return convert(collection, record)
    return None
