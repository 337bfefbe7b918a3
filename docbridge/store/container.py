"""Generic property bag."""

from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, Mapping, Optional


class Container(MutableMapping):
    """Ordered mapping where a missing property reads as ``None``.

    Assigning ``None`` to a property removes it, and removing a missing
    property is a no-op, so callers never need to test for presence first.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        if data:
            for key, value in data.items():
                if value is not None:
                    self._data[key] = value

    def __getitem__(self, offset: str) -> Any:
        return self._data.get(offset)

    def __setitem__(self, offset: str, value: Any) -> None:
        if value is None:
            self.__delitem__(offset)
        else:
            self._data[offset] = value

    def __delitem__(self, offset: str) -> None:
        self._data.pop(offset, None)

    def __contains__(self, offset: object) -> bool:
        return offset in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Deep copy as plain dicts and lists."""
        return _plain(self._data)


def _plain(value: Any) -> Any:
    if isinstance(value, Container):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value
