from collections.abc import Mapping
from typing import TypeVar, Generic, Iterator, cast

K = TypeVar("K")
V = TypeVar("V")

class ReadOnlyMapping(Mapping[K, V], Generic[K, V]):
    """
    A read-only wrapper around a dict. Prevents mutation while allowing full read access.

    Used to publish per-type slot tables that are shared between threads once computed.
    Iteration follows the insertion order of the wrapped dict. Values are not recursively
    frozen, which means they must be immutable themselves or treated as such by convention.

    Attributes:
        _data (dict[K, V]):
            The underlying dict that this ReadOnlyMapping wraps.
    """

    _data: dict[K, V]

    def __init__(self, data: dict[K, V]):
        self._data = dict(data)

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"ReadOnlyMapping({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReadOnlyMapping):
            # Cast is for the type checker only; attribute access is safe for comparison
            return self._data == cast(ReadOnlyMapping[K, V], other)._data
        if isinstance(other, Mapping):
            return self._data == dict(cast(Mapping[K, V], other))
        return False
