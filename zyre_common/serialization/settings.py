from __future__ import annotations
import dataclasses
from dataclasses import dataclass
from typing import Any, Self


@dataclass(frozen=True, kw_only=True)
class SerializerSettings:
    """
    Immutable configuration of a `Serializer`.

    A settings value is constructed once and handed to a serializer instance; there is no
    process-wide mutable configuration. Use `with_changes()` to derive a modified copy.

    Attributes:
        type_key (str):
            Name of the JSON member that carries the type tag of an object.
            Defaults to "$type".

        parse_dates (bool):
            When True, strings in untyped positions that look like an ISO-8601 date-time
            with an explicit offset are decoded to aware `datetime` values.

        auto_register (bool):
            When True, encoding an object of an unregistered class registers it under its
            default tag. When False, such an encode raises `UnregisteredTypeError`.

        include_none (bool):
            When False, slots whose value is None are left out of the encoded object.

        sort_sets (bool):
            When True, sets and frozensets are emitted in sorted order when their elements
            are orderable, which keeps the byte buffer stable across runs.
    """

    type_key: str = "$type"
    parse_dates: bool = True
    auto_register: bool = True
    include_none: bool = True
    sort_sets: bool = True

    def __post_init__(self):
        if not self.type_key:
            raise ValueError("type_key must be a non-empty string")

    def with_changes(self, **changes: Any) -> Self:
        """
        Return a copy of these settings with the given fields replaced.

        Args:
            **changes (Any):
                Field names and their new values.

        Returns:
            SerializerSettings:
                A new settings value; this instance is left untouched.
        """
        return dataclasses.replace(self, **changes)


DEFAULT_SETTINGS = SerializerSettings()

__all__ = [
    "SerializerSettings",
    "DEFAULT_SETTINGS",
]
