"""
Exception hierarchy for the zyre serialization protocol.

Encode-side failures derive from `SerializationError`; every failure raised by a
`deserialize` call derives from `DeserializationError`, so callers can catch a single
type around a decode.
"""

from typing import Any


class SerializationError(RuntimeError):
    """Raised when a value cannot be serialized."""


class CyclicGraphError(SerializationError):
    """Raised when an object is reached again while it is still being encoded."""


class UnregisteredTypeError(SerializationError):
    """Raised when encoding an object whose class has no type tag and auto-registration is off."""


class DeserializationError(SerializationError):
    """Raised when a byte buffer cannot be turned back into a value."""


class TypeResolutionError(DeserializationError):
    """Raised when an embedded type tag does not name a registered class."""


class MalformedEncodingError(DeserializationError):
    """Raised when the byte buffer is not valid UTF-8 JSON or breaks the encoded layout."""


class MemberCoercionError(DeserializationError, TypeError):
    """
    Raised when a decoded value cannot be assigned to the expected shape of a slot.

    Attributes:
        slot_name (str | None):
            Dotted path of the slot being populated, or None for the top-level value.

        expected_type (Any):
            The declared type the value was coerced against.
    """

    slot_name: str | None
    expected_type: Any

    def __init__(self, message: str, *, slot_name: str | None = None, expected_type: Any = None):
        if slot_name is not None:
            message = f"{slot_name}: {message}"
        super().__init__(message)
        self.slot_name = slot_name
        self.expected_type = expected_type


__all__ = [
    "SerializationError",
    "CyclicGraphError",
    "UnregisteredTypeError",
    "DeserializationError",
    "TypeResolutionError",
    "MalformedEncodingError",
    "MemberCoercionError",
]
