from __future__ import annotations
import base64
import binascii
import datetime as dt
import types
import uuid
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import PurePath
from typing import Any, Tuple, Type, TypeVar, Union, cast, get_args, get_origin

from zyre_common.serialization.errors import MemberCoercionError

T = TypeVar('T')

NoneType = type(None)


def _format_type_name(tp: Any) -> str:
    """
    Helper to format type names nicely for error messages.
    """
    if isinstance(tp, tuple):
        return ", ".join(_format_type_name(t) for t in cast(Tuple[Any, ...], tp))
    return getattr(tp, "__name__", None) or repr(tp)


def strict_cast(tp: Type[T] | Tuple[Type[T], ...], value: object, *, slot_name: str | None = None) -> T:
    """
    Perform a shallow runtime type check before casting a value.

    Unlike `typing.cast`, this function enforces that the value is actually
    an instance of the specified type(s) at runtime. If the value does not match,
    a `MemberCoercionError` (a `TypeError`) is raised immediately.

    This check is **shallow**, verifying only the outermost type.

    Args:
        tp (Type[T] or Tuple[Type[T], ...]):
            The expected type or tuple of types to cast to.
        value (object):
            The value to check and cast.
        slot_name (str | None):
            Slot path reported in the error message.

    Returns:
        T:
            The value casted to the specified type if it matches.

    Raises:
        MemberCoercionError:
            If the value is not an instance of the given type(s).

    Example:
        >>> strict_cast(str, "hello")
        'hello'

        >>> strict_cast(int, "not an int")
        MemberCoercionError: strict_cast failed: expected int, got str
    """
    if not isinstance(value, tp):
        raise MemberCoercionError(
            f"strict_cast failed: expected {_format_type_name(tp)}, got {type(value).__name__}",
            slot_name=slot_name,
            expected_type=tp,
        )
    return cast(T, value)


def is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def is_optional(tp: Any) -> bool:
    """
    Return True if `tp` accepts None (`X | None`, `Optional[X]`, `None`).
    """
    if tp is None or tp is NoneType:
        return True
    return is_union(tp) and NoneType in get_args(tp)


def unwrap_optional(tp: Any) -> Any:
    """
    Strip `None` from a union: `int | None` -> `int`, `int | str | None` -> `int | str`.
    """
    if not is_union(tp):
        return tp
    args = tuple(a for a in get_args(tp) if a is not NoneType)
    if len(args) == 1:
        return args[0]
    return Union[args]  # type: ignore[return-value]


def _fail(value: Any, expected: Any, slot_name: str | None, reason: str | None = None) -> MemberCoercionError:
    message = f"cannot coerce {type(value).__name__} to {_format_type_name(expected)}"
    if reason:
        message = f"{message} ({reason})"
    return MemberCoercionError(message, slot_name=slot_name, expected_type=expected)


def coerce_scalar(value: Any, expected: type, *, slot_name: str | None = None) -> Any:
    """
    Convert a decoded JSON leaf into an instance of the scalar type `expected`.

    Supported targets are `bool`, `int`, `float` (ints are widened), `str`, `bytes` and
    `bytearray` (base64 text), `datetime`, `date` and `time` (ISO-8601 text), `uuid.UUID`,
    `decimal.Decimal`, `pathlib` paths and `Enum` subclasses (by value). Any other class only
    accepts values that are already instances of it.

    Args:
        value (Any):
            The decoded leaf.

        expected (type):
            The declared type of the slot.

        slot_name (str | None):
            Slot path reported in errors.

    Returns:
        Any:
            The converted value.

    Raises:
        MemberCoercionError:
            If the value does not fit `expected`.
    """
    if expected is bool:
        if isinstance(value, bool):
            return value
        raise _fail(value, expected, slot_name)

    if expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise _fail(value, expected, slot_name)

    if expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise _fail(value, expected, slot_name)

    if isinstance(expected, type) and issubclass(expected, Enum):
        if isinstance(value, expected):
            return value
        try:
            return expected(value)
        except ValueError as exc:
            raise _fail(value, expected, slot_name, f"no member with value {value!r}") from exc

    if isinstance(value, expected):
        return value

    if not isinstance(value, str):
        if expected is Decimal and isinstance(value, (int, float)) and not isinstance(value, bool):
            return Decimal(str(value))
        raise _fail(value, expected, slot_name)

    try:
        if expected is dt.datetime:
            return dt.datetime.fromisoformat(value)
        if expected is dt.date:
            return dt.date.fromisoformat(value)
        if expected is dt.time:
            return dt.time.fromisoformat(value)
        if expected in (bytes, bytearray):
            return expected(base64.b64decode(value, validate=True))
        if expected is uuid.UUID:
            return uuid.UUID(value)
        if expected is Decimal:
            return Decimal(value)
        if issubclass(expected, PurePath):
            return expected(value)
    except (ValueError, binascii.Error, InvalidOperation) as exc:
        raise _fail(value, expected, slot_name, str(exc)) from exc

    raise _fail(value, expected, slot_name)


__all__ = [
    "strict_cast",
    "coerce_scalar",
    "is_union",
    "is_optional",
    "unwrap_optional",
]
