"""
Reflective, type-tagged serialization of arbitrary objects to UTF-8 JSON bytes.

`serialize(value)` walks a value and renders it as compact JSON text encoded in UTF-8.
Objects are written as JSON objects whose first member is the type tag of their runtime
class (`"$type"` by default) followed by one member per readable slot, as decided by
`zyre_common.introspection.member_access`, then one member per undeclared instance attribute.
`deserialize(data)` performs the inverse walk: type tags are resolved through a
`TypeRegistry`, instances are created without calling `__init__`, and every writable slot is
populated through its access path (public setter, hidden setter method or field). Undeclared
members are restored as instance attributes.

Encoding and decoding recurse once per nesting level, so the depth of a value is bounded by
`sys.getrecursionlimit()`; deeper values raise `SerializationError` (encode) or
`MalformedEncodingError` (decode).

Leaf encoding:
  - None, bool, int, float, str: natural JSON form (NaN and infinities are rejected)
  - datetime, date, time: ISO-8601 text; aware datetimes keep their UTC offset
  - Enum members: their value
  - UUID, Decimal, paths: their string form
  - bytes, bytearray: base64 text
  - list, tuple, set, frozenset: JSON arrays
  - dict: JSON object; text keys as they are, other keys as compact JSON text
    (`1` -> "1", `True` -> "true", `(0, 1)` -> "[0,1]")
  - timedelta: {"$type": "datetime.timedelta", "seconds": <float>}
  - numpy arrays: {"$type": "numpy.ndarray", "dtype": "f32", "shape": [...], "data": [...]}
"""

from __future__ import annotations
import abc
import base64
import collections.abc
import dataclasses
import datetime as dt
import json
import logging
import re
import sys
import types
import uuid
from abc import ABC
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any, Literal, Type, TypeVar, cast, get_args, get_origin, overload

import numpy as np
from numpy.typing import NDArray

from zyre_common.introspection.member_access import MISSING, describe_type
from zyre_common.serialization.errors import (
    CyclicGraphError,
    MalformedEncodingError,
    MemberCoercionError,
    SerializationError,
    UnregisteredTypeError,
)
from zyre_common.serialization.settings import DEFAULT_SETTINGS, SerializerSettings
from zyre_common.serialization.type_registry import DEFAULT_REGISTRY, TypeRegistry
from zyre_common.typeutils.coercion import (
    NoneType,
    coerce_scalar,
    is_union,
    strict_cast,
    unwrap_optional,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)

ENCODING = "utf-8"

_NUMPY_DTYPES: dict[str, np.dtype[Any]] = {
    "b": np.dtype(np.bool_),
    "u8": np.dtype(np.uint8),
    "u16": np.dtype(np.uint16),
    "u32": np.dtype(np.uint32),
    "u64": np.dtype(np.uint64),
    "i8": np.dtype(np.int8),
    "i16": np.dtype(np.int16),
    "i32": np.dtype(np.int32),
    "i64": np.dtype(np.int64),
    "f16": np.dtype(np.float16),
    "f32": np.dtype(np.float32),
    "f64": np.dtype(np.float64),
}
_NUMPY_DTYPE_NAMES: dict[np.dtype[Any], str] = {dtype: name for name, dtype in _NUMPY_DTYPES.items()}

# Supported numpy dtype kinds: bool, signed, unsigned, float, unicode
_NUMPY_KINDS = frozenset("biufU")

# ISO-8601 date-time with an explicit offset, as produced by datetime.isoformat()
_ISO_DATETIME_WITH_OFFSET = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?(Z|[+-]\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?)$"
)

_UNSERIALIZABLE = (type, types.FunctionType, types.BuiltinFunctionType, types.MethodType,
                   types.ModuleType, types.GeneratorType, types.CoroutineType)


def to_utf8_bytes(text: str) -> bytes:
    """
    Encode JSON text into the byte buffer form.
    """
    return text.encode(ENCODING)


def from_utf8_bytes(data: bytes | bytearray | memoryview) -> str:
    """
    Decode a byte buffer produced by `to_utf8_bytes()` back into text.

    Args:
        data (bytes | bytearray | memoryview):
            The byte buffer.

    Returns:
        str:
            The decoded text.

    Raises:
        MalformedEncodingError:
            If the buffer is not valid UTF-8.
    """
    try:
        return bytes(data).decode(ENCODING)
    except UnicodeDecodeError as exc:
        raise MalformedEncodingError(f"Byte buffer is not valid {ENCODING}: {exc}") from exc


class TaggedLeafCodec(ABC):
    """
    Abstract base class for values that are not objects in the slot sense but still need a
    type tag to be told apart from plain JSON values, e.g. `timedelta` or numpy arrays.

    Each subclass owns one reserved tag and converts between the value and the members of
    its JSON object (the tag member excluded).

    Attributes:
        tag (str):
            The reserved tag written under the type key.

        value_type (type):
            The Python type handled by the codec.
    """

    tag: str
    value_type: type

    @abc.abstractmethod
    def encode_members(self, value: Any) -> dict[str, Any]:
        """
        Convert `value` into the JSON members stored next to the tag.

        Args:
            value (Any):
                An instance of `value_type`.

        Returns:
            dict[str, Any]:
                JSON-compatible members.

        Raises:
            SerializationError: If the value cannot be represented.
        """

    @abc.abstractmethod
    def decode_members(self, members: dict[str, Any]) -> Any:
        """
        Rebuild the value from the members of its JSON object.

        Args:
            members (dict[str, Any]):
                The JSON object, tag member included.

        Returns:
            Any:
                The rebuilt value.

        Raises:
            MalformedEncodingError: If the members do not describe a valid value.
        """


class TimedeltaCodec(TaggedLeafCodec):
    """
    Encodes `datetime.timedelta` as its total number of seconds.
    """

    tag = "datetime.timedelta"
    value_type = dt.timedelta

    def encode_members(self, value: Any) -> dict[str, Any]:
        return {"seconds": cast(dt.timedelta, value).total_seconds()}

    def decode_members(self, members: dict[str, Any]) -> Any:
        seconds = members.get("seconds")
        if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
            raise MalformedEncodingError(f"Invalid {self.tag} member 'seconds': {seconds!r}")
        return dt.timedelta(seconds=seconds)


class NumpyArrayCodec(TaggedLeafCodec):
    """
    Encodes numpy arrays of a numeric, boolean or unicode dtype.

    Serializes the array as:
        - dtype: short name from `_NUMPY_DTYPES` (e.g. "f32") or the numpy dtype string
        - shape: list of dimension sizes
        - data: nested lists in row-major/C order, as produced by `ndarray.tolist()`
    """

    tag = "numpy.ndarray"
    value_type = np.ndarray

    def encode_members(self, value: Any) -> dict[str, Any]:
        arr = cast(NDArray[Any], value)
        if arr.dtype.kind not in _NUMPY_KINDS:
            raise SerializationError(f"Unsupported numpy dtype {arr.dtype}")
        return {
            "dtype": _NUMPY_DTYPE_NAMES.get(arr.dtype, arr.dtype.str),
            "shape": list(arr.shape),
            "data": arr.tolist(),
        }

    def decode_members(self, members: dict[str, Any]) -> Any:
        name = members.get("dtype")
        shape = members.get("shape")
        if not isinstance(name, str) or not isinstance(shape, list):
            raise MalformedEncodingError(f"Invalid {self.tag} header: dtype={name!r}, shape={shape!r}")
        try:
            dtype = _NUMPY_DTYPES[name] if name in _NUMPY_DTYPES else np.dtype(name)
            if dtype.kind not in _NUMPY_KINDS:
                raise TypeError(f"unsupported dtype {dtype}")
            return np.array(members.get("data"), dtype=dtype).reshape(shape)
        except (TypeError, ValueError) as exc:
            raise MalformedEncodingError(f"Invalid {self.tag} payload: {exc}") from exc


_LEAF_CODECS: dict[str, TaggedLeafCodec] = {
    codec.tag: codec for codec in (TimedeltaCodec(), NumpyArrayCodec())
}


class Serializer:
    """
    Encode/decode engine bound to one immutable settings value and one type registry.

    Instances hold no per-call state and can be shared between threads.

    Attributes:
        settings (SerializerSettings):
            Configuration used by every call.

        registry (TypeRegistry):
            Tag <-> class mapping used to write and resolve type tags.
    """

    settings: SerializerSettings
    registry: TypeRegistry

    def __init__(self, settings: SerializerSettings | None = None, registry: TypeRegistry | None = None):
        self.settings = DEFAULT_SETTINGS if settings is None else settings
        self.registry = DEFAULT_REGISTRY if registry is None else registry

    # -- public API -------------------------------------------------------------------------

    def serialize(self, value: Any) -> bytes:
        """
        Serialize `value` into a UTF-8 JSON byte buffer.

        Args:
            value (Any):
                The value to serialize.

        Returns:
            bytes:
                The byte buffer.

        Raises:
            CyclicGraphError: If the value graph contains a cycle.
            UnregisteredTypeError: If auto-registration is off and a class has no tag.
            SerializationError: If a value cannot be represented.
        """
        return to_utf8_bytes(self.dumps(value))

    @overload
    def deserialize(self, data: bytes | bytearray | memoryview, expected_type: Type[T]) -> T: ...

    @overload
    def deserialize(self, data: bytes | bytearray | memoryview, expected_type: None = None) -> Any: ...

    def deserialize(self, data: bytes | bytearray | memoryview, expected_type: Any = None) -> Any:
        """
        Rebuild a value from a byte buffer produced by `serialize()`.

        Args:
            data (bytes | bytearray | memoryview):
                The byte buffer.

            expected_type (type | None):
                Declared type of the result. Objects carrying a type tag are decoded as their
                tagged class, which must be a subclass of `expected_type`; untagged objects are
                decoded as `expected_type` itself.

        Returns:
            Any:
                The rebuilt value.

        Raises:
            MalformedEncodingError: If the buffer is not valid UTF-8 JSON.
            TypeResolutionError: If a type tag is unknown.
            MemberCoercionError: If a value does not fit the declared type of its slot.
        """
        return self.loads(from_utf8_bytes(data), expected_type)

    def dumps(self, value: Any) -> str:
        """
        Serialize `value` into JSON text.
        """
        encoded = self.to_encoded(value)
        try:
            return json.dumps(encoded, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        except ValueError as exc:
            raise SerializationError(f"Value cannot be rendered as JSON: {exc}") from exc
        except RecursionError as exc:
            raise SerializationError("Value is nested too deeply to be rendered as JSON") from exc

    def loads(self, text: str, expected_type: Any = None) -> Any:
        """
        Rebuild a value from JSON text produced by `dumps()`.
        """
        try:
            encoded = json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            raise MalformedEncodingError(f"Invalid JSON: {exc}") from exc
        except RecursionError as exc:
            raise MalformedEncodingError("JSON text is nested too deeply") from exc
        return self.from_encoded(encoded, expected_type)

    def to_encoded(self, value: Any) -> Any:
        """
        Convert `value` into its JSON-compatible encoded form (dicts, lists and leaves).
        """
        try:
            return self._encode(value, set())
        except RecursionError as exc:
            raise SerializationError(
                f"Value graph is nested too deeply (recursion limit {sys.getrecursionlimit()})"
            ) from exc

    def from_encoded(self, encoded: Any, expected_type: Any = None) -> Any:
        """
        Rebuild a value from its JSON-compatible encoded form.
        """
        try:
            return self._decode(encoded, Any if expected_type is None else expected_type, None)
        except RecursionError as exc:
            raise MalformedEncodingError(
                f"Encoded value is nested too deeply (recursion limit {sys.getrecursionlimit()})"
            ) from exc

    # -- encoding ---------------------------------------------------------------------------

    def _encode(self, value: Any, active: set[int]) -> Any:
        if value is None:
            return None

        if isinstance(value, Enum):
            return self._encode(value.value, active)

        if isinstance(value, (bool, int, float, str)):
            return value

        if isinstance(value, (dt.datetime, dt.date, dt.time)):
            return value.isoformat()

        if isinstance(value, (uuid.UUID, Decimal, PurePath)):
            return str(value)

        if isinstance(value, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(value)).decode("ascii")

        if isinstance(value, np.generic):
            return self._encode(value.item(), active)

        for codec in _LEAF_CODECS.values():
            if isinstance(value, codec.value_type):
                return {self.settings.type_key: codec.tag, **codec.encode_members(value)}

        if isinstance(value, _UNSERIALIZABLE):
            raise SerializationError(f"Values of type {type(value).__name__} cannot be serialized")

        marker = id(value)
        if marker in active:
            raise CyclicGraphError(f"Cycle detected at an instance of {type(value).__qualname__}")
        active.add(marker)
        try:
            if isinstance(value, dict):
                return self._encode_dict(cast(dict[Any, Any], value), active)
            if isinstance(value, (list, tuple)):
                return [self._encode(item, active) for item in cast(list[Any], value)]
            if isinstance(value, (set, frozenset)):
                return self._encode_set(cast(set[Any], value), active)
            return self._encode_object(value, active)
        finally:
            active.discard(marker)

    def _encode_dict(self, value: dict[Any, Any], active: set[int]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, item in value.items():
            name = self._encode_key(key, active)
            if name == self.settings.type_key:
                raise SerializationError(
                    f"Dictionary key {name!r} collides with the type key"
                )
            if name in result:
                raise SerializationError(f"Dictionary keys collide once rendered as {name!r}")
            result[name] = self._encode(item, active)
        return result

    def _encode_key(self, key: Any, active: set[int]) -> str:
        # strings and text leaves stay as they are, other keys are written as JSON text
        encoded = self._encode(key, active)
        if isinstance(encoded, str):
            return encoded
        if isinstance(encoded, dict):
            raise SerializationError(
                f"Dictionary key of type {type(key).__name__} cannot be rendered as text"
            )
        try:
            return json.dumps(encoded, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        except ValueError as exc:
            raise SerializationError(f"Dictionary key {key!r} cannot be rendered as text: {exc}") from exc

    def _encode_set(self, value: set[Any], active: set[int]) -> list[Any]:
        items = list(value)
        if self.settings.sort_sets:
            try:
                items = sorted(items)
            except TypeError:
                pass  # unorderable elements keep iteration order
        return [self._encode(item, active) for item in items]

    def _encode_object(self, value: Any, active: set[int]) -> dict[str, Any]:
        cls = type(value)
        tag = self.registry.tag_of(cls)
        if tag is None:
            if not self.settings.auto_register:
                raise UnregisteredTypeError(
                    f"Class {cls.__qualname__} is not registered for serialization"
                )
            tag = self.registry.ensure_registered(cls)

        descriptor = describe_type(cls)
        result: dict[str, Any] = {self.settings.type_key: tag}
        for slot in descriptor.readable_slots():
            try:
                item = slot.read(value)
            except AttributeError as exc:
                raise SerializationError(
                    f"Reading slot {slot.name!r} of {cls.__qualname__} failed: {exc}"
                ) from exc
            if item is MISSING:
                continue
            if item is None and not self.settings.include_none:
                continue
            result[slot.name] = self._encode(item, active)

        for name, item in descriptor.instance_members(value).items():
            if name == self.settings.type_key:
                raise SerializationError(f"Attribute {name!r} collides with the type key")
            if item is None and not self.settings.include_none:
                continue
            result[name] = self._encode(item, active)
        return result

    # -- decoding ---------------------------------------------------------------------------

    def _decode(self, node: Any, expected: Any, path: str | None) -> Any:
        while hasattr(expected, "__supertype__"):  # NewType
            expected = expected.__supertype__

        if expected is Any or expected is object or isinstance(expected, TypeVar):
            return self._decode_untyped(node, path)

        if is_union(expected):
            return self._decode_union(node, expected, path)

        if node is None:
            if expected is None or expected is NoneType:
                return None
            raise MemberCoercionError(
                "null is not allowed for a non-optional slot", slot_name=path, expected_type=expected
            )

        origin = get_origin(expected)

        if origin is Literal:
            if node in get_args(expected):
                return node
            raise MemberCoercionError(
                f"{node!r} is not one of {get_args(expected)!r}", slot_name=path, expected_type=expected
            )

        if isinstance(node, dict) and self.settings.type_key in node:
            value = self._decode_tagged(cast(dict[str, Any], node), path)
            return _check_instance(value, expected if origin is None else origin, path)

        if origin is not None:
            return self._decode_generic(node, expected, origin, path)

        if expected in (list, tuple, set, frozenset, dict):
            return self._decode_generic(node, expected, expected, path)

        if not isinstance(expected, type):
            raise MemberCoercionError(
                f"unsupported declared type {expected!r}", slot_name=path, expected_type=expected
            )

        if isinstance(node, dict) and _is_object_type(expected):
            return self._decode_object(expected, cast(dict[str, Any], node), path)

        return coerce_scalar(node, expected, slot_name=path)

    def _decode_union(self, node: Any, expected: Any, path: str | None) -> Any:
        if node is None:
            if NoneType in get_args(expected):
                return None
            raise MemberCoercionError(
                "null is not allowed for a non-optional slot", slot_name=path, expected_type=expected
            )
        members = [arg for arg in get_args(expected) if arg is not NoneType]
        failures: list[str] = []
        for member in members:
            try:
                return self._decode(node, member, path)
            except MemberCoercionError as exc:
                failures.append(str(exc))
        raise MemberCoercionError(
            f"value fits none of the union members ({'; '.join(failures)})",
            slot_name=path,
            expected_type=expected,
        )

    def _decode_generic(self, node: Any, expected: Any, origin: Any, path: str | None) -> Any:
        args = get_args(expected)

        if origin in (dict, collections.abc.Mapping, collections.abc.MutableMapping):
            if not isinstance(node, dict):
                raise MemberCoercionError(
                    f"expected a JSON object, got {type(node).__name__}", slot_name=path, expected_type=expected
                )
            key_type, value_type = args if len(args) == 2 else (Any, Any)
            result: dict[Any, Any] = {}
            for key, item in cast(dict[str, Any], node).items():
                item_path = _join(path, key)
                result[self._decode_key(key, key_type, item_path)] = self._decode(item, value_type, item_path)
            return result

        if not isinstance(node, list):
            raise MemberCoercionError(
                f"expected a JSON array, got {type(node).__name__}", slot_name=path, expected_type=expected
            )
        items = cast(list[Any], node)

        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self._decode(item, args[0], _join(path, i)) for i, item in enumerate(items))
            if not args:
                return tuple(self._decode_untyped(item, _join(path, i)) for i, item in enumerate(items))
            if len(args) != len(items):
                raise MemberCoercionError(
                    f"expected {len(args)} items, got {len(items)}", slot_name=path, expected_type=expected
                )
            return tuple(self._decode(item, arg, _join(path, i)) for i, (item, arg) in enumerate(zip(items, args)))

        item_type = args[0] if args else Any
        decoded = [self._decode(item, item_type, _join(path, i)) for i, item in enumerate(items)]
        if origin in (set, frozenset, collections.abc.Set, collections.abc.MutableSet):
            # untyped elements come back as lists; tuples are the hashable form of an array
            elements = [_hashable(item) for item in decoded]
            try:
                return frozenset(elements) if origin is frozenset else set(elements)
            except TypeError as exc:
                raise MemberCoercionError(
                    f"set elements must be hashable: {exc}", slot_name=path, expected_type=expected
                ) from exc
        if origin in (list, collections.abc.Sequence, collections.abc.MutableSequence,
                      collections.abc.Iterable, collections.abc.Collection):
            return decoded
        raise MemberCoercionError(
            f"unsupported declared type {expected!r}", slot_name=path, expected_type=expected
        )

    def _decode_key(self, key: str, key_type: Any, path: str) -> Any:
        key_type = unwrap_optional(key_type)
        if key_type is Any or key_type is str or isinstance(key_type, TypeVar):
            return key

        # text keys (str enums, dates, UUIDs) are tried as they are, other keys as JSON text
        try:
            return self._decode(key, key_type, path)
        except MemberCoercionError as exc:
            error = exc
        try:
            parsed = json.loads(key, parse_constant=_reject_constant)
        except ValueError:
            raise error from None
        return self._decode(parsed, key_type, path)

    def _decode_untyped(self, node: Any, path: str | None) -> Any:
        if isinstance(node, dict):
            members = cast(dict[str, Any], node)
            if self.settings.type_key in members:
                return self._decode_tagged(members, path)
            return {key: self._decode_untyped(item, _join(path, key)) for key, item in members.items()}
        if isinstance(node, list):
            return [self._decode_untyped(item, _join(path, i)) for i, item in enumerate(cast(list[Any], node))]
        if isinstance(node, str) and self.settings.parse_dates and _ISO_DATETIME_WITH_OFFSET.match(node):
            try:
                return dt.datetime.fromisoformat(node)
            except ValueError:
                return node
        return node

    def _decode_tagged(self, members: dict[str, Any], path: str | None) -> Any:
        tag = members[self.settings.type_key]
        if not isinstance(tag, str):
            raise MalformedEncodingError(
                f"Type tag at {path or '<root>'} must be a string, got {type(tag).__name__}"
            )
        codec = _LEAF_CODECS.get(tag)
        if codec is not None:
            return codec.decode_members(members)
        return self._decode_object(self.registry.resolve(tag), members, path)

    def _decode_object(self, cls: type, members: dict[str, Any], path: str | None) -> Any:
        descriptor = describe_type(cls)
        values: dict[str, Any] = {}
        extras: dict[str, Any] = {}
        for key, raw in members.items():
            if key == self.settings.type_key:
                continue
            slot = descriptor.slots.get(key)
            if slot is not None and slot.writable:
                values[key] = self._decode(raw, slot.declared_type, _join(path, key))
            elif slot is None and descriptor.accepts_instance_member(key):
                extras[key] = self._decode_untyped(raw, _join(path, key))
            else:
                logger.debug("Ignoring member %r of %s: no writable slot", key, cls.__qualname__)

        # If the class defines a custom deserialization constructor, use it first
        factory = getattr(cls, "from_deserialized_fields", None)
        if callable(factory):
            if extras:
                logger.debug("Ignoring members %s of %s: built by from_deserialized_fields",
                             sorted(extras), cls.__qualname__)
            try:
                return factory(**values)
            except (TypeError, ValueError) as exc:
                raise MemberCoercionError(
                    f"from_deserialized_fields rejected the decoded members: {exc}",
                    slot_name=path,
                    expected_type=cls,
                ) from exc

        try:
            obj = cls.__new__(cls)
        except TypeError as exc:
            raise MemberCoercionError(
                f"cannot instantiate {cls.__qualname__}: {exc}", slot_name=path, expected_type=cls
            ) from exc

        if dataclasses.is_dataclass(cls):
            for f in dataclasses.fields(cls):
                if f.name in values:
                    continue
                if f.default is not dataclasses.MISSING:
                    object.__setattr__(obj, f.name, f.default)
                elif f.default_factory is not dataclasses.MISSING:
                    object.__setattr__(obj, f.name, f.default_factory())

        for key, value in values.items():
            slot = descriptor.slots[key]
            try:
                slot.write(obj, value)
            except (TypeError, ValueError) as exc:
                raise MemberCoercionError(
                    f"write rejected: {exc}", slot_name=_join(path, key), expected_type=slot.declared_type
                ) from exc

        if extras and not hasattr(obj, "__dict__"):
            logger.debug("Ignoring members %s of %s: instances have no __dict__",
                         sorted(extras), cls.__qualname__)
        elif extras:
            for key, value in extras.items():
                object.__setattr__(obj, key, value)
        return obj


def _is_object_type(cls: type) -> bool:
    return not issubclass(cls, (str, bytes, bytearray, int, float, Enum, dt.date, dt.time, dt.timedelta,
                                uuid.UUID, Decimal, PurePath, np.ndarray))


def _check_instance(value: Any, expected: Any, path: str | None) -> Any:
    if not isinstance(expected, type):
        return value
    try:
        return strict_cast(expected, value, slot_name=path)
    except MemberCoercionError:
        raise
    except TypeError:
        # protocols without runtime_checkable cannot be checked
        return value


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_hashable(item) for item in cast(list[Any], value))
    return value


def _join(path: str | None, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path or ''}[{key}]"
    return key if path is None else f"{path}.{key}"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not allowed")


_DEFAULT_SERIALIZER = Serializer()


def serialize(value: Any, settings: SerializerSettings | None = None) -> bytes:
    """
    Serialize `value` with the default type registry.

    Args:
        value (Any):
            The value to serialize.

        settings (SerializerSettings | None):
            Settings for this call; `DEFAULT_SETTINGS` when None.

    Returns:
        bytes:
            UTF-8 JSON byte buffer.
    """
    serializer = _DEFAULT_SERIALIZER if settings is None else Serializer(settings)
    return serializer.serialize(value)


@overload
def deserialize(data: bytes | bytearray | memoryview, expected_type: Type[T],
                settings: SerializerSettings | None = None) -> T: ...

@overload
def deserialize(data: bytes | bytearray | memoryview, expected_type: None = None,
                settings: SerializerSettings | None = None) -> Any: ...

def deserialize(data: bytes | bytearray | memoryview, expected_type: Any = None,
                settings: SerializerSettings | None = None) -> Any:
    """
    Rebuild a value serialized by `serialize()`, resolving tags with the default registry.

    Args:
        data (bytes | bytearray | memoryview):
            The byte buffer.

        expected_type (type | None):
            Declared type of the result; a tagged subclass instance satisfies it.

        settings (SerializerSettings | None):
            Settings for this call; `DEFAULT_SETTINGS` when None.

    Returns:
        Any:
            The rebuilt value.

    Raises:
        DeserializationError: If the buffer cannot be decoded.
    """
    serializer = _DEFAULT_SERIALIZER if settings is None else Serializer(settings)
    return serializer.deserialize(data, expected_type)


__all__ = [
    "Serializer",
    "TaggedLeafCodec",
    "serialize",
    "deserialize",
    "to_utf8_bytes",
    "from_utf8_bytes",
]
