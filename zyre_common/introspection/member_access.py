"""
Member discovery and access policy for reflective serialization.

`describe_type(cls)` inspects a class and returns a `TypeDescriptor`: the set of storage slots
(fields and properties, public or not) that take part in serialization, each with a resolved
read path and write path.

Discovery rules:
  - Fields come from class annotations (ClassVar and InitVar excluded), dataclass fields and
    `__slots__`, across the whole MRO. Names starting with an underscore are included.
  - Properties come from `property` objects found in the class dictionaries of the MRO.
  - A field that stores the state of a property (`_name` or `_Owner__name` for property `name`)
    is synthesized backing state and is excluded, so the state is emitted once, through the
    property. Dataclass fields with `metadata={"serialize": False}` are excluded as well.
  - A property without a public setter becomes writable when the declaring class (or one of
    its bases) defines a setter method `set_name`, `_set_name` or `__set_name`; the setter is
    called on decode. Getters are resolved the same way with `get_`.
  - A property with neither a public nor a hidden setter is written through its backing field
    when it has one.
  - Fields are always readable and writable; writes go through `object.__setattr__` so frozen
    dataclasses are repopulated as well.
  - Instance attributes that no slot declares (plain classes assigning `self.x` in `__init__`)
    are reported per instance by `TypeDescriptor.instance_members()`. Names claimed by a slot,
    the backing field of a writable property, dunder names and names bound to class-level
    descriptors (methods, properties, `cached_property`) are never instance members.

Descriptors are computed once per class and cached. The cache is safe for concurrent use:
computation happens without any lock and the result is published with `dict.setdefault`, so
every caller observes the first descriptor that was published.
"""

from __future__ import annotations
import dataclasses
import inspect
import logging
import re
import typing
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, ClassVar, cast, get_origin

from zyre_common.containers.read_only.read_only_mapping import ReadOnlyMapping

logger = logging.getLogger(__name__)

_CLASSVAR_RE = re.compile(r"^(typing\.)?ClassVar\b")
_INITVAR_RE = re.compile(r"^(dataclasses\.)?InitVar\b")
_SLOT_EXCLUDED_NAMES = frozenset({"__dict__", "__weakref__"})


class SlotKind(StrEnum):
    FIELD = "field"
    PROPERTY = "property"


class _Missing:
    """Marker for a field an instance never assigned."""

    _instance: ClassVar[_Missing | None] = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(frozen=True)
class StorageSlot:
    """
    One unit of object state taking part in serialization.

    Attributes:
        name (str):
            Attribute name of the slot, unique within the type. Name-mangled members keep their
            mangled form (e.g. `_Account__pin`).

        kind (SlotKind):
            FIELD for instance attributes, PROPERTY for accessor pairs.

        owner (type):
            The class in the MRO that declares the slot.

        readable (bool):
            True if the slot's value is emitted when encoding.

        writable (bool):
            True if the slot is populated when decoding.

        declared_type (Any):
            The resolved annotation of the field or of the property getter's return value,
            `typing.Any` when unknown.

        is_synthesized (bool):
            True for backing state of a property. Such slots are never serialized.

        getter (Callable[[Any], Any] | None):
            Read path of a property: its public `fget`, a hidden getter method or a reader of
            its backing field.

        setter (Callable[[Any, Any], None] | None):
            Write path of a property: its public `fset`, a hidden setter method or a writer of
            its backing field.

        backing (str | None):
            Name of the declared field that stores the state of a property, if any.
    """

    name: str
    kind: SlotKind
    owner: type
    readable: bool
    writable: bool
    declared_type: Any = Any
    is_synthesized: bool = False
    getter: Callable[[Any], Any] | None = field(default=None, compare=False, repr=False)
    setter: Callable[[Any, Any], None] | None = field(default=None, compare=False, repr=False)
    backing: str | None = None

    def read(self, obj: Any) -> Any:
        """
        Read the slot's current value from `obj`.

        Args:
            obj (Any):
                An instance of the described type.

        Returns:
            Any:
                The value, or `MISSING` if the instance never assigned the field (or the backing
                field of the property).

        Raises:
            AttributeError: If the slot is not readable, or if a property getter fails for
                another reason.
        """
        if not self.readable:
            raise AttributeError(f"Slot {self.name!r} of {self.owner.__qualname__} is not readable")
        if self.kind is SlotKind.FIELD:
            try:
                return getattr(obj, self.name)
            except AttributeError:
                return MISSING
        try:
            return cast(Callable[[Any], Any], self.getter)(obj)
        except AttributeError:
            if self.backing is not None and not hasattr(obj, self.backing):
                return MISSING
            raise

    def write(self, obj: Any, value: Any):
        """
        Store `value` into the slot of `obj`, bypassing frozen-instance guards for fields.

        Args:
            obj (Any):
                An instance of the described type.

            value (Any):
                The value to store.

        Raises:
            AttributeError: If the slot is not writable.
        """
        if not self.writable:
            raise AttributeError(f"Slot {self.name!r} of {self.owner.__qualname__} is not writable")
        if self.kind is SlotKind.FIELD:
            object.__setattr__(obj, self.name, value)
        else:
            cast(Callable[[Any, Any], None], self.setter)(obj, value)


@dataclass(frozen=True)
class TypeDescriptor:
    """
    The serializable shape of a class.

    Attributes:
        cls (type):
            The described class.

        slots (ReadOnlyMapping[str, StorageSlot]):
            Serializable slots by name, base classes first.

        synthesized (ReadOnlyMapping[str, StorageSlot]):
            Backing slots that were discovered but excluded from serialization.

        claimed (frozenset[str]):
            Attribute names owned by a slot, a synthesized slot or a writable property's
            backing field. Instance attributes with these names are never instance members.
    """

    cls: type
    slots: ReadOnlyMapping[str, StorageSlot]
    synthesized: ReadOnlyMapping[str, StorageSlot]
    claimed: frozenset[str] = frozenset()

    def readable_slots(self) -> list[StorageSlot]:
        return [slot for slot in self.slots.values() if slot.readable]

    def writable_slots(self) -> list[StorageSlot]:
        return [slot for slot in self.slots.values() if slot.writable]

    def accepts_instance_member(self, name: str) -> bool:
        """
        Return True if `name` may be stored as an undeclared instance attribute.
        """
        if _is_dunder(name) or name in self.claimed:
            return False
        attr = inspect.getattr_static(self.cls, name, None)
        return not (hasattr(attr, "__get__") or hasattr(attr, "__set__"))

    def instance_members(self, obj: Any) -> dict[str, Any]:
        """
        Collect the attributes of `obj` that no slot declares.

        Args:
            obj (Any):
                An instance of the described type.

        Returns:
            dict[str, Any]:
                Attribute values by name, in assignment order. Empty when the instance has no
                `__dict__`.
        """
        state = getattr(obj, "__dict__", None)
        if not isinstance(state, dict):
            return {}
        return {name: value for name, value in cast(dict[str, Any], state).items()
                if self.accepts_instance_member(name)}

    def __len__(self) -> int:
        return len(self.slots)


_descriptor_cache: dict[type, TypeDescriptor] = {}


def describe_type(cls: type) -> TypeDescriptor:
    """
    Return the cached `TypeDescriptor` of `cls`, computing it on first use.

    Args:
        cls (type):
            The class to describe.

    Returns:
        TypeDescriptor:
            The descriptor. The same object is returned for every call with the same class.

    Raises:
        TypeError: If `cls` is not a class.
    """
    descriptor = _descriptor_cache.get(cls)
    if descriptor is None:
        if not isinstance(cls, type):
            raise TypeError(f"describe_type expects a class, got {type(cls).__name__}")
        descriptor = _descriptor_cache.setdefault(cls, _build_descriptor(cls))
    return descriptor


def clear_descriptor_cache():
    """
    Drop every cached descriptor.

    Useful for test isolation.
    """
    _descriptor_cache.clear()


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _mangle(owner: type, name: str) -> str:
    """Apply private name mangling the way the compiler does inside `owner`'s body."""
    if not name.startswith("__") or name.endswith("__"):
        return name
    stripped = owner.__name__.lstrip("_")
    if not stripped:
        return name
    return f"_{stripped}{name}"


def _class_hints(cls: type) -> dict[str, Any]:
    """Resolve annotations of `cls` and its bases, leaving unresolved names as `Any`."""
    try:
        return typing.get_type_hints(cls)
    except Exception:  # pylint: disable=broad-exception-caught
        # forward references to classes defined in a local scope cannot be evaluated
        pass

    hints: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        try:
            annotations = inspect.get_annotations(klass, eval_str=True)
        except Exception:  # pylint: disable=broad-exception-caught
            annotations = inspect.get_annotations(klass)
        for name, annotation in annotations.items():
            hints[name] = annotation
    return hints


def _is_class_level(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return bool(_CLASSVAR_RE.match(annotation) or _INITVAR_RE.match(annotation))
    return get_origin(annotation) is ClassVar or annotation is ClassVar \
        or isinstance(annotation, dataclasses.InitVar) or annotation is dataclasses.InitVar


def _declared(annotation: Any) -> Any:
    # string annotations that could not be evaluated carry no usable shape
    return Any if isinstance(annotation, str) else annotation


def _slot_names(klass: type) -> list[str]:
    raw = klass.__dict__.get("__slots__", ())
    if isinstance(raw, str):
        raw = (raw,)
    return [_mangle(klass, name) for name in raw if name not in _SLOT_EXCLUDED_NAMES]


def _find_accessor(owner: type, prefix: str, name: str) -> Callable[..., Any] | None:
    """
    Look for a hidden accessor method of property `name` on `owner` and its bases.

    Candidates, in order: `<prefix>_<name>`, `_<prefix>_<name>` and the mangled
    `__<prefix>_<name>` of the class that defines it.
    """
    for klass in owner.__mro__:
        if klass is object:
            break
        candidates = (
            f"{prefix}_{name}",
            f"_{prefix}_{name}",
            _mangle(klass, f"__{prefix}_{name}"),
        )
        for candidate in candidates:
            member = klass.__dict__.get(candidate)
            if inspect.isfunction(member):
                return member
    return None


def _property_return_type(prop: property) -> Any:
    if prop.fget is None:
        return Any
    try:
        return typing.get_type_hints(prop.fget).get("return", Any)
    except Exception:  # pylint: disable=broad-exception-caught
        return Any


def _backing_names(owner: type, name: str) -> tuple[str, ...]:
    return (f"_{name}", _mangle(owner, f"__{name}"))


def _field_reader(name: str) -> Callable[[Any], Any]:
    def read(obj: Any) -> Any:
        return getattr(obj, name)
    return read


def _field_writer(name: str) -> Callable[[Any, Any], None]:
    def write(obj: Any, value: Any):
        object.__setattr__(obj, name, value)
    return write


def _build_descriptor(cls: type) -> TypeDescriptor:
    hints = _class_hints(cls)
    dataclass_fields = {f.name: f for f in dataclasses.fields(cls)} if dataclasses.is_dataclass(cls) else {}

    fields: dict[str, StorageSlot] = {}
    properties: dict[str, tuple[type, property]] = {}
    order: list[str] = []

    def _remember(name: str):
        if name not in order:
            order.append(name)

    for klass in reversed(cls.__mro__):
        if klass is object:
            continue

        names = list(inspect.get_annotations(klass))
        names += [name for name in _slot_names(klass) if name not in names]
        for name in names:
            if _is_dunder(name):
                continue
            annotation = hints.get(name, inspect.get_annotations(klass).get(name, Any))
            if _is_class_level(annotation):
                continue
            dc_field = dataclass_fields.get(name)
            excluded = dc_field is not None and dc_field.metadata.get("serialize", True) is False
            properties.pop(name, None)
            fields[name] = StorageSlot(
                name=name,
                kind=SlotKind.FIELD,
                owner=klass,
                readable=True,
                writable=True,
                declared_type=_declared(annotation),
                is_synthesized=excluded,
            )
            _remember(name)

        for name, member in klass.__dict__.items():
            if isinstance(member, property) and not _is_dunder(name):
                fields.pop(name, None)
                properties[name] = (klass, member)
                _remember(name)

    synthesized: dict[str, StorageSlot] = {
        name: slot for name, slot in fields.items() if slot.is_synthesized
    }
    slots: dict[str, StorageSlot] = {}
    claimed: set[str] = set()

    for name in order:
        if name in fields and name not in synthesized:
            slots[name] = fields[name]
            continue
        if name not in properties:
            continue

        owner, prop = properties[name]
        backing = next((fields[b] for b in _backing_names(owner, name) if b in fields), None)
        if backing is not None:
            synthesized[backing.name] = dataclasses.replace(backing, is_synthesized=True)
            slots.pop(backing.name, None)

        getter: Callable[[Any], Any] | None = prop.fget
        if getter is None:
            getter = _find_accessor(owner, "get", name)
            if getter is None and backing is not None:
                getter = _field_reader(backing.name)
            if getter is not None:
                logger.debug("Resolved hidden getter for %s.%s", cls.__qualname__, name)

        setter: Callable[[Any, Any], None] | None = prop.fset
        if setter is None:
            setter = _find_accessor(owner, "set", name)
            if setter is None and backing is not None:
                setter = _field_writer(backing.name)
            if setter is not None:
                logger.debug("Resolved hidden setter for %s.%s", cls.__qualname__, name)

        declared_type = _property_return_type(prop)
        if declared_type is Any and backing is not None:
            declared_type = backing.declared_type

        slots[name] = StorageSlot(
            name=name,
            kind=SlotKind.PROPERTY,
            owner=owner,
            readable=getter is not None,
            writable=setter is not None,
            declared_type=declared_type,
            getter=getter,
            setter=setter,
            backing=None if backing is None else backing.name,
        )
        if setter is not None:
            # undeclared backing state of a writable property is restored through the property
            claimed.update(_backing_names(owner, name))

    # backing fields are listed before their property; drop the ones claimed above
    for name in synthesized:
        slots.pop(name, None)

    logger.debug(
        "Described %s: %d slot(s), %d synthesized",
        cls.__qualname__, len(slots), len(synthesized),
    )
    claimed.update(slots)
    claimed.update(synthesized)
    return TypeDescriptor(
        cls=cls,
        slots=ReadOnlyMapping(slots),
        synthesized=ReadOnlyMapping(synthesized),
        claimed=frozenset(claimed),
    )


__all__ = [
    "SlotKind",
    "StorageSlot",
    "TypeDescriptor",
    "MISSING",
    "describe_type",
    "clear_descriptor_cache",
]
