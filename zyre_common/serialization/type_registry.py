from __future__ import annotations
import logging
import threading
from typing import Any, Callable, TypeVar, overload

from zyre_common.serialization.errors import TypeResolutionError

C = TypeVar("C", bound=type)

logger = logging.getLogger(__name__)


def default_tag(cls: type) -> str:
    """
    Compute the tag a class is registered under when no explicit tag is given.

    Args:
        cls (type):
            The class to name.

    Returns:
        str:
            "<module>.<qualname>", e.g. "zyre_common.messages.Whisper".
    """
    return f"{cls.__module__}.{cls.__qualname__}"


class TypeRegistry:
    """
    Thread-safe mapping between type tags and the classes they name.

    Decoding resolves the tag embedded in an encoded object through a registry instead of
    importing modules by name: only classes that were explicitly registered (or
    auto-registered while encoding in the same process) can be instantiated.

    Registration is append-only in normal operation. Re-registering a class under the tag it
    already has is a no-op; binding a tag to a second class, or a class to a second tag,
    raises `ValueError`.

    Attributes:
        _lock (threading.Lock):
            Guards both maps. Never held while encoding or decoding slot values.

        _by_tag (dict[str, type]):
            Maps tag to class, used by decoding.

        _by_type (dict[type, str]):
            Maps class to tag, used by encoding.
    """

    _lock: threading.Lock
    _by_tag: dict[str, type]
    _by_type: dict[type, str]

    def __init__(self):
        self._lock = threading.Lock()
        self._by_tag = {}
        self._by_type = {}

    @overload
    def register(self, cls: C, tag: str | None = None) -> C: ...

    @overload
    def register(self, cls: None = None, tag: str | None = None) -> Callable[[C], C]: ...

    def register(self, cls: C | None = None, tag: str | None = None) -> C | Callable[[C], C]:
        """
        Register a class for polymorphic decoding.

        Can be called directly (`registry.register(Point)`), used as a bare decorator
        (`@registry.register`) or with an explicit tag (`@registry.register(tag="point")`).

        Args:
            cls (type | None):
                The class to register. When None, a decorator is returned.

            tag (str | None):
                The tag to embed in encoded objects. Defaults to `default_tag(cls)`.

        Returns:
            type | Callable:
                The registered class unchanged, or a decorator when `cls` is None.

        Raises:
            TypeError: If `cls` is not a class.
            ValueError: If the tag or the class is already bound to something else.
        """
        if cls is None:
            def decorator(inner: C) -> C:
                return self.register(inner, tag)
            return decorator

        if not isinstance(cls, type):
            raise TypeError(f"Only classes can be registered, got {type(cls).__name__}.")

        tag = default_tag(cls) if tag is None else tag
        if not tag:
            raise ValueError(f"Empty tag for class {cls.__name__}.")

        with self._lock:
            bound = self._by_tag.get(tag)
            if bound is cls:
                return cls
            if bound is not None:
                raise ValueError(
                    f"Duplicate tag {tag!r} for class {cls.__qualname__}, "
                    f"already bound to {bound.__qualname__}."
                )
            if cls in self._by_type:
                raise ValueError(
                    f"Class {cls.__qualname__} is already registered as {self._by_type[cls]!r}."
                )
            self._by_tag[tag] = cls
            self._by_type[cls] = tag

        logger.debug("Registered type tag %r for %s", tag, cls.__qualname__)
        return cls

    def ensure_registered(self, cls: type) -> str:
        """
        Return the tag of `cls`, registering it under its default tag if needed.

        Args:
            cls (type):
                The class to look up.

        Returns:
            str:
                The tag of the class.
        """
        tag = self.tag_of(cls)
        if tag is not None:
            return tag
        with self._lock:
            # Another thread may have registered it in between
            tag = self._by_type.get(cls)
            if tag is None:
                tag = default_tag(cls)
                bound = self._by_tag.get(tag)
                if bound is not None and bound is not cls:
                    raise ValueError(
                        f"Duplicate tag {tag!r} for class {cls.__qualname__}, "
                        f"already bound to {bound.__qualname__}."
                    )
                self._by_tag[tag] = cls
                self._by_type[cls] = tag
                logger.debug("Auto-registered type tag %r for %s", tag, cls.__qualname__)
        return tag

    def tag_of(self, cls: type) -> str | None:
        """
        Return the tag `cls` is registered under, or None.
        """
        with self._lock:
            return self._by_type.get(cls)

    def is_registered(self, cls: type) -> bool:
        return self.tag_of(cls) is not None

    def resolve(self, tag: str) -> type:
        """
        Resolve an embedded tag to its class.

        Args:
            tag (str):
                The tag read from an encoded object.

        Returns:
            type:
                The registered class.

        Raises:
            TypeResolutionError:
                If no class is registered under `tag`.
        """
        with self._lock:
            cls = self._by_tag.get(tag)
        if cls is None:
            raise TypeResolutionError(f"Unknown type tag {tag!r}.")
        return cls

    def tags(self) -> dict[str, type]:
        """
        Return a snapshot of the registered tags.
        """
        with self._lock:
            return dict(self._by_tag)

    def clear(self):
        """
        Remove every registration.

        Useful for test isolation.
        """
        with self._lock:
            self._by_tag.clear()
            self._by_type.clear()

    def __contains__(self, item: Any) -> bool:
        if isinstance(item, str):
            with self._lock:
                return item in self._by_tag
        return isinstance(item, type) and self.is_registered(item)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_tag)


DEFAULT_REGISTRY = TypeRegistry()


@overload
def serializable(cls: C, *, tag: str | None = None) -> C: ...

@overload
def serializable(cls: None = None, *, tag: str | None = None) -> Callable[[C], C]: ...

def serializable(cls: C | None = None, *, tag: str | None = None) -> C | Callable[[C], C]:
    """
    Class decorator that registers a class in the default type registry.

    The class itself is returned unchanged: which members are serialized is decided by member
    discovery (annotations, dataclass fields, `__slots__` and properties), not by the
    decorator.

    Args:
        cls (Type[C] | None):
            The class to register, when used as a bare decorator.

        tag (str | None):
            Explicit tag, e.g. `@serializable(tag="zyre.whisper")`.

    Returns:
        Type[C]:
            The same class, now resolvable when decoding.
    """
    if cls is None:
        return DEFAULT_REGISTRY.register(tag=tag)
    return DEFAULT_REGISTRY.register(cls, tag)


__all__ = [
    "TypeRegistry",
    "DEFAULT_REGISTRY",
    "default_tag",
    "serializable",
]
