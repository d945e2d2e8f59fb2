"""
Property walker: find every string in a settings graph that must be encrypted.

The walk is depth-first and driven by type hints plus ``Annotated``
markers, so it works on any object shape: pydantic models, dataclasses
and plain classes alike.

For every member of an object:
    EncryptDoNotFollow        stop here
    EncryptForceFollow/nested descend into the value
    collection                descend into each item
    Encrypt + string          yield a PropertyDescriptor
    Encrypt + list of strings yield one descriptor per index (lists may stack)

A member whose getter raises is skipped. The depth limit and a visited
set keep cyclic graphs from running away.
"""

from __future__ import annotations

import datetime
import decimal
import fractions
import functools
import inspect
import ipaddress
import logging
import re
import types
import typing
import uuid
from collections.abc import Iterable, Mapping, MutableSequence
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Annotated, Any, Callable, Iterator, NamedTuple, Optional, Union

from pydantic import BaseModel

from .markers import EncryptMarker, markers_of

logger = logging.getLogger("sksettings.encryption.walker")

DEFAULT_MAX_DEPTH = 100

# Types that are never descended into.
LEAF_TYPES: tuple[type, ...] = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    bytearray,
    memoryview,
    range,
    slice,
    type,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    datetime.tzinfo,
    decimal.Decimal,
    fractions.Fraction,
    uuid.UUID,
    PurePath,
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    re.Pattern,
    Enum,
    Mapping,
    types.FunctionType,
    types.MethodType,
    types.BuiltinFunctionType,
    types.ModuleType,
    functools.partial,
)

# Classes from these packages are library plumbing, not settings.
FRAMEWORK_MODULES = frozenset({"builtins", "abc", "typing", "pydantic", "pydantic_core"})

_UNION_TYPES: tuple[Any, ...] = (Union, types.UnionType) if hasattr(types, "UnionType") else (Union,)
_UNTYPED = (None, Any, object)


class PropertyDescriptor(NamedTuple):
    """A string slot found by the walker.

    Attributes:
        setter: Writes a new value back into the exact slot ``value`` came from.
        value: Current value of the slot.
        name: Name of the member the slot belongs to.
    """

    setter: Callable[[Optional[str]], None]
    value: Optional[str]
    name: str


@dataclass(frozen=True)
class Member:
    """A member of a class as seen by the walker."""

    name: str
    declared: Any
    markers: frozenset
    writable: bool = True


# ---------------------------------------------------------------------------
# Type classification
# ---------------------------------------------------------------------------


def unwrap(hint: Any) -> tuple[Any, frozenset]:
    """Strip ``Annotated`` and ``Optional`` from ``hint``.

    Returns:
        ``(declared_type, marker_kinds)``.
    """
    markers: set = set()
    while True:
        if typing.get_origin(hint) is Annotated:
            markers |= markers_of(hint.__metadata__)
            hint = hint.__origin__
            continue
        if typing.get_origin(hint) in _UNION_TYPES:
            args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
            if len(args) == 1:
                hint = args[0]
                continue
        return hint, frozenset(markers)


def _runtime_class(tp: Any) -> Optional[type]:
    origin = typing.get_origin(tp) or tp
    return origin if isinstance(origin, type) else None


def _is_framework_class(cls: type) -> bool:
    return cls is object or cls.__module__.split(".")[0] in FRAMEWORK_MODULES


def is_collection(tp: Any) -> bool:
    """Iterable types other than strings, bytes and mappings."""
    cls = _runtime_class(tp)
    if cls is None:
        return False
    if issubclass(cls, (str, bytes, bytearray, memoryview, Mapping)):
        return False
    # Models iterate over their fields but are objects, not collections.
    if issubclass(cls, BaseModel):
        return False
    return issubclass(cls, Iterable)


def is_nested(tp: Any) -> bool:
    """Whether ``tp`` looks like a user-defined object worth descending into."""
    if tp in _UNTYPED:
        return False
    cls = _runtime_class(tp)
    if cls is None:
        return False
    if issubclass(cls, LEAF_TYPES) or is_collection(cls):
        return False
    return not _is_framework_class(cls)


def is_supported(tp: Any, value: Any) -> bool:
    """Whether an attributed slot can be encrypted in place."""
    if tp is str:
        return True
    if tp in _UNTYPED:
        return value is None or isinstance(value, str)
    return False


def element_type(tp: Any) -> Any:
    """Element type of a collection hint, or None if it is not declared."""
    args = typing.get_args(tp)
    if args:
        return args[0]
    cls = _runtime_class(tp)
    if cls is None:
        return None
    for klass in cls.__mro__:
        for base in getattr(klass, "__orig_bases__", ()):
            base_origin = typing.get_origin(base)
            base_args = typing.get_args(base)
            if isinstance(base_origin, type) and issubclass(base_origin, Iterable) and base_args:
                return base_args[0]
    return None


# ---------------------------------------------------------------------------
# Member discovery
# ---------------------------------------------------------------------------


def _resolve_one(owner: Any, name: str, hint: str) -> Any:
    """Resolve a single string annotation of ``owner``, or ``None``."""
    shim = type("_HintShim", (), {
        "__annotations__": {name: hint},
        "__module__": getattr(owner, "__module__", __name__),
    })
    localns = dict(vars(owner)) if isinstance(owner, type) else None
    try:
        return typing.get_type_hints(shim, localns=localns, include_extras=True)[name]
    except Exception:
        logger.debug("Unresolvable annotation %r on %s.%s", hint, getattr(owner, "__qualname__", owner), name)
        return None


def _resolved_hints(obj: Any) -> dict[str, Any]:
    """Annotations of ``obj`` with extras, resolved where possible.

    One unresolvable annotation does not cost the others: names that
    ``get_type_hints`` could not resolve as a whole are retried one by one.
    """
    raw = inspect.get_annotations(obj)
    try:
        resolved = typing.get_type_hints(obj, include_extras=True)
    except Exception:
        resolved = {}
    hints = {}
    for name, hint in raw.items():
        if name in resolved:
            hints[name] = resolved[name]
        elif isinstance(hint, str):
            hints[name] = _resolve_one(obj, name, hint)
        else:
            hints[name] = hint
    return hints


def _is_classvar(hint: Any) -> bool:
    return hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar


@functools.lru_cache(maxsize=None)
def class_members(cls: type) -> tuple[Member, ...]:
    """All annotated attributes and properties of ``cls`` and its bases."""
    members: dict[str, Member] = {}
    for klass in reversed(cls.__mro__):
        if _is_framework_class(klass):
            continue
        for name, hint in _resolved_hints(klass).items():
            if name.startswith("__") or _is_classvar(hint):
                continue
            declared, markers = unwrap(hint)
            members[name] = Member(name, declared, markers)
        for name, attribute in vars(klass).items():
            if not isinstance(attribute, property) or attribute.fget is None:
                continue
            hint = _resolved_hints(attribute.fget).get("return")
            declared, markers = unwrap(hint)
            members[name] = Member(name, declared, markers, writable=attribute.fset is not None)

    # Pydantic keeps Annotated metadata on the field, even when hints are unresolvable.
    fields = getattr(cls, "model_fields", None)
    for name, info in (fields if isinstance(fields, dict) else {}).items():
        declared, markers = unwrap(info.annotation)
        markers = markers | markers_of(info.metadata)
        if name in members:
            markers = markers | members[name].markers
        members[name] = Member(name, declared, markers)

    private = getattr(cls, "__private_attributes__", None)
    for name in (private if isinstance(private, dict) else {}):
        members.setdefault(name, Member(name, None, frozenset()))

    return tuple(members.values())


def _instance_members(obj: Any) -> list[Member]:
    members = list(class_members(type(obj)))
    known = {member.name for member in members}
    try:
        attributes = vars(obj)
    except TypeError:
        return members
    for name, value in attributes.items():
        if name in known or name.startswith("__") or callable(value):
            continue
        members.append(Member(name, None, frozenset()))
    return members


# ---------------------------------------------------------------------------
# Walk
# ---------------------------------------------------------------------------


def _set_item(sequence: MutableSequence, index: int, value: Optional[str]) -> None:
    sequence[index] = value


class PropertyWalker:
    """Enumerates the encryptable string slots of an object graph.

    Args:
        max_depth: How deep the walk may descend before a branch is cut.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth

    def walk(self, root: Any) -> Iterator[PropertyDescriptor]:
        """Lazily yield a descriptor for every relevant slot under ``root``."""
        return self._walk(root, 0, False, set())

    def _walk(self, obj: Any, depth: int, inherited: bool, visited: set[int]) -> Iterator[PropertyDescriptor]:
        if obj is None or not is_nested(type(obj)):
            return
        yield from self._walk_members(obj, depth, inherited, visited)

    def _walk_members(self, obj: Any, depth: int, inherited: bool, visited: set[int]) -> Iterator[PropertyDescriptor]:
        if obj is None or depth >= self.max_depth or id(obj) in visited:
            return
        visited.add(id(obj))

        for member in _instance_members(obj):
            try:
                value = getattr(obj, member.name)
            except Exception as exc:
                logger.debug("Skipping %s.%s: %s", type(obj).__name__, member.name, exc)
                continue

            declared = member.declared if member.declared is not None else type(value)
            attributed = inherited or EncryptMarker.ENCRYPT in member.markers

            if not attributed:
                if EncryptMarker.DO_NOT_FOLLOW in member.markers:
                    continue
                if EncryptMarker.FORCE_FOLLOW in member.markers:
                    yield from self._walk_members(value, depth + 1, False, visited)
                elif is_nested(declared):
                    yield from self._walk(value, depth + 1, False, visited)
                elif is_collection(declared) and isinstance(value, Iterable):
                    for item in list(value):
                        yield from self._walk(item, depth + 1, False, visited)
                continue

            if is_supported(declared, value):
                if member.writable:
                    yield PropertyDescriptor(
                        setter=functools.partial(setattr, obj, member.name),
                        value=value,
                        name=member.name,
                    )
            elif is_collection(declared) and isinstance(value, Iterable):
                yield from self._walk_attributed_list(
                    value, element_type(declared), member.name, depth + 1, visited,
                )

    def _walk_attributed_list(
        self,
        sequence: Iterable,
        item_type: Any,
        name: str,
        depth: int,
        visited: set[int],
    ) -> Iterator[PropertyDescriptor]:
        if depth >= self.max_depth:
            return
        mutable = isinstance(sequence, MutableSequence)
        item_type, _ = unwrap(item_type)

        for index, item in enumerate(list(sequence)):
            current = item_type if item_type not in _UNTYPED else type(item)
            if is_supported(current, item):
                # Only sequences that can be written back get per-index setters.
                if mutable:
                    yield PropertyDescriptor(
                        setter=functools.partial(_set_item, sequence, index),
                        value=item,
                        name=name,
                    )
            elif is_collection(current) and isinstance(item, Iterable):
                yield from self._walk_attributed_list(
                    item, element_type(current), name, depth + 1, visited,
                )
            elif is_nested(current):
                yield from self._walk(item, depth + 1, True, visited)


def walk(root: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Iterator[PropertyDescriptor]:
    """Shortcut for ``PropertyWalker(max_depth).walk(root)``."""
    return PropertyWalker(max_depth).walk(root)
