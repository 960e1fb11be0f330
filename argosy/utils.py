"""
Argosy utilities shared by the conversion, resolver, binding and fault layers.

Contents
- Unset / UnsetType: the "nothing was passed" marker, distinct from None.
- coalesce(value, default): swap Unset for a default, keep everything else.
- rename(...): stable names for callables generated at runtime.
- mirror("attr"): read-only property over self._attr; containers come back as
  tuple / MappingProxyType / frozenset.
- ordinal(n): "first" … "tenth", then "11th", "22nd", used in token positions.
- typename(t): short labels for classes, unions and typing constructs.

    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> ordinal(2)
    'second'
    >>> typename(int | None)
    'int | None'
"""
import builtins
import functools
import types
import typing
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker: "the caller passed nothing here".

    Bindings, commanders and faults accept None as a real value in several places
    (a context argument, a suggestion, a parameter default), so absence needs its
    own object. There is exactly one instance per process and it is falsy.
    """

    def __or__(self, other, /):
        # Allows `str | Unset` in stub annotations.
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        # Pickling must hand back the process-wide singleton.
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Replace Unset with `default`; any other value (None, 0, "") passes through.
    """
    if object is Unset:
        return default
    return object


def _rename(target, name, /):
    if not builtins.callable(target):
        raise TypeError("rename() first argument must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() second argument must be a string")
    try:
        target.__name__ = target.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() first argument must be a updatable callable") from None
    return target


def rename(*parameters):
    """
    Give a generated callable a stable __name__/__qualname__.

    - rename(function, "name") renames in place and returns the function.
    - @rename("name") does the same for the decorated function.

    Bindings and commanders build their __repr__ and decorator wrappers at runtime;
    renaming them keeps tracebacks readable.
    """
    if len(parameters) == 2:
        return _rename(*parameters)
    if len(parameters) != 1:
        raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))
    name, = parameters
    if not isinstance(name, str):
        raise TypeError("@rename() argument must be a string")
    return _rename(lambda target: _rename(target, name), "rename")


def mirror(name, /):
    """
    Property named `name` reading self._{name}; containers are handed out as
    snapshots or views:
    - tuple (named tuples included) → as-is
    - other Sequence (non-string) → tuple
    - Mapping → MappingProxyType
    - Set → frozenset
    - anything else → as-is
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        value = getattr(self, "_" + name)
        if isinstance(value, tuple | frozenset):
            return value
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            return tuple(value)
        if isinstance(value, Mapping):
            return MappingProxyType(value)
        if isinstance(value, Set):
            return frozenset(value)
        return value

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Ordinal label of a 1-based token position, spelled out up to ten.
    """
    words = {
        1: "first",
        2: "second",
        3: "third",
        4: "fourth",
        5: "fifth",
        6: "sixth",
        7: "seventh",
        8: "eighth",
        9: "ninth",
        10: "tenth",
    }
    if number in words:
        return words[number]
    if number % 100 in (11, 12, 13):
        return "%dth" % number
    return "%d%s" % (number, {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th"))


def typename(descriptor, /):
    """
    Return a short label for a type descriptor, used in fault messages.

    - plain classes → their __qualname__ ("int", "Path", "Color")
    - None / NoneType → "None"
    - unions → members joined with " | "
    - subscripted generics and other typing constructs → repr() without the
      "typing." prefix
    """
    if descriptor is None or descriptor is type(None):
        return "None"
    if typing.get_origin(descriptor) in (typing.Union, types.UnionType):
        return " | ".join(map(typename, typing.get_args(descriptor)))
    if isinstance(descriptor, type) and not typing.get_args(descriptor):
        return descriptor.__qualname__
    return repr(descriptor).replace("typing.", "")


Unset = UnsetType()


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
    "typename",

    # Types
    "UnsetType",

    # Singletons
    "Unset",
)
