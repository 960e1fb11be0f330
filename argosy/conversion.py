"""
Argosy conversion: scan a single token into a typed value.

The converter mirrors a formatted-input scanner reading one field:
- leading/trailing whitespace is skipped and the first whitespace-delimited
  field is read; anything after it is ignored.
- the target type directs how the field is parsed.

Supported targets
- bool       1 t T true TRUE True / 0 f F false FALSE False
- int        optional sign, 0b/0o/0x prefixes, leading-zero octal, underscores
- float, complex, Decimal, Fraction: their constructors
- str, Any, object: the field itself; bytes: the UTF-8 encoded field
- Enum       member by name, then by value (converted to the members' value type)
- Literal    the first literal value the field converts to
- unions     each member in declaration order (None members are skipped)
- classes implementing the scanner protocol: cls.__scan__(field)
- any other class: cls(field) (Path, UUID, IPv4Address, ...)

Failure contract
- every exception raised while converting (including faults from a misbehaving
  custom type) is re-raised as ArgConversionError carrying the original token,
  the target descriptor and the underlying error; nothing else escapes scan().
"""
import enum
import re
import typing
from decimal import Decimal
from fractions import Fraction
from types import NoneType, UnionType

from .faults import ArgConversionError, FaultCode, getdoc
from .utils import *

_TRUTHY = frozenset({"1", "t", "T", "true", "TRUE", "True"})
_FALSY = frozenset({"0", "f", "F", "false", "FALSE", "False"})

_OCTAL = re.compile(r"[+-]?0[0-7_]+")


def _field(token):
    """
    Return the first whitespace-delimited field of a token.
    """
    fields = token.split(None, 1)
    if not fields:
        raise EOFError("unexpected end of input")
    return fields[0]


def _scan_bool(field):
    if field in _TRUTHY:
        return True
    if field in _FALSY:
        return False
    raise ValueError(f"syntax error scanning boolean: {field!r}")


def _scan_int(field):
    # A bare leading zero selects octal, as in a C-style scanner.
    if _OCTAL.fullmatch(field):
        return int(field, 8)
    return int(field, 0)


def _scan_enum(field, cls):
    try:
        return cls[field]
    except KeyError:
        pass
    for member in cls:
        kind = type(member.value)
        try:
            if _scan(field, kind) == member.value:
                return member
        except (TypeError, ValueError, ArithmeticError):
            continue
    raise ValueError(f"{field!r} is not a valid {cls.__qualname__}")


def _scan_literal(field, descriptor):
    for literal in typing.get_args(descriptor):
        try:
            if _scan(field, type(literal)) == literal:
                return literal
        except (TypeError, ValueError, ArithmeticError):
            continue
    raise ValueError(f"{field!r} is not one of {typing.get_args(descriptor)!r}")


def _scan_union(field, descriptor):
    errors = []
    for member in typing.get_args(descriptor):
        if member is NoneType:
            continue
        try:
            return _scan(field, member)
        except Exception as exception:
            errors.append(exception)
    raise ExceptionGroup(f"{field!r} matches no member of {typename(descriptor)}", errors)


_SCANNERS = {
    bool: _scan_bool,
    int: _scan_int,
    float: float,
    complex: complex,
    Decimal: Decimal,
    Fraction: Fraction,
    str: str,
    object: str,
    typing.Any: str,
    bytes: str.encode,
}


def _scan(field, descriptor):
    """
    Type-directed parse of one field (no fault wrapping).
    """
    try:
        scanner = _SCANNERS[descriptor]
    except (KeyError, TypeError):
        scanner = None
    if scanner is not None:
        return scanner(field)

    origin = typing.get_origin(descriptor)
    if origin is typing.Literal:
        return _scan_literal(field, descriptor)
    if origin in (typing.Union, UnionType):
        return _scan_union(field, descriptor)
    if origin is typing.Annotated:
        return _scan(field, typing.get_args(descriptor)[0])

    if isinstance(descriptor, type):
        if callable(getattr(descriptor, "__scan__", None)):
            return descriptor.__scan__(field)
        if issubclass(descriptor, enum.Enum):
            return _scan_enum(field, descriptor)
        return descriptor(field)

    raise TypeError(f"can't scan type: {typename(descriptor)}")


def scan(token, descriptor, /, *, index=Unset):
    """
    Convert a token into a value of the given type descriptor.

    Parameters
    - token: str
      the raw token; only its first whitespace-delimited field is read.
    - descriptor: type | typing construct
      the target type (see module docs for supported forms).
    - index: int (keyword-only)
      1-based token position, used to phrase the fault message.

    Raises
    - ArgConversionError: chained from the underlying failure.
    """
    if not isinstance(token, str):
        raise TypeError("scan() token must be a string")
    try:
        return _scan(_field(token), descriptor)
    except Exception as exception:
        where = "" if index is Unset else " at %s position" % ordinal(index)
        raise ArgConversionError(
            "failed to convert token %r%s to %s" % (token, where, typename(descriptor)),
            title="conversion error",
            code=FaultCode.ARG_CONVERSION_FAILED,
            arg=token,
            target=descriptor,
            error=exception,
            index=coalesce(index),
            hint="use a valid %s" % typename(descriptor),
            docs=getdoc(FaultCode.ARG_CONVERSION_FAILED),
        ) from exception


__all__ = (
    "scan",
)
