"""
Argosy resolvers: strategies producing one typed value per parameter.

Overview
- Resolver (abstract): the capability set every strategy implements.
  • can_resolve(type)  → whether this resolver produces values for `type`.
  • requires_arg(type) → whether resolving `type` consumes one token.
  • resolve(type, ctx) → the value (faults are raised as BindingException).

- Built-ins
  • resolve_context: parameters annotated with Context receive the ambient context.
  • resolve_string: parameters annotated with str receive the token unchanged.
  • resolve_anything: fallback for every other type; converts through scan().

- Constructors for collaborators
  • from_token(parse, type=...):   token-consuming resolver, parse(token) -> value.
  • from_context(derive, type=...): context-derived resolver, derive(context) -> value.
  Both accept the produced type explicitly or read it from the return annotation,
  and both work as decorators.

Selection (find_resolver)
- caller-supplied resolvers are scanned in declaration order; the first whose
  can_resolve() answers True wins. Otherwise Context → resolve_context,
  str → resolve_string, anything else → resolve_anything. Custom resolvers can
  therefore override any built-in by being supplied.

Quick example
    >>> @from_token
    ... def shout(arg) -> str:
    ...     return arg.upper()
    ...
    >>> @from_context
    ... def user(context) -> User:
    ...     return context.value("user")
"""
import builtins
import typing
from abc import ABC, abstractmethod
from types import NoneType, UnionType

from .context import Context
from .conversion import scan
from .faults import ArgConversionError, BindingException, FaultCode, getdoc
from .utils import *


def _assignable(produced, target, /):
    """
    Whether values of type `produced` may be bound to a parameter of type `target`.

    bool is not taken as an int here: a flag resolver never claims integer
    parameters.
    """
    if produced == target or target is typing.Any or target is object:
        return True
    if typing.get_origin(target) is typing.Annotated:
        return _assignable(produced, typing.get_args(target)[0])
    if typing.get_origin(target) in (typing.Union, UnionType):
        return any(_assignable(produced, member) for member in typing.get_args(target))
    if isinstance(produced, builtins.type) and isinstance(target, builtins.type):
        try:
            if issubclass(produced, bool) and not issubclass(target, bool):
                return False
            return issubclass(produced, target)
        except TypeError:
            return False
    return False


def _underlying(type, /):
    """
    Strip Annotated metadata and an Optional wrapper ("str | None" → str).
    """
    if typing.get_origin(type) is typing.Annotated:
        return _underlying(typing.get_args(type)[0])
    if typing.get_origin(type) in (typing.Union, UnionType):
        members = [member for member in typing.get_args(type) if member is not NoneType]
        if len(members) == 1:
            return _underlying(members[0])
    return type


class Resolver(ABC):
    """
    Strategy producing a value for one parameter type.

    Subclass this for resolvers needing more than a single function (for example
    a resolver keyed to a whole family of types); from_token() and from_context()
    cover the common cases.
    """

    @abstractmethod
    def can_resolve(self, type, /):
        ...

    @abstractmethod
    def requires_arg(self, type, /):
        ...

    @abstractmethod
    def resolve(self, type, context, /):
        ...


class FunctionResolver(Resolver):
    """
    Resolver backed by a plain function, bound to the single type it produces.

    - consumes=True:  function(token) for the next token (token resolver).
    - consumes=False: function(context) for the ambient context (context resolver).
    """
    __slots__ = ("_function", "_type", "_consumes")

    def __init__(self, function, type, /, *, consumes):
        if not callable(function):
            raise TypeError("resolver function must be callable")
        self._function = function
        self._type = type
        self._consumes = bool(consumes)

    type = mirror("type")
    function = mirror("function")

    def can_resolve(self, type, /):
        return _assignable(self._type, type)

    def requires_arg(self, type, /):
        return self._consumes

    def resolve(self, type, context, /):
        if not self._consumes:
            return self._function(context.context)
        index = context.position
        arg = context.next_arg()
        try:
            return self._function(arg)
        except BindingException:
            raise
        except Exception as exception:
            raise ArgConversionError(
                "failed to convert token %r at %s position to %s" % (arg, ordinal(index), typename(type)),
                title="conversion error",
                code=FaultCode.ARG_CONVERSION_FAILED,
                arg=arg,
                target=type,
                error=exception,
                index=index,
                hint="use a valid %s" % typename(type),
                docs=getdoc(FaultCode.ARG_CONVERSION_FAILED),
            ) from exception

    def __repr__(self):
        kind = "token" if self._consumes else "context"
        name = getattr(self._function, "__qualname__", repr(self._function))
        return f"{kind}-resolver(type={typename(self._type)}, function={name})"

    def __rich_repr__(self):
        yield "type", self._type
        yield "function", self._function
        yield "consumes", self._consumes


class FallbackResolver(Resolver):
    """
    Catch-all resolver: consumes one token and converts it with scan().
    """
    __slots__ = ()

    def can_resolve(self, type, /):
        return True

    def requires_arg(self, type, /):
        return True

    def resolve(self, type, context, /):
        index = context.position
        return scan(context.next_arg(), type, index=index)

    def __repr__(self):
        return "fallback-resolver()"


def _produced(function, type, name, /):
    if type is not Unset:
        return type
    try:
        hints = typing.get_type_hints(function)
    except (NameError, TypeError):
        hints = getattr(function, "__annotations__", {})
    try:
        return hints["return"]
    except KeyError:
        raise TypeError(f"{name}() requires a 'type' or a return annotation on the function") from None


def from_token(parse=Unset, /, type=Unset):
    """
    Build a token-consuming resolver from parse(token) -> value.

    Forms
    - from_token(parse, type=T) / from_token(parse) with `-> T` on parse
    - @from_token / @from_token(type=T)

    Any exception raised by parse (other than a BindingException) surfaces as
    ArgConversionError carrying the consumed token.
    """
    @rename("from_token")
    def wrapper(parse, /):
        return FunctionResolver(parse, _produced(parse, type, "from_token"), consumes=True)

    return wrapper(parse) if parse is not Unset else wrapper


def from_context(derive=Unset, /, type=Unset):
    """
    Build a context-derived resolver from derive(context) -> value.

    Forms
    - from_context(derive, type=T) / from_context(derive) with `-> T` on derive
    - @from_context / @from_context(type=T)

    The resolver never consumes a token.
    """
    @rename("from_context")
    def wrapper(derive, /):
        return FunctionResolver(derive, _produced(derive, type, "from_context"), consumes=False)

    return wrapper(derive) if derive is not Unset else wrapper


resolve_string = from_token(lambda arg: arg, type=str)
resolve_context = from_context(lambda context: context, type=Context)
resolve_anything = FallbackResolver()


def find_resolver(type, resolvers=(), /):
    """
    Pick the resolver for a parameter type: first matching custom resolver, then
    the fixed built-in chain (Context, str, fallback). Annotated metadata and an
    Optional wrapper do not change the built-in choice.
    """
    for resolver in resolvers:
        if resolver.can_resolve(type):
            return resolver
    base = _underlying(type)
    if base is Context:
        return resolve_context
    if base is str:
        return resolve_string
    return resolve_anything


__all__ = (
    "Resolver",
    "FunctionResolver",
    "FallbackResolver",
    "from_token",
    "from_context",
    "find_resolver",
    "resolve_string",
    "resolve_context",
    "resolve_anything",
)
