"""
Argosy binding layer: build a binding plan once, call it many times.

What this module provides
- Binding: the immutable, per-callable binding plan.
  • Built at registration time from the callable's signature and annotations:
    one ResolverBinding per fixed parameter and, for *args, one tail binding.
  • Binding.call(context, tokens) runs the invocation engine and returns a
    CallResult; faults never escape the call boundary.
  • Calling the binding directly forwards to the wrapped callable unchanged.

- bind(...): create a Binding, or a decorator producing one.
- ResolverBinding: (name, type, resolver, keyword) for one parameter.
- CallResult: (outputs, error) named tuple with unwrap().

Signature rules
- positional(-only) parameters are bound in order, then keyword-only ones (passed
  by keyword); *args becomes the variadic tail; **kwargs is never bound.
- unannotated parameters are strings; parameter defaults are ignored (every fixed
  parameter is always resolved).
- declared outputs come from the return annotation: None → 0, tuple[A, B] → 2,
  anything else → 1; without annotation a None result counts as no output.

Call algorithm
1. arity check (exact, or a floor of `required - 1` tokens when variadic)
2. fixed resolvers in order, short-circuit on the first fault
3. the tail resolver while tokens remain
4. invoke, 5. map outputs (trailing exception → RuntimeFaultError)
Any other exception raised during 2–4 becomes a RuntimeFaultError.

Quick example
    >>> @bind
    ... def add(*numbers: int) -> int:
    ...     return sum(numbers)
    ...
    >>> add.call(Context(), ["1", "2", "3"])
    CallResult(outputs=(6,), error=None)
"""
import functools
import inspect
import operator
import re
import typing
from collections.abc import Iterable
from inspect import Parameter, Signature
from types import NoneType
from typing import NamedTuple

from .context import Context, ResolverContext
from .faults import *
from .resolvers import Resolver, find_resolver
from .utils import *


class ResolverBinding(NamedTuple):
    """
    A resolver bound to the exact type of one parameter.
    """
    name: str
    type: typing.Any
    resolver: Resolver
    keyword: bool = False

    @property
    def requires_arg(self):
        return self.resolver.requires_arg(self.type)

    def resolve(self, context, /):
        return self.resolver.resolve(self.type, context)


class CallResult(NamedTuple):
    """
    Outcome of one call: the callable's outputs plus at most one classified fault.
    """
    outputs: tuple
    error: BindingException | None = None

    @property
    def ok(self):
        return self.error is None

    def unwrap(self):
        """
        Return the outputs, or raise the fault (with its cause chained).
        """
        if self.error is not None:
            raise self.error
        return self.outputs


class BindingType(type):
    """
    Metaclass giving bindings stable __repr__/__rich_repr__ and read-only fields.

    - every name listed in __introspectable__ becomes a read-only property
      mirroring the private "_{name}" field (see mirror()).
    - __typename__ is derived from the class name ("Binding" → "binding").
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                if name != "callback":
                    yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _evaluated(target, /):
    """
    Annotations of `target` evaluated one by one; a string naming something that
    is not defined in the target's module stays a string.
    """
    try:
        annotations = inspect.get_annotations(target)
    except (NameError, TypeError):
        return {}
    namespace = getattr(inspect.unwrap(target), "__globals__", {})
    hints = {}
    for name, annotation in annotations.items():
        if isinstance(annotation, str):
            try:
                annotation = eval(annotation, namespace)
            except (NameError, AttributeError, SyntaxError, TypeError):
                pass
        hints[name] = NoneType if annotation is None else annotation
    return hints


def _hints(callback, /):
    """
    Resolved annotations of a callable; classes, partials and callable objects are
    inspected through __init__, func and __call__. When some forward reference
    cannot be resolved, the others are still evaluated individually.
    """
    if isinstance(callback, type):
        target = callback.__init__
    elif isinstance(callback, functools.partial):
        target = callback.func
    elif inspect.isroutine(callback):
        target = callback
    else:
        target = type(callback).__call__
    try:
        hints = typing.get_type_hints(target)
    except (NameError, TypeError, AttributeError):
        hints = _evaluated(target)
    # A class produces its instance, whatever __init__ declares.
    if isinstance(callback, type):
        hints["return"] = Signature.empty
    return hints


def _outputs(annotation, /):
    """
    Number of declared outputs for a return annotation (Unset when undeclared).
    """
    if annotation is Signature.empty:
        return Unset
    if annotation is None or annotation is NoneType or annotation in (typing.NoReturn, typing.Never):
        return 0
    if typing.get_origin(annotation) is tuple and Ellipsis not in (arguments := typing.get_args(annotation)):
        return len(arguments)
    return 1


def _process_callback(cls, metadata, resolvers, /):
    """
    Build the resolver assignment for every parameter of metadata["callback"].

    Fills metadata with
    - inputs: list[ResolverBinding] for fixed parameters (positional, then keyword-only)
    - variadic: ResolverBinding | None for the *args tail
    - required: count of token-consuming resolvers (tail included)
    - outputs: declared output count (Unset when the return is unannotated)
    - signature: the inspected signature
    """
    callback = metadata["callback"]
    target = metadata["name"]
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError) as exception:
        raise NotCallableError(
            f"{cls.__typename__} target {target!r} cannot be introspected",
            title="not introspectable",
            code=FaultCode.NOT_CALLABLE,
            target=callback,
            error=exception,
            hint="wrap the callable in a plain function with a python signature",
            docs=getdoc(FaultCode.NOT_CALLABLE),
        ) from exception
    hints = _hints(callback)

    positionals, keywords, variadic = [], [], None
    for parameter in signature.parameters.values():
        if parameter.kind is Parameter.VAR_KEYWORD:
            trigger(IgnoredKeywordsWarning(
                f"{cls.__typename__} target {target!r} never receives **{parameter.name}",
                title="ignored keywords",
                code=FaultCode.IGNORED_KEYWORDS,
                target=callback,
                parameter=parameter.name,
                hint="tokens are only bound to named and *args parameters",
                docs=getdoc(FaultCode.IGNORED_KEYWORDS),
            ))
            continue
        if parameter.default is not Parameter.empty:
            trigger(IgnoredDefaultWarning(
                f"{cls.__typename__} target {target!r} parameter {parameter.name!r} default is never used",
                title="ignored default",
                code=FaultCode.IGNORED_DEFAULT,
                target=callback,
                parameter=parameter.name,
                hint="every parameter is resolved on each call; drop the default",
                docs=getdoc(FaultCode.IGNORED_DEFAULT),
            ))

        annotation = hints.get(parameter.name, parameter.annotation)
        if annotation is Parameter.empty:
            annotation = str
        resolver = find_resolver(annotation, resolvers)

        match parameter.kind:
            case Parameter.VAR_POSITIONAL:
                variadic = ResolverBinding(parameter.name, annotation, resolver)
            case Parameter.KEYWORD_ONLY:
                keywords.append(ResolverBinding(parameter.name, annotation, resolver, keyword=True))
            case _:
                positionals.append(ResolverBinding(parameter.name, annotation, resolver))

    if variadic is not None and not variadic.requires_arg:
        raise UnboundedTailError(
            f"{cls.__typename__} target {target!r} tail *{variadic.name} would never consume a token",
            title="unbounded tail",
            code=FaultCode.UNBOUNDED_TAIL,
            target=callback,
            parameter=variadic.name,
            type=variadic.type,
            resolver=variadic.resolver,
            hint="annotate *%s with a token-consuming type or resolver" % variadic.name,
            docs=getdoc(FaultCode.UNBOUNDED_TAIL),
        )

    inputs = positionals + keywords
    metadata["inputs"] = inputs
    metadata["variadic"] = variadic
    metadata["required"] = sum(binding.requires_arg for binding in inputs) + (variadic is not None)
    metadata["outputs"] = _outputs(hints.get("return", signature.return_annotation))
    metadata["signature"] = signature


def _sanitized(tokens, /):
    """
    Snapshot a token iterable into a tuple, validating element types.
    """
    if isinstance(tokens, str) or not isinstance(tokens, Iterable):
        raise TypeError("call() tokens must be an iterable of strings")
    tokens = tuple(tokens)
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError("call() tokens must be an iterable of strings")
    return tokens


class Binding(metaclass=BindingType):
    """
    Immutable binding plan of one callable.

    Fields (read-only)
    - name: display name (defaults to the callable's __name__).
    - callback: the wrapped callable (never mutated).
    - inputs: ResolverBindings for fixed parameters, in resolution order.
    - variadic: ResolverBinding of the *args tail, or None.
    - required: token-consuming resolvers, tail included.
    - outputs: declared output count, or Unset when inferred from the result.

    Invariants
    - len(inputs) equals the number of fixed parameters.
    - variadic is set iff the callable declares *args, and its resolver consumes tokens.

    Concurrency
    - A Binding holds no per-call state: every call() builds its own ResolverContext,
      so one binding may be called from several threads at once.
    """
    __introspectable__ = (
        "name",
        "callback",
        "inputs",
        "variadic",
        "required",
        "outputs",
    )

    def __new__(cls, callback, /, *resolvers, name=Unset):
        if not callable(callback):
            raise NotCallableError(
                f"{cls.__typename__} target must be callable, not {type(callback).__name__}",
                title="not a function",
                code=FaultCode.NOT_CALLABLE,
                target=callback,
                hint="register a function, method, class or object implementing __call__",
                docs=getdoc(FaultCode.NOT_CALLABLE),
            )
        for resolver in resolvers:
            if not isinstance(resolver, Resolver):
                raise TypeError(f"{cls.__typename__} resolvers must be resolver instances")
        if not isinstance(name, str | UnsetType):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")

        metadata = {
            "callback": callback,
            "name": coalesce(name, getattr(callback, "__name__", type(callback).__name__)),
        }
        _process_callback(cls, metadata, resolvers)

        self = super().__new__(cls)
        self.__signature__ = metadata.pop("signature")
        self.__wrapped__ = callback
        self.__doc__ = inspect.getdoc(callback)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def __call__(self, *args, **kwargs):
        return self._callback(*args, **kwargs)

    def _check(self, tokens, /):
        """
        Arity check; returns the fault (or None) instead of raising.
        """
        if self._variadic is not None and len(tokens) < self._required - 1:
            want = self._required - 1
            message = "expected at least %d token(s), got %d" % (want, len(tokens))
            hint = "pass %d or more tokens" % want
        elif self._variadic is None and len(tokens) != self._required:
            want = self._required
            message = "expected %d token(s), got %d" % (want, len(tokens))
            hint = "pass exactly %d token(s)" % want
        else:
            return None
        return ArityMismatchError(
            message,
            title="arity mismatch",
            code=FaultCode.ARITY_MISMATCH,
            want=want,
            got=len(tokens),
            variadic=self._variadic is not None,
            hint=hint,
            docs=getdoc(FaultCode.ARITY_MISMATCH),
        )

    def _fault(self, exception, phase, /, outputs=()):
        return RuntimeFaultError(
            "%s %s: %s" % (self._name, phase, exception),
            title="runtime fault",
            code=FaultCode.RUNTIME_FAULT,
            error=exception,
            outputs=outputs,
            hint="check the %r implementation and its resolvers" % self._name,
            docs=getdoc(FaultCode.RUNTIME_FAULT),
        )

    def _map(self, result, /):
        """
        Turn the callable's return value into the output tuple and classify it.
        """
        match self._outputs:
            case 0:
                outputs = ()
            case 1:
                outputs = (result,)
            case UnsetType():
                outputs = () if result is None else (result,)
            case count:
                if not isinstance(result, tuple) or len(result) != count:
                    return CallResult((), self._fault(
                        TypeError("declared %d outputs but returned %r" % (count, result)), "returned a malformed result"
                    ))
                outputs = result
        if outputs and isinstance(outputs[-1], Exception):
            return CallResult(outputs, self._fault(outputs[-1], "reported an error", outputs))
        return CallResult(outputs)

    def call(self, context=Unset, tokens=(), /):
        """
        Resolve every parameter from (context, tokens), invoke, and classify.

        Parameters
        - context: Context | Unset
          ambient context handed to context resolvers (a fresh one when Unset/None).
        - tokens: Iterable[str]
          flat token sequence; it is snapshotted and never mutated.

        Returns
        - CallResult(outputs, error): error is None on success, otherwise one of
          ArityMismatchError, ArgConversionError, ArgsExhaustedError, RuntimeFaultError.

        Raises
        - TypeError: only for programming errors (tokens not strings, context not a Context).
        """
        tokens = _sanitized(tokens)
        context = Context() if context is Unset or context is None else context
        state = ResolverContext(context, tokens)

        if (fault := self._check(tokens)) is not None:
            return CallResult((), fault)

        args, kwargs = [], {}
        try:
            for binding in self._inputs:
                value = binding.resolve(state)
                if binding.keyword:
                    kwargs[binding.name] = value
                else:
                    args.append(value)
            if self._variadic is not None:
                while not state.exhausted:
                    args.append(self._variadic.resolve(state))
        except BindingException as fault:
            return CallResult((), fault)
        except Exception as exception:
            return CallResult((), self._fault(exception, "failed while resolving arguments"))

        try:
            result = self._callback(*args, **kwargs)
        except Exception as exception:
            return CallResult((), self._fault(exception, "raised"))

        return self._map(result)


def bind(source=Unset, /, *resolvers, name=Unset):
    """
    Create a Binding or return a decorator to build it later.

    Invocation modes
    - Direct:     binding = bind(func, resolver, ..., name="x")
    - Decorator:  @bind / @bind(resolver, ..., name="x")

    Raises
    - NotCallableError: the target is not callable (or has no introspectable signature).
    - UnboundedTailError: the *args tail resolver would not consume tokens.
    """
    @rename("bind")
    def wrapper(source, /):
        return Binding(source, *resolvers, name=name)

    if source is Unset or isinstance(source, Resolver):
        if source is not Unset:
            resolvers = (source, *resolvers)
        return wrapper
    return wrapper(source)


__all__ = (
    "Binding",
    "ResolverBinding",
    "CallResult",
    "bind",
)
