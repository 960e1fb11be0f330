"""
Argosy contexts: the ambient value carrier and the per-call resolution state.

What this module provides
- Context: an ambient, read-mostly carrier handed to every call by the front-end.
  • Holds arbitrary key/value pairs (context.value(key), context[key]).
  • Derives children with extra values (context.derive(key=value) / with_value()),
    leaving the parent untouched.
  • Cooperative cancellation: cancel() sets a flag that context resolvers may
    observe (cancelled / done). The engine itself never polls it.

- ResolverContext: the short-lived invocation state of one Binding.call().
  • Wraps the ambient Context (attribute/key lookups fall through to it).
  • Holds the immutable token tuple plus a cursor; next_arg() pops front-to-back
    without mutating the caller's sequence.
  • Offers a per-resolver scratch mapping (state) for resolvers that need to
    carry information across parameters of the same call.

Ownership
- A ResolverContext is owned by exactly one in-flight call and is never shared.
- A Context may be shared freely; deriving never mutates the parent.
"""
import threading
from types import MappingProxyType

from .faults import ArgsExhaustedError, FaultCode, getdoc
from .utils import *


class Context:
    """
    Ambient invocation context.

    Values are looked up on the context first, then along its parent chain,
    so a derived context sees everything its ancestors carry. Cancellation
    propagates downwards: cancelling a parent cancels every derived child.
    """
    __slots__ = ("_parent", "_values", "_event")

    def __init__(self, values=(), /, **kwargs):
        self._parent = None
        self._values = dict(values) | kwargs
        self._event = threading.Event()

    @property
    def parent(self):
        return self._parent

    @property
    def values(self):
        """
        Read-only, flattened view of every value visible from this context.
        """
        chain = []
        context = self
        while context is not None:
            chain.append(context._values)
            context = context._parent
        merged = {}
        for values in reversed(chain):
            merged.update(values)
        return MappingProxyType(merged)

    def value(self, key, default=None, /):
        context = self
        while context is not None:
            try:
                return context._values[key]
            except KeyError:
                context = context._parent
        return default

    def derive(self, values=(), /, **kwargs):
        """
        Return a child context carrying additional values.
        """
        child = type(self)(values, **kwargs)
        child._parent = self
        return child

    def with_value(self, key, value, /):
        return self.derive({key: value})

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        context = self
        while context is not None:
            if context._event.is_set():
                return True
            context = context._parent
        return False

    # Alias mirroring the usual "done" wording of cancellable contexts.
    done = cancelled

    def __getitem__(self, key, /):
        context = self
        while context is not None:
            try:
                return context._values[key]
            except KeyError:
                context = context._parent
        raise KeyError(key)

    def __contains__(self, key, /):
        return key in self.values

    def __repr__(self):
        return f"context({", ".join("%s=%r" % item for item in self.values.items())})"

    def __rich_repr__(self):
        for key, value in self.values.items():
            yield str(key), value
        if self.cancelled:
            yield "cancelled", True


class ResolverContext:
    """
    Per-call resolution state (the invocation context).

    Attributes
    - context: the ambient Context of this call.
    - args: the full, immutable token tuple.
    - state: per-resolver scratch mapping (keyed by resolver instance).

    Token access
    - remaining: tuple of tokens not yet consumed.
    - position: 1-based position of the next token (used in fault messages).
    - next_arg(): consume and return the next token; raises ArgsExhaustedError
      when the queue is empty.
    """
    __slots__ = ("context", "args", "state", "_cursor")

    def __init__(self, context, args, /):
        if not isinstance(context, Context):
            raise TypeError("resolver context must wrap a context")
        self.context = context
        self.args = tuple(args)
        self.state = {}
        self._cursor = 0

    @property
    def remaining(self):
        return self.args[self._cursor:]

    @property
    def position(self):
        return self._cursor + 1

    @property
    def exhausted(self):
        return self._cursor >= len(self.args)

    def next_arg(self):
        if self.exhausted:
            raise ArgsExhaustedError(
                "no token left to consume at %s position" % ordinal(self.position),
                title="args exhausted",
                code=FaultCode.ARGS_EXHAUSTED,
                index=self.position,
                hint="the binding consumed more tokens than were supplied",
                docs=getdoc(FaultCode.ARGS_EXHAUSTED),
            )
        arg = self.args[self._cursor]
        self._cursor += 1
        return arg

    def __getattr__(self, name, /):
        # Everything not held by the invocation state falls through to the ambient context.
        if name.startswith("_") or name == "context":
            raise AttributeError(name)
        return getattr(self.context, name)

    def __getitem__(self, key, /):
        return self.context[key]

    def __rich_repr__(self):
        yield "context", self.context
        yield "consumed", self.args[:self._cursor]
        yield "remaining", self.remaining


__all__ = (
    "Context",
    "ResolverContext",
)
