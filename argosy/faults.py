"""
Argosy faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault the binding
  engine can surface. Codes are grouped by phase (registration, call, registry).
- BindingException / BindingWarning: base types that carry message + options,
  expose their structured fields as attributes, and know how to render
  themselves with rich in a lowercased, actionable tone.
- trigger(): central entry point to surface any fault (raise, or print when shell).
- getdoc(): optional description lookup for a code from the host application.

Error kinds
- NotCallableError      registration target is not invocable.
- UnboundedTailError    a *args tail whose resolver would never consume a token.
- ArityMismatchError    token count does not satisfy the plan (want/got/variadic).
- ArgConversionError    a token could not be converted (arg/target/error).
- ArgsExhaustedError    a token-consuming resolver found the queue empty.
- RuntimeFaultError     the callable failed, or an uncontrolled fault occurred while
                        resolving/invoking (error).
- UnknownCommandError   registry lookup miss (name).

Propagation
- Binding.call() never raises these: they travel back inside the CallResult.
- Causes are kept both as the `error` field and as __cause__ for unwrapping.

Integration
- In non-shell mode trigger() raises exceptions and emits warnings; in shell mode
  they are rendered to stderr via rich (and exceptions exit with status 1).
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, UnsetType, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used by the binding engine (stable identifiers).

    grouping
    - registration (2110x): NOT_CALLABLE, UNBOUNDED_TAIL
    - arity (2111x): ARITY_MISMATCH
    - resolution (2112x): ARG_CONVERSION_FAILED, ARGS_EXHAUSTED
    - runtime (2113x): RUNTIME_FAULT
    - registry (2114x): UNKNOWN_COMMAND
    - warnings (22xxx): IGNORED_DEFAULT, IGNORED_KEYWORDS

    normalize() allows a host to relabel codes while keeping them stable.
    """
    # --- registration errors (21xxx) ---
    NOT_CALLABLE            = 21101
    UNBOUNDED_TAIL          = 21102

    # --- call errors (21xxx) ---
    ARITY_MISMATCH          = 21111
    ARG_CONVERSION_FAILED   = 21121
    ARGS_EXHAUSTED          = 21122
    RUNTIME_FAULT           = 21131

    # --- registry errors (21xxx) ---
    UNKNOWN_COMMAND         = 21141

    # --- warnings (22xxx) ---
    IGNORED_DEFAULT         = 22111
    IGNORED_KEYWORDS        = 22112

    def normalize(self):
        """
        label shown for this code: __main__.__codes__[self] when the host
        defines one, else the number itself.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, /):
    """
    Build the rich renderable shared by exceptions and warnings.

    Palette keys (overridable through __styles__ in __main__)
    - prog-name, code, title, message, hint-arrow, hint
    """
    main = __import__("__main__")
    options = fault.options
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", False)
    fancy = options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style])

    prog = text(getattr(main, "__prog__", options.get("prog", "argosy")), "prog-name")
    code = options.get("code")

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else "?", "code"),
        " | ",
        text(str(options.get("title", type(fault).__name__)).title(), "title"),
        " ]"
    )
    message = text(coalesce(fault.message, ""), "message")
    hint = Text.assemble(text(" → ", "hint-arrow"), text(options.get("hint", ""), "hint"))

    if fancy:
        return Panel(Group(message, hint), title=header, title_align="left")

    return Group(header, message, hint)


class _Fault:
    """
    Message plus read-only options, shared by BindingException and BindingWarning.

    Every name in the class' __fields__ is readable as an attribute (fault.want).
    """
    __fields__ = ()
    __palette__ = {}

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | UnsetType):
            raise TypeError("fault message must be a string")
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __getattr__(self, name, /):
        if name in type(self).__fields__:
            return self.options.get(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __str__(self):
        return coalesce(self.message, "")

    def __rich__(self):
        return _render(self, type(self).__palette__)

    def __replace__(self, /, **overrides):
        return type(self)(self.message, **(dict(self.options) | overrides))

    def __reduce__(self):
        return _rebuild, (type(self), self.message, dict(self.options))


def _rebuild(cls, message, options, /):
    return cls(message, **options)


class BindingException(_Fault, Exception):
    """
    Base type of every error the engine surfaces.

    options carry the presentation fields (code, title, hint, docs), the runtime
    flags merged in by trigger() (shell, fancy, colorful, deferred, prog) and the
    kind-specific fields of the subclass.
    """
    __palette__ = {
        "prog-name": "bold #E6E6F0",
        "code": "bold #00E5FF",
        "title": "bold #FF4DA6",
        "message": "#C8C8D0",
        "hint-arrow": "#9CE19C dim",
        "hint": "italic #9CE19C",
    }

    def __init__(self, message=Unset, /, **options):
        super().__init__(message, **options)
        if isinstance(cause := options.get("error"), BaseException):
            self.__cause__ = cause

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self
        console.print(self)
        if not self.options.get("deferred", False):
            sys.exit(1)


class NotCallableError(BindingException, TypeError):
    __fields__ = ("target",)


class UnboundedTailError(BindingException, TypeError):
    __fields__ = ("target", "parameter", "type", "resolver")


class ArityMismatchError(BindingException):
    """
    the token count does not satisfy the binding.

    fields
    - want: expected count (a floor when variadic).
    - got: supplied count.
    - variadic: whether the binding accepts extra tokens.
    """
    __fields__ = ("want", "got", "variadic")


class ArgConversionError(BindingException, ValueError):
    """
    a token could not be converted to its target type.

    fields
    - arg: the offending token (unmodified).
    - target: the type descriptor the token was converted to.
    - error: the underlying parse failure (also __cause__).
    - index: 1-based token position, when known.
    """
    __fields__ = ("arg", "target", "error", "index")


class ArgsExhaustedError(BindingException):
    __fields__ = ("index",)


class RuntimeFaultError(BindingException):
    """
    the callable reported a failure, or an uncontrolled fault happened during a call.

    fields
    - error: the original exception (also __cause__).
    - outputs: the outputs returned alongside the failure (empty if the callable raised).
    """
    __fields__ = ("error", "outputs")


class UnknownCommandError(BindingException, LookupError):
    __fields__ = ("name", "suggestion")


class BindingWarning(_Fault, ABC, Warning):
    """
    Base type of non-fatal diagnostics emitted at registration time.
    """
    __palette__ = {
        "prog-name": "bold #E6E6F0",
        "code": "bold #FFB400",
        "title": "bold #FFC2E0",
        "message": "#D6D6DE",
        "hint-arrow": "#B8EFAF dim",
        "hint": "italic #B8EFAF",
    }

    def __trigger__(self) -> None:
        if self.options.get("shell", False):
            console.print(self)
        else:
            warnings.warn(self, stacklevel=len(inspect.stack()))


class IgnoredDefaultWarning(BindingWarning):
    __fields__ = ("target", "parameter")


class IgnoredKeywordsWarning(BindingWarning):
    __fields__ = ("target", "parameter")


def trigger(fault, /, **options):
    """
    Surface `fault` after merging `options` into a copy of it.

    Outside shell mode exceptions are raised and warnings go through the warnings
    module; in shell mode both are printed to stderr, and exceptions then exit
    with status 1 unless `deferred` is set. Usual options: shell, fancy, colorful,
    deferred, prog.
    """
    if not callable(getattr(fault, "__trigger__", None)) or not callable(getattr(fault, "__replace__", None)):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    Documentation string registered for `code` in __main__.__docs__, or None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "BindingException",
    "NotCallableError",
    "UnboundedTailError",
    "ArityMismatchError",
    "ArgConversionError",
    "ArgsExhaustedError",
    "RuntimeFaultError",
    "UnknownCommandError",
    "BindingWarning",
    "IgnoredDefaultWarning",
    "IgnoredKeywordsWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
