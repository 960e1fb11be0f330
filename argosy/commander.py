"""
Argosy command table: map names to bindings and dispatch calls.

What this module provides
- Commander: a thin registry over Binding.
  • register(name, callback, *resolvers) / @commander.command(...) build and store
    a Binding; per-command resolvers take priority over the commander's own.
  • call(context, name, tokens) delegates to the binding, reporting an
    UnknownCommandError (with a close-match suggestion) on a lookup miss.
  • invoke(prompt) is the front-end convenience: the prompt is a shell-like string
    (split with shlex), an iterable of tokens, or sys.argv[1:] when omitted; the
    first token names the command. Faults are surfaced through trigger() using
    the commander's shell/fancy/colorful/deferred flags.

Quick example
    >>> commands = Commander()
    >>> @commands.command
    ... def add(*numbers: int) -> int:
    ...     return sum(numbers)
    ...
    >>> commands.invoke("add 1 2 3")
    (6,)
"""
import difflib
import re
import shlex
import sys
from collections.abc import Iterable

from .binding import Binding, CallResult
from .context import Context
from .faults import *
from .resolvers import Resolver
from .utils import *


class Commander:
    """
    Registry of named bindings.

    Fields (read-only)
    - name: program name used in rendered faults.
    - resolvers: commander-wide resolvers appended after per-command ones.
    - commands: mapping of command name → Binding.
    - shell, fancy, colorful, deferred: presentation flags used by invoke().
    """
    name = mirror("name")
    resolvers = mirror("resolvers")
    commands = mirror("commands")
    shell = mirror("shell")
    fancy = mirror("fancy")
    colorful = mirror("colorful")
    deferred = mirror("deferred")

    def __init__(self, *resolvers, name=Unset, shell=False, fancy=False, colorful=False, deferred=False):
        for resolver in resolvers:
            if not isinstance(resolver, Resolver):
                raise TypeError("commander resolvers must be resolver instances")
        self._name = coalesce(name, "argosy")
        self._resolvers = resolvers
        self._commands = {}
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._deferred = bool(deferred)

    def register(self, name, callback, /, *resolvers):
        """
        Bind `callback` and store it under `name`.

        Raises
        - TypeError/ValueError: invalid or already registered name.
        - NotCallableError/UnboundedTailError: from the binding construction.
        """
        if not isinstance(name, str):
            raise TypeError("command name must be a string")
        elif not re.fullmatch(r"\S+", name):
            raise ValueError("command name must be a non-empty string without whitespace")
        elif name in self._commands:
            raise ValueError(f"command name {name!r} is already in use")
        binding = Binding(callback, *resolvers, *self._resolvers, name=name)
        self._commands[name] = binding
        return binding

    def command(self, source=Unset, /, *resolvers):
        """
        Decorator form of register().

        - @commander.command                      → name from the function's __name__
        - @commander.command("name", resolver...) → explicit name
        - @commander.command(resolver, ...)       → __name__ plus resolvers
        """
        @rename("command")
        def wrapper(callback, /, name=Unset, resolvers=resolvers):
            return self.register(coalesce(name, getattr(callback, "__name__", Unset)), callback, *resolvers)

        if isinstance(source, str):
            return lambda callback: wrapper(callback, source)
        if isinstance(source, Resolver):
            return lambda callback: wrapper(callback, resolvers=(source, *resolvers))
        if source is Unset:
            return wrapper
        return wrapper(source)

    def unregister(self, name, /):
        self._commands.pop(name, None)

    def _unknown(self, name, /):
        suggestion = next(iter(difflib.get_close_matches(name, self._commands, n=1)), None)
        hint = "did you mean %r?" % suggestion if suggestion else (
            "available commands: %s" % ", ".join(sorted(self._commands)) if self._commands else "no command is registered"
        )
        return UnknownCommandError(
            "unknown command: %s" % name,
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            name=name,
            suggestion=suggestion,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_COMMAND),
        )

    def call(self, context, name, tokens=(), /):
        """
        Look up `name` and delegate the call to its binding.
        """
        try:
            binding = self._commands[name]
        except KeyError:
            return CallResult((), self._unknown(name))
        return binding.call(context, tokens)

    def invoke(self, prompt=Unset, /, context=Unset):
        """
        Run one command from a prompt and surface its fault, if any.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.
          The first token is the command name.
        - context: Context | Unset (a fresh Context when Unset)

        Returns
        - the outputs tuple; when a fault was triggered in shell+deferred mode, ().

        Raises
        - the fault itself outside shell mode (see trigger()).
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
        else:
            raise TypeError("invoke() argument must be a string or an iterable of strings")

        if not tokens:
            result = CallResult((), self._unknown(""))
        else:
            result = self.call(coalesce(context, Context()), tokens[0], tokens[1:])

        if result.error is not None:
            trigger(
                result.error,
                prog=self._name,
                shell=self._shell,
                fancy=self._fancy,
                colorful=self._colorful,
                deferred=self._deferred,
            )
        return result.outputs

    def __contains__(self, name, /):
        return name in self._commands

    def __getitem__(self, name, /):
        return self._commands[name]

    def __iter__(self):
        return iter(self._commands)

    def __len__(self):
        return len(self._commands)

    def __repr__(self):
        return f"commander(name={self._name!r}, commands={sorted(self._commands)!r})"

    def __rich_repr__(self):
        yield "name", self._name
        yield "commands", self.commands
        yield "shell", self._shell
        yield "fancy", self._fancy
        yield "colorful", self._colorful
        yield "deferred", self._deferred


__all__ = (
    "Commander",
)
