"""
Invocation engine behavioral tests (Binding.call).

Scope
- Validate the arity check (exact and variadic floor) before any resolver runs.
- Validate resolution order, short-circuit on the first fault, and containment of
  failures raised by resolvers or by the callable itself.
- Validate output mapping, including a trailing error value.
- Validate the programming-error contract (TypeError) and that calls share no state.

Conventions
- Test method names follow CamelCase per project convention.
- Every call passes an explicit Context unless the test is about the default.
"""
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest import TestCase

from argosy import (
    bind,
    CallResult,
    Context,
    Resolver,
    from_token,
    from_context,
    resolve_string,
    ArityMismatchError,
    ArgConversionError,
    ArgsExhaustedError,
    RuntimeFaultError,
    FaultCode,
)


class Pair:
    def __init__(self, left, right):
        self.left = left
        self.right = right


class Greedy(Resolver):
    """Consumes two tokens while declaring one."""

    def can_resolve(self, type, /):
        return type is Pair

    def requires_arg(self, type, /):
        return True

    def resolve(self, type, context, /):
        return Pair(context.next_arg(), context.next_arg())


@bind
def add(*numbers: int) -> int:
    return sum(numbers)


@bind
def concat(a: str, b: str) -> str:
    return a + b


class TestArity(TestCase):
    """Token counts are checked before resolution."""

    def testVariadicSum(self):
        self.assertEqual(add.call(Context(), ["1", "2", "3"]), CallResult((6,), None))

    def testVariadicAcceptsNoTokens(self):
        self.assertEqual(add.call(Context(), []), CallResult((0,), None))

    def testExactCountMismatch(self):
        result = concat.call(Context(), ["x"])
        self.assertEqual(result.outputs, ())
        self.assertIsInstance(result.error, ArityMismatchError)
        self.assertEqual((result.error.want, result.error.got, result.error.variadic), (2, 1, False))
        self.assertEqual(result.error.options["code"], FaultCode.ARITY_MISMATCH)

    def testTooManyTokens(self):
        result = concat.call(Context(), ["x", "y", "z"])
        self.assertEqual((result.error.want, result.error.got), (2, 3))

    def testVariadicFloor(self):
        @bind
        def tail(a: int, b: int, *rest: int) -> int:
            return a + b + sum(rest)

        result = tail.call(Context(), ["1"])
        self.assertIsInstance(result.error, ArityMismatchError)
        self.assertEqual((result.error.want, result.error.got, result.error.variadic), (2, 1, True))
        self.assertIn("at least 2", str(result.error))
        self.assertEqual(tail.call(Context(), ["1", "2"]).outputs, (3,))
        self.assertEqual(tail.call(Context(), ["1", "2", "3", "4"]).outputs, (10,))

    def testContextOnlyCallableNeedsNoTokens(self):
        @bind
        def whoami(context: Context) -> str:
            return context.value("user")

        self.assertEqual(whoami.call(Context(user="ana"), []).outputs, ("ana",))
        self.assertIsInstance(whoami.call(Context(), ["extra"]).error, ArityMismatchError)


class TestResolution(TestCase):
    """Resolvers run in order and the first fault wins."""

    def testConcatenation(self):
        self.assertEqual(concat.call(Context(), ["a", "b"]).outputs, ("ab",))

    def testConversionFailure(self):
        result = add.call(Context(), ["1", "a"])
        self.assertEqual(result.outputs, ())
        self.assertIsInstance(result.error, ArgConversionError)
        self.assertEqual(result.error.arg, "a")
        self.assertEqual(result.error.index, 2)
        self.assertIs(result.error.target, int)

    def testCustomResolverChangesValue(self):
        doubling = from_token(lambda arg: arg * 2, type=str)
        self.assertEqual(bind(concat.callback, doubling).call(Context(), ["a", "b"]).outputs, ("aabb",))

    def testKeywordOnlyParameter(self):
        @bind
        def scale(value: float, *, factor: int) -> float:
            return value * factor

        self.assertEqual(scale.call(Context(), ["1.5", "2"]).outputs, (3.0,))

    def testContextResolverFeedsParameter(self):
        user = from_context(lambda context: context.value("user"), type=str)

        @bind(user)
        def greet(name: str) -> str:
            return "hello " + name

        self.assertEqual(greet.call(Context(user="ana"), []).outputs, ("hello ana",))

    def testFailingContextResolverIsContained(self):
        @from_context(type=str)
        def broken(context):
            raise LookupError("no user")

        @bind(broken)
        def greet(name: str) -> str:
            return name

        result = greet.call(Context(), [])
        self.assertIsInstance(result.error, RuntimeFaultError)
        self.assertIsInstance(result.error.error, LookupError)

    def testGreedyResolverExhaustsTokens(self):
        @bind(Greedy())
        def join(pair: Pair) -> str:
            return pair.left + pair.right

        result = join.call(Context(), ["only"])
        self.assertIsInstance(result.error, ArgsExhaustedError)
        self.assertEqual(result.error.index, 2)
        self.assertEqual(join.call(Context(), ["a", "b"]).error.__class__, ArityMismatchError)

    def testOptionalStringKeepsWholeToken(self):
        @bind
        def echo(text: str | None) -> str:
            return text

        self.assertIs(echo.inputs[0].resolver, resolve_string)
        self.assertEqual(echo.call(Context(), ["hello world"]).outputs, ("hello world",))

    def testCallerTokensAreNotMutated(self):
        tokens = ["1", "2"]
        add.call(Context(), tokens)
        self.assertEqual(tokens, ["1", "2"])

    def testMissingContextDefaultsToFresh(self):
        @bind
        def cancelled(context: Context) -> bool:
            return context.cancelled

        self.assertEqual(cancelled.call().outputs, (False,))
        self.assertEqual(cancelled.call(None, ()).outputs, (False,))


class TestOutputs(TestCase):
    """Output mapping and runtime faults."""

    def testNoOutputs(self):
        @bind
        def noop(text: str) -> None:
            return None

        self.assertEqual(noop.call(Context(), ["x"]), CallResult((), None))

    def testTupleSpreads(self):
        @bind
        def split(text: str) -> tuple[str, str]:
            head, _, tail = text.partition("=")
            return head, tail

        self.assertEqual(split.call(Context(), ["k=v"]).outputs, ("k", "v"))

    def testTrailingErrorIsReported(self):
        problem = ValueError("bad input")

        @bind
        def check(value: int) -> tuple[int, Exception | None]:
            return value, problem if value < 0 else None

        result = check.call(Context(), ["-1"])
        self.assertIsInstance(result.error, RuntimeFaultError)
        self.assertEqual(result.outputs, (-1, problem))
        self.assertIs(result.error.__cause__, problem)
        self.assertEqual(check.call(Context(), ["1"]), CallResult((1, None), None))

    def testRaisingCallableIsContained(self):
        @bind
        def explode(text: str) -> str:
            raise RuntimeError("boom")

        result = explode.call(Context(), ["x"])
        self.assertEqual(result.outputs, ())
        self.assertIsInstance(result.error, RuntimeFaultError)
        self.assertIsInstance(result.error.error, RuntimeError)
        self.assertEqual(result.error.options["code"], FaultCode.RUNTIME_FAULT)

    def testMalformedTupleIsAFault(self):
        @bind
        def pair(text: str) -> tuple[str, str]:
            return text

        result = pair.call(Context(), ["x"])
        self.assertIsInstance(result.error, RuntimeFaultError)
        self.assertIsInstance(result.error.error, TypeError)

    def testInterruptsAreNotContained(self):
        @bind
        def interrupt() -> None:
            raise KeyboardInterrupt

        with self.assertRaises(KeyboardInterrupt):
            interrupt.call(Context(), [])

    def testUnwrap(self):
        self.assertTrue(add.call(Context(), ["1"]).ok)
        self.assertEqual(add.call(Context(), ["1"]).unwrap(), (1,))
        with self.assertRaises(ArityMismatchError):
            concat.call(Context(), []).unwrap()


class TestProgrammingErrors(TestCase):
    """Misuse raises TypeError instead of producing a CallResult."""

    def testNonStringToken(self):
        with self.assertRaises(TypeError):
            add.call(Context(), [1, 2])

    def testStringInsteadOfTokens(self):
        with self.assertRaises(TypeError):
            add.call(Context(), "1 2")

    def testContextMustBeAContext(self):
        with self.assertRaises(TypeError):
            add.call({"user": "ana"}, ["1"])


class TestConcurrency(TestCase):
    """A binding holds no per-call state."""

    def testParallelCalls(self):
        def run(number):
            return add.call(Context(), [str(number), str(number)]).outputs

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(run, range(64)))
        self.assertEqual(results, [(2 * number,) for number in range(64)])


if __name__ == "__main__":
    unittest.main()
