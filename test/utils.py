"""
Tests for the shared helpers.

This module verifies:
- Unset: singleton identity, falsy semantics, pickling, finality.
- coalesce(): only Unset is replaced.
- rename() and mirror(): generated callables and read-only views.
- ordinal() and typename(): labels used by fault messages.
"""
import copy
import pickle
import typing
import unittest
from pathlib import Path
from threading import Thread, Lock
from types import MappingProxyType
from typing import NamedTuple
from unittest import TestCase

from argosy.utils import *


class Pair(NamedTuple):
    left: int
    right: int


class Holder:
    items = mirror("items")
    pair = mirror("pair")
    table = mirror("table")
    tags = mirror("tags")
    label = mirror("label")

    def __init__(self):
        self._items = [1, 2]
        self._pair = Pair(1, 2)
        self._table = {"a": 1}
        self._tags = {"x"}
        self._label = "plain"


class UnsetTest(TestCase):
    """
    Test suite for the `Unset` sentinel.
    """

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)

    def testFalsy(self):
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertEqual(repr(Unset), "Unset")

    def testCopyAndPickle(self):
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testThreadSafety(self):
        seen, lock = set(), Lock()

        def worker():
            with lock:
                seen.add(id(UnsetType()))

        threads = [Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(seen, {id(Unset)})

    def testFinal(self):
        with self.assertRaises(TypeError):
            class Subclass(UnsetType):
                pass


class HelpersTest(TestCase):
    """
    Test suite for coalesce(), rename() and mirror().
    """

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        for value in (None, 0, "", []):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "fallback"), value)

    def testRename(self):
        @rename("stable")
        def generated():
            pass

        self.assertEqual(generated.__name__, "stable")
        self.assertEqual(generated.__qualname__, "stable")
        with self.assertRaises(TypeError):
            rename(len, "length")
        with self.assertRaises(TypeError):
            rename(1, 2, 3)

    def testMirrorViews(self):
        holder = Holder()
        self.assertEqual(holder.items, (1, 2))
        self.assertIsInstance(holder.table, MappingProxyType)
        self.assertEqual(holder.tags, frozenset({"x"}))
        self.assertEqual(holder.label, "plain")
        with self.assertRaises(AttributeError):
            holder.label = "changed"

    def testMirrorKeepsTuples(self):
        holder = Holder()
        self.assertIsInstance(holder.pair, Pair)
        self.assertIs(holder.pair, holder._pair)
        self.assertEqual(holder.pair.right, 2)


class LabelsTest(TestCase):
    """
    Test suite for ordinal() and typename().
    """

    def testOrdinalWords(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")

    def testOrdinalSuffixes(self):
        for number, label in ((11, "11th"), (12, "12th"), (21, "21st"), (22, "22nd"), (23, "23rd"), (113, "113th")):
            with self.subTest(number=number):
                self.assertEqual(ordinal(number), label)

    def testTypename(self):
        self.assertEqual(typename(int), "int")
        self.assertEqual(typename(Path), "Path")
        self.assertEqual(typename(None), "None")
        self.assertEqual(typename(int | None), "int | None")
        self.assertEqual(typename(typing.Optional[str]), "str | None")
        self.assertEqual(typename(list[int]), "list[int]")
        self.assertEqual(typename(typing.Literal["a"]), "Literal['a']")


if __name__ == "__main__":
    unittest.main()
