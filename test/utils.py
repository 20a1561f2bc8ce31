"""
Tests for the shared helpers.

This module verifies:
- The Unset sentinel: singleton identity, falsy semantics, representation,
  union support and finality.
- coalesce(), rename() and mirror() behavior.
- Command path normalization and ordinal labels.
"""
import copy
import unittest
from unittest import TestCase

from helmsman.utils import *


class UnsetTest(TestCase):
    def testSingleton(self) -> None:
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testFalsy(self) -> None:
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertNotEqual(Unset, None)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testUnion(self) -> None:
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("x", str | Unset))
        self.assertFalse(isinstance(1, str | Unset))

    def testFinal(self) -> None:
        with self.assertRaises(TypeError):
            class Subclass(UnsetType): ...


class HelperTest(TestCase):
    def testCoalesceOnlyReplacesUnset(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        for value in (None, 0, "", []):
            self.assertIs(coalesce(value, "fallback"), value)

    def testRename(self) -> None:
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__name__, "decorated")

        with self.assertRaises(TypeError):
            rename(1, "x")
        with self.assertRaises(TypeError):
            rename()

    def testMirrorReturnsCopies(self) -> None:
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = ["a", {"b": ["c"]}]

        holder = Holder()
        holder.items.append("z")
        holder.items[1]["b"].append("z")
        self.assertEqual(holder.items, ["a", {"b": ["c"]}])
        with self.assertRaises(AttributeError):
            holder.items = []

    def testNormalize(self) -> None:
        self.assertEqual(normalize("  server   start "), "server start")
        self.assertEqual(normalize("remote\tadd"), "remote add")
        self.assertEqual(normalize("   "), "")
        with self.assertRaises(TypeError):
            normalize(["server"])

    def testOrdinal(self) -> None:
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(103), "103rd")


if __name__ == '__main__':
    unittest.main()
