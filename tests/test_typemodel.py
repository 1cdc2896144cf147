#!/usr/bin/env python3
"""
Unit tests for the generics-aware type model.
"""

import unittest
from abc import ABC, abstractmethod
from typing import Annotated, Generic, Protocol, TypeVar

from izumi.bridge import MetadataUnavailableError, TypeIntrospector, TypeRef, Visibility
from izumi.bridge.typemodel import TypeParam, type_ref

T = TypeVar("T")


class Base(Generic[T]):
    pass


class Repo(Base[T]):
    pass


class Foo:
    pass


class FooRepo(Repo[Foo]):
    pass


class Greeter(Protocol):
    def greet(self) -> str: ...


class Store(ABC):
    @abstractmethod
    def load(self) -> str: ...


class Outer:
    class _Inner:
        pass


class TestDescriptors(unittest.TestCase):
    """Test describing host classes."""

    def test_descriptors_are_cached(self):
        self.assertIs(TypeIntrospector.describe(Foo), TypeIntrospector.describe(Foo))

    def test_type_parameters_and_bases(self):
        repo = TypeIntrospector.describe(Repo)

        self.assertEqual(repo.params, (TypeParam("T"),))
        self.assertEqual(repo.bases, (TypeRef(TypeIntrospector.describe(Base), (TypeParam("T"),)),))

    def test_generic_machinery_is_not_a_base(self):
        self.assertEqual(TypeIntrospector.describe(Base).bases, ())
        self.assertEqual(TypeIntrospector.describe(Foo).bases, ())

    def test_interfaces(self):
        self.assertTrue(TypeIntrospector.describe(Greeter).is_interface)
        self.assertTrue(TypeIntrospector.describe(Store).is_interface)
        self.assertFalse(TypeIntrospector.describe(Foo).is_interface)

    def test_visibility_from_name(self):
        self.assertEqual(Visibility.of_name("Service"), Visibility.PUBLIC)
        self.assertEqual(Visibility.of_name("_Service"), Visibility.PACKAGE)
        self.assertEqual(Visibility.of_name("__Service"), Visibility.PRIVATE)

    def test_nested_class_records_enclosing_class(self):
        inner = TypeIntrospector.describe(Outer._Inner)

        self.assertEqual(inner.visibility, Visibility.PACKAGE)
        self.assertEqual(inner.declaring, TypeIntrospector.describe(Outer))
        self.assertEqual(list(inner.nesting_chain()), [inner, TypeIntrospector.describe(Outer)])

    def test_synthetic_proxy_classes(self):
        proxy = type("Foo$$Proxy", (Foo,), {})
        marked = type("MarkedProxy", (Foo,), {"__synthetic_proxy__": True})

        self.assertTrue(TypeIntrospector.describe(proxy).synthetic)
        self.assertTrue(TypeIntrospector.describe(marked).synthetic)
        self.assertFalse(TypeIntrospector.describe(Foo).synthetic)

    def test_non_class_is_rejected(self):
        with self.assertRaises(MetadataUnavailableError):
            TypeIntrospector.describe(42)


class TestTypeRefs(unittest.TestCase):
    """Test type expressions and substitution."""

    def test_generic_alias(self):
        ref = type_ref(Repo[Foo])

        self.assertEqual(ref.descriptor, TypeIntrospector.describe(Repo))
        self.assertEqual(ref.args, (type_ref(Foo),))
        self.assertTrue(ref.is_parameterized)
        self.assertEqual(ref.raw, type_ref(Repo))

    def test_annotated_is_unwrapped(self):
        self.assertEqual(type_ref(Annotated[Foo, "primary"]), type_ref(Foo))

    def test_bindings_and_substitution(self):
        ref = type_ref(Repo[Foo])
        base = TypeRef(TypeIntrospector.describe(Base), (TypeParam("T"),))

        self.assertEqual(ref.bindings(), {"T": type_ref(Foo)})
        self.assertEqual(base.substitute(ref.bindings()), type_ref(Base[Foo]))
        self.assertEqual(base.free_params(), {"T"})

    def test_supertype_as_seen_from_subtype(self):
        ref = type_ref(FooRepo)

        self.assertEqual(ref.supertype_of(TypeIntrospector.describe(Base)), type_ref(Base[Foo]))
        self.assertEqual(ref.supertype_of(TypeIntrospector.describe(Repo)), type_ref(Repo[Foo]))
        self.assertIsNone(ref.supertype_of(TypeIntrospector.describe(Foo)))

    def test_forward_references_are_unavailable(self):
        ref = type_ref("Missing")

        self.assertFalse(ref.is_available())
        self.assertFalse(TypeRef(TypeIntrospector.describe(Base), (ref,)).is_available())
        self.assertTrue(type_ref(Base[Foo]).is_available())

    def test_type_name(self):
        self.assertEqual(type_ref(Repo[Foo]).type_name, f"{__name__}.Repo[{__name__}.Foo]")
        self.assertEqual(str(type_ref(Repo[Foo])), "Repo[Foo]")

    def test_unsupported_forms(self):
        with self.assertRaises(MetadataUnavailableError):
            type_ref(42)


if __name__ == "__main__":
    unittest.main()
