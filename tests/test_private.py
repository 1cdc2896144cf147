#!/usr/bin/env python3
"""
Unit tests for private module scopes.
"""

import unittest
from abc import ABC, abstractmethod

from izumi.bridge import BindingKey, Injector, ModuleDef, NotFoundError, PrivateModuleDef
from izumi.bridge.private import exposed_bindings, extract


class Credentials(ABC):
    @abstractmethod
    def token(self) -> str: ...


class StaticCredentials(Credentials):
    def token(self) -> str:
        return "secret"


class Client:
    def __init__(self, credentials: Credentials):
        self.credentials = credentials


class Cache:
    pass


def client_scope():
    scope = PrivateModuleDef("client-scope")
    scope.make(Credentials).using().type(StaticCredentials)
    scope.make(Client).using().type(Client)
    scope.expose(Client)
    return scope


class TestExposedBindings(unittest.TestCase):
    """Test which bindings leave a private scope."""

    def test_only_exposed_keys_leave_the_scope(self):
        keys = [binding.key for binding in exposed_bindings(client_scope())]

        self.assertEqual(keys, [BindingKey.of(Client)])

    def test_nested_exposure_requires_re_exposure(self):
        outer = PrivateModuleDef("outer")
        outer.private(client_scope())
        outer.make(Cache).using().type(Cache)
        outer.expose(Cache)

        self.assertEqual([b.key for b in exposed_bindings(outer)], [BindingKey.of(Cache)])

        outer.expose(Client)
        self.assertEqual(
            {b.key for b in exposed_bindings(outer)},
            {BindingKey.of(Cache), BindingKey.of(Client)},
        )

    def test_extract_pairs_keys_with_providers(self):
        pairs = extract(client_scope(), lambda key: f"provider for {key}")

        self.assertEqual(pairs, {(BindingKey.of(Client), "provider for Client")})

    def test_without_exposures(self):
        scope = client_scope()
        hidden = scope.without_exposures([BindingKey.of(Client)])

        self.assertEqual(hidden.exposed_keys, frozenset())
        self.assertEqual(scope.exposed_keys, frozenset({BindingKey.of(Client)}))


class TestPrivateInjection(unittest.TestCase):
    """Test private scopes inside an injector."""

    def test_exposed_key_is_built_inside_the_scope(self):
        module = ModuleDef()
        module.private(client_scope())

        client = Injector([module]).get(Client)

        self.assertEqual(client.credentials.token(), "secret")

    def test_hidden_keys_are_not_reachable(self):
        module = ModuleDef()
        module.private(client_scope())

        with self.assertRaises(NotFoundError):
            Injector([module]).get(Credentials)

    def test_re_exposed_nested_key(self):
        outer = PrivateModuleDef("outer")
        outer.private(client_scope())
        outer.expose(Client)
        module = ModuleDef()
        module.private(outer)

        self.assertIsInstance(Injector([module]).get(Client), Client)

    def test_exposing_an_unbound_key_fails(self):
        scope = PrivateModuleDef("broken")
        scope.expose(Cache)
        module = ModuleDef()
        module.private(scope)

        with self.assertRaises(NotFoundError):
            Injector([module])


if __name__ == "__main__":
    unittest.main()
