#!/usr/bin/env python3
"""
Unit tests for module bindings and the programmatic injector.
"""

import unittest
from abc import ABC, abstractmethod
from typing import Annotated

from izumi.bridge import (
    BindingKey,
    BindingType,
    CircularDependencyError,
    ConflictingBindingError,
    Injector,
    ModuleDef,
    Named,
    NotFoundError,
)


class Database:
    def __init__(self, host: str = "localhost", port: int = 5432):
        self.host = host
        self.port = port


class Repository(ABC):
    @abstractmethod
    def find(self, key: str) -> str: ...


class SqlRepository(Repository):
    def __init__(self, database: Database):
        self.database = database

    def find(self, key: str) -> str:
        return f"{key}@{self.database.host}"


class Plugin:
    def __init__(self, name: str = "plugin"):
        self.name = name


class AuditPlugin(Plugin):
    def __init__(self):
        super().__init__("audit")


class Chicken:
    def __init__(self, egg: "Egg"):
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken):
        self.chicken = chicken


class TestBindings(unittest.TestCase):
    """Test the binding DSL."""

    def test_binding_types(self):
        module = ModuleDef()
        module.make(Database).using().value(Database("db.local"))
        module.make(Repository).using().type(SqlRepository)
        module.make(str).named("env").using().func(lambda: "test")
        module.make(int).named("port").using().provider(lambda: 8080)

        types = [binding.binding_type for binding in module.bindings]

        self.assertEqual(types, [BindingType.INSTANCE, BindingType.CLASS, BindingType.FACTORY, BindingType.PROVIDER])
        self.assertEqual(module.bindings[2].key, BindingKey.of(str, Named("env")))

    def test_source_identity_is_recorded(self):
        module = ModuleDef("storage")
        module.make(Database).using().type(Database)
        module.make(Repository).using().type(SqlRepository)

        first, second = module.bindings

        self.assertEqual(first.source.descriptor, "storage")
        self.assertLess(first.source.ordinal, second.source.ordinal)

    def test_include(self):
        base = ModuleDef()
        base.make(Database).using().type(Database)
        extension = ModuleDef().include(base)
        extension.make(Repository).using().type(SqlRepository)

        self.assertEqual(len(extension.bindings), 2)


class TestInjector(unittest.TestCase):
    """Test resolving module bindings."""

    def test_class_binding_with_dependencies(self):
        module = ModuleDef()
        module.make(Database).using().value(Database("db.local"))
        module.make(Repository).using().type(SqlRepository)

        repository = Injector([module]).get(Repository)

        self.assertEqual(repository.find("user"), "user@db.local")

    def test_singletons_and_prototypes(self):
        module = ModuleDef()
        module.make(Database).using().type(Database)
        module.make(Plugin).prototype().using().type(Plugin)
        injector = Injector([module])

        self.assertIs(injector.get(Database), injector.get(Database))
        self.assertIsNot(injector.get(Plugin), injector.get(Plugin))

    def test_named_bindings(self):
        module = ModuleDef()
        module.make(str).named("host").using().value("primary.local")

        def connect(host: Annotated[str, Named("host")]) -> Database:
            return Database(host)

        module.make(Database).using().func(connect)

        self.assertEqual(Injector([module]).get(Database).host, "primary.local")

    def test_set_multibinding(self):
        module = ModuleDef()
        module.many(Plugin).add_type(AuditPlugin).add_value(Plugin("metrics"))

        plugins = Injector([module]).get(set[Plugin])

        self.assertEqual({plugin.name for plugin in plugins}, {"audit", "metrics"})

    def test_equal_set_elements_collapse(self):
        first = ModuleDef("first")
        first.many(str).add_value("audit")
        second = ModuleDef("second")
        second.many(str).add_value("audit").add_value("metrics")

        self.assertEqual(Injector([first, second]).get(set[str]), {"audit", "metrics"})

    def test_map_multibinding(self):
        module = ModuleDef()
        module.many_mapped(Plugin).add_type("audit", AuditPlugin).add_value("metrics", Plugin("metrics"))
        module.many_mapped(Plugin).add_value("audit", Plugin("shadowed"))

        plugins = Injector([module]).get(dict[str, Plugin])

        names = {key: plugin.name for key, plugin in plugins.items()}

        self.assertEqual(names, {"audit": "audit", "metrics": "metrics"})

    def test_duplicate_bindings_conflict(self):
        module = ModuleDef()
        module.make(Database).using().type(Database)
        module.make(Database).using().value(Database())

        with self.assertRaises(ConflictingBindingError):
            Injector([module])

    def test_just_in_time_construction(self):
        database = Injector().get(Database)

        self.assertEqual(database.port, 5432)

    def test_interfaces_are_not_constructed_just_in_time(self):
        with self.assertRaises(NotFoundError):
            Injector().get(Repository)

    def test_parent_injector(self):
        parent_module = ModuleDef()
        parent_module.make(Database).using().value(Database("parent"))
        child_module = ModuleDef()
        child_module.make(Repository).using().type(SqlRepository)

        child = Injector([child_module], parent=Injector([parent_module]))

        self.assertEqual(child.get(Repository).find("k"), "k@parent")

    def test_injector_resolves_itself(self):
        injector = Injector()

        self.assertIs(injector.get(Injector), injector)

    def test_circular_dependency(self):
        with self.assertRaises(CircularDependencyError):
            Injector().get(Chicken)

    def test_run(self):
        module = ModuleDef()
        module.make(Database).using().value(Database("run.local"))

        def host_of(database: Database) -> str:
            return database.host

        self.assertEqual(Injector([module]).run(host_of), "run.local")


if __name__ == "__main__":
    unittest.main()
