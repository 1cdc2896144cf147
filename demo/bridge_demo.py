#!/usr/bin/env python3
"""
Demo of a component registry and injection modules sharing one object graph.

The registry owns the repositories, the module owns the notification
transport, and each side receives what it is missing from the other.
"""

import logging
from abc import ABC, abstractmethod
from typing import Annotated

from izumi.bridge import (
    BridgeSettings,
    ComponentRegistry,
    ConflictingBindingError,
    GraphBridge,
    ModuleDef,
    Named,
)

logging.basicConfig(level=logging.INFO, format="%(name)s - %(levelname)s - %(message)s")


# Domain classes
class UserRepository(ABC):
    @abstractmethod
    def find(self, user_id: int) -> str: ...


class SqlUserRepository(UserRepository):
    def find(self, user_id: int) -> str:
        return f"user-{user_id} (sql)"


class CachedUserRepository(UserRepository):
    def find(self, user_id: int) -> str:
        return f"user-{user_id} (cache)"


class Transport(ABC):
    @abstractmethod
    def send(self, recipient: str, text: str) -> str: ...


class SmtpTransport(Transport):
    def __init__(self, host: Annotated[str, Named("smtp-host")]):
        self.host = host

    def send(self, recipient: str, text: str) -> str:
        return f"[{self.host}] to {recipient}: {text}"


class Notifier:
    """Registry component that needs a module-provided Transport."""

    def __init__(self, users: UserRepository, transport: Transport):
        self.users = users
        self.transport = transport

    def notify(self, user_id: int, text: str) -> str:
        return self.transport.send(self.users.find(user_id), text)


class AuditTrail:
    """Module-bound class that needs a registry-provided repository."""

    def __init__(self, users: Annotated[UserRepository, Named("cachedUserRepository")]):
        self.users = users

    def record(self, user_id: int) -> str:
        return f"audited {self.users.find(user_id)}"


def build_registry() -> ComponentRegistry:
    registry = ComponentRegistry()
    registry.register_class(SqlUserRepository, as_type=UserRepository, primary=True)
    registry.register_class(CachedUserRepository, as_type=UserRepository)
    registry.register_class(Notifier)
    return registry


def build_module() -> ModuleDef:
    module = ModuleDef("notifications")
    module.make(str).named("smtp-host").using().value("smtp.example.com")
    module.make(Transport).using().type(SmtpTransport)
    module.make(AuditTrail).using().type(AuditTrail)
    return module


def main():
    print("=== Izumi Bridge Demo ===\n")

    print("1. Declarative component using a module binding...")
    print("-" * 50)
    registry = build_registry()
    bridge = GraphBridge(registry, [build_module()])
    bridge.activate()

    notifier = registry.get(Notifier)
    print(notifier.notify(42, "welcome aboard"))

    print("\n2. Module binding using a named declarative component...")
    print("-" * 50)
    audit = bridge.get(AuditTrail)
    print(audit.record(7))

    print("\n3. Merged resolution table...")
    print("-" * 50)
    for key, entry in bridge.merge().items():
        print(f"  {key} <- {entry.provenance.value}")

    print("\n4. Both graphs binding the same key...")
    print("-" * 50)
    clash = ModuleDef("clash")
    clash.make(UserRepository).using().type(SqlUserRepository)

    try:
        GraphBridge(build_registry(), [clash]).merge()
    except ConflictingBindingError as e:
        print(f"Without dedupe: {e}")

    deduped = GraphBridge(build_registry(), [clash, build_module()], BridgeSettings(dedupe=True))
    print(f"With dedupe: {deduped.get(UserRepository).find(1)}")

    bridge.close()
    print("\nDemo completed successfully!")


if __name__ == "__main__":
    main()
