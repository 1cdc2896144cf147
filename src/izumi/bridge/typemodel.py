"""
Generics-aware type model used for matching components across graphs.

Host types are described once through TypeIntrospector and cached as
TypeDescriptor values. A TypeRef is a type expression (a descriptor applied to
type arguments) that supports parameter substitution, so supertype closure and
assignability checks never need to inspect live classes again.
"""

from __future__ import annotations

import inspect
import logging
import sys
from abc import ABC
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, ForwardRef, Generic, Protocol, TypeVar, get_args, get_origin

from .errors import MetadataUnavailableError

logger = logging.getLogger(__name__)

# Base classes that describe Python's own class machinery rather than a contract
ROOT_TYPES: tuple[Any, ...] = (object, Generic, Protocol, ABC)

SYNTHETIC_MARKER = "$$"


class Visibility(Enum):
    """Accessibility of a type, derived from its name."""

    PUBLIC = "public"
    PACKAGE = "package"
    PRIVATE = "private"

    @classmethod
    def of_name(cls, name: str) -> Visibility:
        """`__Name` is private, `_Name` is package-default, anything else is public."""
        if name.startswith("__") and not name.endswith("__"):
            return cls.PRIVATE
        if name.startswith("_"):
            return cls.PACKAGE
        return cls.PUBLIC


@dataclass(frozen=True)
class TypeParam:
    """A reference to a declared type parameter, e.g. the `T` in `Repo[T]`."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class TypeDescriptor:
    """
    Structural description of a class.

    Descriptors compare by the host class they describe, or by name when they
    were declared by hand (placeholders and types built in tests).
    """

    name: str
    params: tuple[TypeParam, ...] = ()
    bases: tuple[TypeRef, ...] = ()
    is_interface: bool = False
    visibility: Visibility = Visibility.PUBLIC
    declaring: TypeDescriptor | None = None
    synthetic: bool = False
    available: bool = True
    python_type: Any = field(default=None, repr=False)

    def _identity(self) -> Any:
        return self.python_type if self.python_type is not None else self.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeDescriptor):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    def ref(self, *args: TypeArg) -> TypeRef:
        """Apply this descriptor to type arguments."""
        return TypeRef(self, tuple(args))

    def ancestors(self) -> Iterator[TypeDescriptor]:
        """Yield this descriptor and every transitive base, breadth first."""
        seen: set[TypeDescriptor] = set()
        queue: deque[TypeDescriptor] = deque([self])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            yield current
            queue.extend(base.descriptor for base in current.bases)

    def is_subtype_of(self, other: TypeDescriptor) -> bool:
        return any(ancestor == other for ancestor in self.ancestors())

    def nesting_chain(self) -> Iterator[TypeDescriptor]:
        """Yield this descriptor followed by its enclosing classes."""
        current: TypeDescriptor | None = self
        while current is not None:
            yield current
            current = current.declaring

    def __str__(self) -> str:
        return self.simple_name


@dataclass(frozen=True)
class TypeRef:
    """A type expression: a descriptor applied to (possibly no) type arguments."""

    descriptor: TypeDescriptor
    args: tuple[TypeArg, ...] = ()

    @property
    def raw(self) -> TypeRef:
        return TypeRef(self.descriptor) if self.args else self

    @property
    def is_parameterized(self) -> bool:
        return bool(self.args)

    def substitute(self, mapping: Mapping[str, TypeArg]) -> TypeRef:
        """Replace type parameters by the arguments bound in `mapping`."""
        if not self.args or not mapping:
            return self
        return TypeRef(self.descriptor, tuple(_substitute_arg(arg, mapping) for arg in self.args))

    def bindings(self) -> dict[str, TypeArg]:
        """Map the descriptor's declared parameters to this expression's arguments."""
        if len(self.args) != len(self.descriptor.params):
            return {}
        return {param.name: arg for param, arg in zip(self.descriptor.params, self.args, strict=True)}

    def free_params(self) -> set[str]:
        result: set[str] = set()
        for arg in self.args:
            if isinstance(arg, TypeParam):
                result.add(arg.name)
            else:
                result |= arg.free_params()
        return result

    def is_available(self) -> bool:
        """Whether this expression and all of its arguments resolve to known types."""
        if not self.descriptor.available:
            return False
        return all(isinstance(arg, TypeParam) or arg.is_available() for arg in self.args)

    def supertype_of(self, target: TypeDescriptor) -> TypeRef | None:
        """
        Return `target` as seen from this type, with generic arguments substituted.

        Returns None when `target` is not an ancestor of this type.
        """
        if self.descriptor == target:
            return self
        mapping = self.bindings()
        for base in self.descriptor.bases:
            found = base.substitute(mapping).supertype_of(target)
            if found is not None:
                return found
        return None

    @property
    def type_name(self) -> str:
        """Fully qualified rendering, used to derive component names."""
        if not self.args:
            return self.descriptor.name
        rendered = ", ".join(arg.type_name if isinstance(arg, TypeRef) else arg.name for arg in self.args)
        return f"{self.descriptor.name}[{rendered}]"

    def __str__(self) -> str:
        if not self.args:
            return self.descriptor.simple_name
        return f"{self.descriptor.simple_name}[{', '.join(str(arg) for arg in self.args)}]"


TypeArg = TypeRef | TypeParam


def _substitute_arg(arg: TypeArg, mapping: Mapping[str, TypeArg]) -> TypeArg:
    if isinstance(arg, TypeParam):
        return mapping.get(arg.name, arg)
    return arg.substitute(mapping)


class TypeIntrospector:
    """Builds and caches TypeDescriptors for host Python types."""

    _cache: dict[Any, TypeDescriptor] = {}

    @classmethod
    def describe(cls, target: Any) -> TypeDescriptor:
        """Describe a class. Raises MetadataUnavailableError for anything else."""
        if isinstance(target, TypeDescriptor):
            return target
        if not isinstance(target, type):
            raise MetadataUnavailableError(target, "not a class")

        cached = cls._cache.get(target)
        if cached is not None:
            return cached

        descriptor = TypeDescriptor(
            name=f"{target.__module__}.{target.__qualname__}",
            params=cls._params_of(target),
            bases=cls._bases_of(target),
            is_interface=cls._is_interface(target),
            visibility=Visibility.of_name(target.__name__),
            declaring=cls._declaring_of(target),
            synthetic=SYNTHETIC_MARKER in target.__qualname__
            or bool(target.__dict__.get("__synthetic_proxy__", False)),
            python_type=target,
        )
        cls._cache[target] = descriptor
        return descriptor

    @classmethod
    def to_ref(cls, target: Any) -> TypeRef:
        """Convert a class, generic alias or descriptor into a TypeRef."""
        if isinstance(target, TypeRef):
            return target
        if isinstance(target, TypeDescriptor):
            return TypeRef(target)
        if isinstance(target, (str, ForwardRef)):
            return TypeRef(cls._unavailable(target))

        origin = get_origin(target)
        if origin is Annotated:
            return cls.to_ref(get_args(target)[0])
        if origin is not None:
            if not isinstance(origin, type):
                raise MetadataUnavailableError(target, "unsupported type form")
            return TypeRef(cls.describe(origin), tuple(cls.to_arg(arg) for arg in get_args(target)))

        return TypeRef(cls.describe(target))

    @classmethod
    def to_arg(cls, target: Any) -> TypeArg:
        if isinstance(target, TypeVar):
            return TypeParam(target.__name__)
        return cls.to_ref(target)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()

    @staticmethod
    def _params_of(target: type) -> tuple[TypeParam, ...]:
        parameters = getattr(target, "__parameters__", ())
        return tuple(TypeParam(param.__name__) for param in parameters if isinstance(param, TypeVar))

    @classmethod
    def _bases_of(cls, target: type) -> tuple[TypeRef, ...]:
        # __orig_bases__ must come from the class itself, it is inherited otherwise
        declared = target.__dict__.get("__orig_bases__", target.__bases__)
        bases: list[TypeRef] = []
        for base in declared:
            origin = get_origin(base) or base
            if origin in ROOT_TYPES:
                continue
            bases.append(cls.to_ref(base))
        return tuple(bases)

    @staticmethod
    def _is_interface(target: type) -> bool:
        if target.__dict__.get("_is_protocol", False):
            return True
        return inspect.isabstract(target) or ABC in target.__bases__

    @classmethod
    def _declaring_of(cls, target: type) -> TypeDescriptor | None:
        parts = target.__qualname__.split(".")[:-1]
        if not parts or parts[-1] == "<locals>":
            return None

        owner: Any = sys.modules.get(target.__module__)
        for part in parts:
            owner = getattr(owner, part, None) if owner is not None else None
        if isinstance(owner, type):
            return cls.describe(owner)

        # Enclosing class lives in a function body; only its name is known
        return TypeDescriptor(
            name=f"{target.__module__}.{'.'.join(parts)}",
            visibility=Visibility.of_name(parts[-1]),
        )

    @staticmethod
    def _unavailable(target: str | ForwardRef) -> TypeDescriptor:
        name = target.__forward_arg__ if isinstance(target, ForwardRef) else target
        logger.debug("Type %s cannot be resolved, marking it unavailable", name)
        return TypeDescriptor(name=name, available=False)


def type_ref(target: Any) -> TypeRef:
    """Shorthand for TypeIntrospector.to_ref."""
    return TypeIntrospector.to_ref(target)
