"""
Signature introspection for constructor and factory injection.
"""

from __future__ import annotations

import inspect
import logging
import types
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from .errors import MetadataUnavailableError
from .keys import BindingKey, Named, Qualifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dependency:
    """
    A dependency required by a constructor or factory.

    Attributes:
        name: The parameter name in the signature.
        type_hint: The declared type, without Annotated metadata.
        qualifier: Qualifier taken from `Annotated[T, Named(...)]`, if any.
        default: The parameter default, or `inspect.Parameter.empty`.
    """

    name: str
    type_hint: Any
    qualifier: Any = None
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def key(self) -> BindingKey:
        return BindingKey.of(self.type_hint, self.qualifier)


class SignatureIntrospector:
    """Extracts Dependency lists from classes and callables."""

    @staticmethod
    def extract_dependencies(target: Callable[..., Any]) -> list[Dependency]:
        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError) as e:
            raise MetadataUnavailableError(target, str(e)) from e

        hints = SignatureIntrospector._hints_of(target)
        result: list[Dependency] = []
        for name, param in signature.parameters.items():
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            annotation = hints.get(name, param.annotation)
            if annotation is inspect.Parameter.empty:
                if param.default is not inspect.Parameter.empty:
                    continue
                target_name = getattr(target, "__qualname__", repr(target))
                raise MetadataUnavailableError(target, f"parameter <{name}> of <{target_name}> is not annotated")
            base_type, qualifier = SignatureIntrospector._split_annotation(annotation)
            result.append(Dependency(name, base_type, qualifier, param.default))
        return result

    @staticmethod
    def _hints_of(target: Callable[..., Any]) -> dict[str, Any]:
        hinted = target.__init__ if isinstance(target, type) else target
        try:
            return get_type_hints(hinted, include_extras=True)
        except Exception as e:  # noqa: BLE001
            # Unresolvable forward references: fall back to raw annotations
            logger.debug("Cannot evaluate type hints of %r: %s", target, e)
            return {}

    @staticmethod
    def _split_annotation(annotation: Any) -> tuple[Any, Any]:
        annotation = _unwrap_optional(annotation)
        if get_origin(annotation) is not Annotated:
            return annotation, None
        base_type, *metadata = get_args(annotation)
        for item in metadata:
            if isinstance(item, (Named, Qualifier)):
                return base_type, item
            if isinstance(item, str):
                return base_type, Named(item)
        return base_type, None


def _unwrap_optional(annotation: Any) -> Any:
    """Reduce `X | None` to X."""
    if get_origin(annotation) not in (Union, types.UnionType):
        return annotation
    members = [arg for arg in get_args(annotation) if arg is not type(None)]
    return members[0] if len(members) == 1 else annotation
