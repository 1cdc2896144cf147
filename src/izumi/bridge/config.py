"""
Bridge configuration.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .model import Stage

DEDUPE_PROPERTY = "bridge.dedup"
LAZY_FALLBACK_PROPERTY = "bridge.autowire_jit"
STAGE_PROPERTY = "bridge.stage"
EXCLUDED_SOURCES_PROPERTY = "bridge.modules.exclude"

ENVIRONMENT_PREFIX = "IZUMI_"

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class BridgeSettings:
    """
    Feature switches for graph reconciliation.

    Attributes:
        dedupe: Resolve keys bound by both graphs in favor of the declarative
            graph instead of failing with ConflictingBindingError.
        lazy_fallback: Inject a LazyReference for dependencies the declarative
            graph cannot satisfy itself.
        stage: Stage the ResolutionTable is built for; DEVELOPMENT makes
            bridged components lazily initialized.
        excluded_sources: Binding elements whose source descriptor contains any
            of these strings are ignored.
    """

    dedupe: bool = False
    lazy_fallback: bool = True
    stage: Stage = Stage.PRODUCTION
    excluded_sources: tuple[str, ...] = ()

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> BridgeSettings:
        """Read settings from `bridge.*` properties; missing keys keep defaults."""
        defaults = cls()
        return cls(
            dedupe=_parse_bool(properties, DEDUPE_PROPERTY, defaults.dedupe),
            lazy_fallback=_parse_bool(properties, LAZY_FALLBACK_PROPERTY, defaults.lazy_fallback),
            stage=_parse_stage(properties, STAGE_PROPERTY, defaults.stage),
            excluded_sources=_parse_list(properties, EXCLUDED_SOURCES_PROPERTY, defaults.excluded_sources),
        )

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> BridgeSettings:
        """Read settings from `IZUMI_BRIDGE_*` environment variables."""
        environ = os.environ if environ is None else environ
        properties = {
            name: environ[_env_name(name)]
            for name in (DEDUPE_PROPERTY, LAZY_FALLBACK_PROPERTY, STAGE_PROPERTY, EXCLUDED_SOURCES_PROPERTY)
            if _env_name(name) in environ
        }
        return cls.from_properties(properties)


def _env_name(property_name: str) -> str:
    return ENVIRONMENT_PREFIX + property_name.upper().replace(".", "_")


def _parse_bool(properties: Mapping[str, str], name: str, default: bool) -> bool:
    raw = properties.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Invalid boolean for {name}: {raw!r}")


def _parse_stage(properties: Mapping[str, str], name: str, default: Stage) -> Stage:
    raw = properties.get(name)
    if raw is None:
        return default
    try:
        return Stage(raw.strip().lower())
    except ValueError as e:
        choices = ", ".join(stage.value for stage in Stage)
        raise ValueError(f"Invalid stage for {name}: {raw!r} (expected one of {choices})") from e


def _parse_list(properties: Mapping[str, str], name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = properties.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())
