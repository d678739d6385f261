"""
Explicit fallback chains for loosely-structured upstream JSON.

Platform APIs change wrapper keys and field names between versions and
mirrors. Instead of nesting `a or b or c`, each logical field is a
FieldProbe: an ordered tuple of candidate keys plus a converter. The
first key whose value converts to a usable value wins. Key order is
data, so it can be overridden from configuration.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

DEFAULT_WRAPPER_KEYS = ("profile", "info", "data")


def as_int(value: Any) -> int | None:
    """Convert to a positive int; 0, negatives and non-numeric values yield None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = int(float(value)) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


def as_text(value: Any) -> str | None:
    """Accept non-empty strings only; numbers are not names."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def as_identifier(value: Any) -> str | None:
    """Accept non-empty strings or integer ids."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return as_text(value)


@dataclass(frozen=True)
class FieldProbe:
    """Ordered candidate keys for one logical field."""

    name: str
    keys: tuple[str, ...]
    convert: Callable[[Any], Any] = as_text

    def extract(self, payload: Mapping[str, Any]) -> Any | None:
        """Return the first converted, non-empty value, or None."""
        for key in self.keys:
            if key not in payload:
                continue
            value = self.convert(payload[key])
            if value is not None:
                return value
        return None

    def with_keys(self, keys: Sequence[str]) -> "FieldProbe":
        return FieldProbe(name=self.name, keys=tuple(keys), convert=self.convert)


@dataclass
class ProbeSet:
    """A named collection of field probes with optional priority overrides."""

    probes: dict[str, FieldProbe] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        defaults: Iterable[FieldProbe],
        overrides: Mapping[str, Sequence[str]] | None = None,
    ) -> "ProbeSet":
        """
        Create a probe set, replacing the key order of overridden fields.

        Overrides for unknown field names are ignored.
        """
        overrides = overrides or {}
        probes = {}
        for probe in defaults:
            keys = overrides.get(probe.name)
            probes[probe.name] = probe.with_keys(keys) if keys else probe
        return cls(probes=probes)

    @property
    def all_keys(self) -> set[str]:
        return {key for probe in self.probes.values() for key in probe.keys}

    def matches(self, payload: Any) -> bool:
        """True if the payload carries at least one expected key."""
        return isinstance(payload, Mapping) and bool(self.all_keys & payload.keys())

    def extract(self, name: str, payload: Mapping[str, Any], default: Any = None) -> Any:
        value = self.probes[name].extract(payload)
        return default if value is None else value


def unwrap(payload: Any, wrapper_keys: Sequence[str] = DEFAULT_WRAPPER_KEYS) -> Any:
    """
    Strip a single wrapper object such as {"profile": {...}}.

    Falls back to the bare payload when no wrapper key holds an object.
    """
    if isinstance(payload, Mapping):
        for key in wrapper_keys:
            inner = payload.get(key)
            if isinstance(inner, Mapping) and inner:
                return inner
    return payload
