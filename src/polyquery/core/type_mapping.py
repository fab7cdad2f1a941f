"""Bidirectional base-type <-> native column type tables.

Manifesto:
    Native column declarations come back from introspection in many shapes
    (``NVARCHAR(100)``, ``numeric(10,5)``, ``timestamp without time zone``).
    Matching them with an ordered list of substring tokens is simple and
    predictable, but only if the order is right: ``INT`` is a substring of
    ``BIGINT``, so ``BIGINT`` must be tried first. That precedence is checked
    when the mapper is built instead of being left to list order alone.

Features:
    - ``to_native_type()``: total over ``BaseType`` (checked at construction)
    - ``from_native_declaration()``: case-insensitive, first match wins
    - Catch-all tokens map to ``BaseType.UNKNOWN`` explicitly; anything that
      matches no token raises ``UnrecognizedColumnTypeError``
    - Shadowed tokens and broken round trips raise
      ``DriverConfigurationError`` up front

Examples:
    >>> from polyquery.core.drivers import get_driver
    >>> mapper = get_driver("sqlite").type_mapper
    >>> mapper.from_native_declaration("big int")
    <BaseType.BIG_INTEGER: 'BigInteger'>
    >>> mapper.to_native_type(BaseType.CHAR)
    'VARCHAR(254)'

Tags:
    type-mapping, ddl, introspection, drivers, polyquery

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from polyquery.core.errors import (
    DriverConfigurationError,
    UnmappedBaseTypeError,
    UnrecognizedColumnTypeError,
)
from polyquery.core.types import BaseType


@dataclass(frozen=True)
class TypePattern:
    """A substring token and the base type it identifies."""

    token: str
    base_type: BaseType

    def matches(self, declaration: str) -> bool:
        return self.token.upper() in declaration.upper()


class TypeMapper:
    """Native type tables for one engine.

    Args:
        engine: Engine name, used in error messages.
        native_types: Base type -> DDL type emitted by the driver. Must cover
            every ``BaseType``.
        patterns: Ordered ``(token, base_type)`` pairs used for recognition.
            A token may not contain an earlier token.
        lossy: Base types whose native type is shared with another base type
            (the round trip returns the other one). Their native type must still
            be recognized.
    """

    def __init__(
        self,
        engine: str,
        *,
        native_types: Mapping[BaseType, str],
        patterns: Iterable[tuple[str, BaseType]],
        lossy: Iterable[BaseType] = (),
    ):
        self._engine = engine
        self._native_types = dict(native_types)
        self._patterns = tuple(TypePattern(token, base_type) for token, base_type in patterns)
        self._lossy = frozenset(lossy)
        self._validate()

    @property
    def patterns(self) -> tuple[TypePattern, ...]:
        return self._patterns

    @property
    def lossy(self) -> frozenset[BaseType]:
        return self._lossy

    def to_native_type(self, base_type: BaseType) -> str:
        """DDL column type for ``base_type``."""
        try:
            return self._native_types[base_type]
        except KeyError:
            raise UnmappedBaseTypeError(self._engine, BaseType(base_type).value) from None

    def from_native_declaration(self, declaration: str) -> BaseType:
        """Base type of a native column declaration (first matching token wins)."""
        for pattern in self._patterns:
            if pattern.matches(declaration):
                return pattern.base_type
        raise UnrecognizedColumnTypeError(self._engine, declaration)

    def _validate(self) -> None:
        missing = [bt for bt in BaseType if bt not in self._native_types]
        if missing:
            names = ", ".join(bt.value for bt in missing)
            raise DriverConfigurationError(
                f"Driver '{self._engine}' has no native column type for: {names}"
            ).with_context(engine=self._engine)

        for i, later in enumerate(self._patterns):
            for earlier in self._patterns[:i]:
                if earlier.matches(later.token):
                    raise DriverConfigurationError(
                        f"Driver '{self._engine}': type token {later.token!r} can never match "
                        f"because earlier token {earlier.token!r} is a substring of it"
                    ).with_context(engine=self._engine)

        for base_type, native in self._native_types.items():
            try:
                recognized = self.from_native_declaration(native)
            except UnrecognizedColumnTypeError as e:
                raise DriverConfigurationError(
                    f"Driver '{self._engine}' emits {native!r} for {base_type.value} "
                    f"but does not recognize it",
                    cause=e,
                ).with_context(engine=self._engine) from e
            if recognized != base_type and base_type not in self._lossy:
                raise DriverConfigurationError(
                    f"Driver '{self._engine}' emits {native!r} for {base_type.value} "
                    f"but reads it back as {recognized.value}"
                ).with_context(engine=self._engine)


__all__ = [
    "TypePattern",
    "TypeMapper",
]
