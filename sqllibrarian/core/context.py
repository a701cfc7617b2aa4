"""Data context accessors.

The data context is a plain mutable mapping shared by every statement of a
call. Values are scalars, nested mappings or sequences (of mappings or of
scalars). Statements read bind and substitution values from it and SELECT
statements write their rows back into it. Every access checks the shape of
the value it touches and raises a library error on mismatch.
"""

from collections.abc import Mapping, MutableMapping, Sequence
from enum import Enum
from typing import Any, Optional

from sqllibrarian.exceptions import BindResolutionError, ContextStructureError

__all__ = ("DataContext", "ValueKind", "kind_of", "split_label")


class ValueKind(str, Enum):
    """Shape of a data context value."""

    MISSING = "missing"
    SCALAR = "scalar"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


def kind_of(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.MISSING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return ValueKind.SEQUENCE
    return ValueKind.SCALAR


def split_label(label: str) -> "tuple[Optional[str], str]":
    """Split a column label into ``(group, field)``.

    ``"record.col"`` nests under ``record``; a label without a dot has no group.
    """
    group, dot, field = label.partition(".")
    if not dot:
        return None, label
    return group, field


class DataContext:
    """Shape-checked view over the caller's mapping.

    Args:
        data: The mapping to read from and write into. Mutated in place.
        all_arrays: Read every value from element 0 of a sequence stored at its
            key, and write single-row results to element 0 as well.
    """

    __slots__ = ("all_arrays", "data")

    def __init__(self, data: "Optional[MutableMapping[str, Any]]" = None, *, all_arrays: bool = False) -> None:
        self.data: MutableMapping[str, Any] = {} if data is None else data
        self.all_arrays = all_arrays

    def __repr__(self) -> str:
        return f"DataContext({self.data!r}, all_arrays={self.all_arrays!r})"

    # -- reads --
    def resolve(self, key: str) -> Any:
        """Return the scalar bound to ``key``.

        Raises:
            BindResolutionError: If the key is absent or holds a value of the wrong shape.
        """
        if key not in self.data:
            msg = f"Missing value for {key!r}"
            raise BindResolutionError(msg, key=key)
        value = self.data[key]
        if self.all_arrays:
            if kind_of(value) is not ValueKind.SEQUENCE or not value:
                msg = f"Expected a non-empty sequence for {key!r}, found {kind_of(value).value}"
                raise BindResolutionError(msg, key=key)
            value = value[0]
        if kind_of(value) in {ValueKind.MAPPING, ValueKind.SEQUENCE}:
            msg = f"Expected scalar for {key!r}, found {kind_of(value).value}"
            raise BindResolutionError(msg, key=key)
        return value

    def resolve_text(self, key: str) -> str:
        """Return the value bound to ``key`` as literal SQL text."""
        value = self.resolve(key)
        if value is None:
            msg = f"Cannot substitute NULL for ${key}"
            raise BindResolutionError(msg, key=key)
        return str(value)

    # -- writes --
    def merge_row(self, row: "Mapping[str, Any]") -> None:
        """Write one fetched row into the context.

        Dotted labels nest under their group mapping; with ``all_arrays`` each
        top-level key receives the value at element 0 of a sequence.
        """
        for label, value in row.items():
            group, field = split_label(label)
            if group is None:
                self._store_scalar(field, value)
            else:
                self._group_mapping(group)[field] = value

    def assign_rows(self, labels: "Sequence[str]", rows: "Sequence[Mapping[str, Any]]") -> None:
        """Write a multi-row result into the context.

        A dotted label ``group.field`` makes ``group`` a sequence with one mapping
        per row. A bare label makes its key a sequence of scalars. Target keys
        are replaced, so zero rows leave empty sequences behind.

        Raises:
            ContextStructureError: If a target key already holds a scalar or mapping.
        """
        groups: dict[str, list[tuple[str, str]]] = {}
        bare: list[str] = []
        for label in labels:
            group, field = split_label(label)
            if group is None:
                bare.append(label)
            else:
                groups.setdefault(group, []).append((label, field))

        for key in (*groups, *bare):
            self._require_replaceable_sequence(key)

        for group, fields in groups.items():
            self.data[group] = [{field: row.get(label) for label, field in fields} for row in rows]
        for label in bare:
            self.data[label] = [row.get(label) for row in rows]

    def _store_scalar(self, key: str, value: Any) -> None:
        existing = self.data.get(key)
        kind = kind_of(existing)
        if self.all_arrays:
            if kind is ValueKind.MISSING:
                self.data[key] = [value]
            elif kind is ValueKind.SEQUENCE and isinstance(existing, list):
                if existing:
                    existing[0] = value
                else:
                    existing.append(value)
            else:
                msg = f"Cannot store {key!r} at element 0: it holds a {kind.value}"
                raise ContextStructureError(msg, key=key)
            return
        if kind in {ValueKind.MAPPING, ValueKind.SEQUENCE}:
            msg = f"Cannot store scalar {key!r}: it holds a {kind.value}"
            raise ContextStructureError(msg, key=key)
        self.data[key] = value

    def _group_mapping(self, group: str) -> "MutableMapping[str, Any]":
        existing = self.data.get(group)
        kind = kind_of(existing)
        if self.all_arrays:
            if kind is ValueKind.MISSING:
                entry: dict[str, Any] = {}
                self.data[group] = [entry]
                return entry
            if kind is ValueKind.SEQUENCE and isinstance(existing, list):
                if not existing:
                    existing.append({})
                if isinstance(existing[0], MutableMapping):
                    return existing[0]
            msg = f"Cannot store fields under {group!r}[0]: it holds a {kind.value}"
            raise ContextStructureError(msg, key=group)
        if kind is ValueKind.MISSING:
            mapping: dict[str, Any] = {}
            self.data[group] = mapping
            return mapping
        if isinstance(existing, MutableMapping):
            return existing
        msg = f"Cannot store fields under {group!r}: it holds a {kind.value}"
        raise ContextStructureError(msg, key=group)

    def _require_replaceable_sequence(self, key: str) -> None:
        kind = kind_of(self.data.get(key))
        if kind in {ValueKind.SCALAR, ValueKind.MAPPING}:
            msg = f"Cannot store rows under {key!r}: it holds a {kind.value}"
            raise ContextStructureError(msg, key=key)
