"""
dtreepy.attributes
==================

Minimal attribute set used by the tree engine.

An :class:`AttributeSet` is an ordered collection of :class:`Attribute`
objects.  Each attribute is either nominal (a finite list of value names,
addressed by value id) or ordered (integer or floating point).  Every
attribute also carries a *current instance* value, which the executor falls
back to when a tree is evaluated without an explicit row.
"""

from __future__ import annotations

import math
import numbers
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Sequence


def _isnan_scalar(v: Any) -> bool:
    return isinstance(v, numbers.Real) and not isinstance(v, numbers.Integral) and math.isnan(v)


class AttributeType(Enum):
    """
    Type of an attribute.

    - NOMINAL: finite set of named values; tests branch once per value.
    - INTEGER: ordered integer values; tests compare against a cut value.
    - FLOAT:   ordered floating point values; tests compare against a cut value.
    """
    NOMINAL = "nominal"
    INTEGER = "integer"
    FLOAT = "float"


class Attribute:
    """A named attribute with a type and (for nominal attributes) a domain.

    Parameters
    ----------
    name : str
        Attribute name, unique within an attribute set.
    type : AttributeType, default=AttributeType.NOMINAL
        Type of the attribute.
    values : iterable of str, optional
        Value names of a nominal attribute, in value id order.

    Attributes
    ----------
    inst : Any
        Current instance value (value id or name for nominal attributes, a
        number for ordered ones, ``None`` if unknown).
    """

    def __init__(self, name: str, type: AttributeType = AttributeType.NOMINAL,
                 values: Iterable[str] | None = None):
        self.name = str(name)
        self.type = AttributeType(type)
        self._values: list[str] = []
        self._ids: dict[str, int] = {}
        self.inst: Any = None
        for v in values or ():
            self.add_value(v)

    def __repr__(self) -> str:
        if self.type is AttributeType.NOMINAL:
            return f"Attribute({self.name!r}, {self.type.value}, values={self._values!r})"
        return f"Attribute({self.name!r}, {self.type.value})"

    @property
    def is_nominal(self) -> bool:
        return self.type is AttributeType.NOMINAL

    @property
    def is_ordered(self) -> bool:
        return self.type is not AttributeType.NOMINAL

    @property
    def value_count(self) -> int:
        return len(self._values)

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(self._values)

    def add_value(self, name: str) -> int:
        """Add a value to the domain and return its id (existing id if known)."""
        name = str(name)
        if name in self._ids:
            return self._ids[name]
        self._ids[name] = len(self._values)
        self._values.append(name)
        return self._ids[name]

    def value_id(self, name: Any) -> int | None:
        """Return the id of a value name, or ``None`` if it is not in the domain."""
        return self._ids.get(str(name))

    def value_name(self, vid: int) -> str:
        return self._values[vid]

    def value_width(self) -> int:
        """Length of the longest value name."""
        return max((len(v) for v in self._values), default=0)

    def encode(self, v: Any) -> int | float | None:
        """
        Convert a column value to its internal form.

        Nominal attributes map value names to ids and pass non-negative
        integer ids through unchanged (they may lie outside the domain).
        Ordered attributes convert to float.  ``None``, NaN, unknown names
        and unconvertible values give ``None`` (null).
        """
        if v is None or _isnan_scalar(v):
            return None
        if self.is_nominal:
            if isinstance(v, numbers.Integral) and not isinstance(v, bool):
                return int(v) if v >= 0 else None
            return self.value_id(v)
        try:
            x = float(v)
        except (TypeError, ValueError):
            return None
        return None if math.isnan(x) else x


class AttributeSet:
    """Ordered collection of attributes, addressable by id or by name.

    Parameters
    ----------
    attributes : iterable of Attribute, optional
        Attributes in id order.
    """

    def __init__(self, attributes: Iterable[Attribute] | None = None):
        self._atts: list[Attribute] = []
        self._ids: dict[str, int] = {}
        for att in attributes or ():
            self.add(att)

    def __len__(self) -> int:
        return len(self._atts)

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self._atts)

    def __getitem__(self, key: int | str) -> Attribute:
        if isinstance(key, str):
            attid = self.attribute_id(key)
            if attid is None:
                raise KeyError(key)
            return self._atts[attid]
        return self._atts[key]

    def __repr__(self) -> str:
        return f"AttributeSet({[a.name for a in self._atts]!r})"

    def add(self, att: Attribute) -> int:
        """Append an attribute and return its id."""
        if att.name in self._ids:
            raise ValueError(f"duplicate attribute name {att.name!r}")
        self._ids[att.name] = len(self._atts)
        self._atts.append(att)
        return self._ids[att.name]

    def attribute_id(self, name: str) -> int | None:
        """Return the id of the named attribute, or ``None`` if unknown."""
        return self._ids.get(str(name))

    def names(self) -> list[str]:
        return [a.name for a in self._atts]

    def set_instance(self, row: Sequence[Any] | Mapping[str, Any]) -> None:
        """Copy a row into the current instance values of the attributes.

        ``row`` is either a sequence in attribute id order or a mapping from
        attribute names to values; attributes missing from a mapping are set
        to ``None``.
        """
        if isinstance(row, Mapping):
            for att in self._atts:
                att.inst = row.get(att.name)
        else:
            if len(row) != len(self._atts):
                raise ValueError("row length must match the number of attributes")
            for att, v in zip(self._atts, row):
                att.inst = v

    def instance(self) -> list[Any]:
        """Return the current instance values in attribute id order."""
        return [a.inst for a in self._atts]

    def row_value(self, row: Sequence[Any] | Mapping[Any, Any] | None, attid: int) -> Any:
        """Raw value of attribute ``attid`` in ``row``.

        ``row`` is a sequence in attribute id order, a mapping keyed by
        attribute name (or id), or ``None`` for the current instance values.
        Missing entries are ``None``.
        """
        att = self._atts[attid]
        if row is None:
            return att.inst
        if isinstance(row, Mapping):
            if att.name in row:
                return row[att.name]
            return row.get(attid)
        return row[attid] if attid < len(row) else None
