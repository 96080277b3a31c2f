"""
Core Property Tree Objects

Defines the raw recursive data model persisted in ``mod-settings.dat``.

These are plain data classes representing:
    - FactorioVersion (file header)
    - Property (the single recursive node type)
    - PropertyValue variants (the tagged union carried by each node)
    - Settings (root container)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about bytes or structured text
        - Form a strict ownership tree (no shared children, no cycles)
        - Preserve dictionary insertion order (wire order is significant)
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Optional

_U16_MAX = 0xFFFF


@dataclass(frozen=True, order=True)
class FactorioVersion:
    """
    Game version stored in the file header.

    Ordering is lexicographic over (major, minor, patch, build),
    which is exactly the dataclass field order.

    Properties:
        major, minor, patch, build: unsigned 16-bit integers
    """

    major: int
    minor: int
    patch: int
    build: int

    def __post_init__(self) -> None:
        for name in ("major", "minor", "patch", "build"):
            part = getattr(self, name)
            if isinstance(part, bool) or not isinstance(part, int):
                raise ValueError(f"Version {name} must be an integer, got {part!r}")
            if not 0 <= part <= _U16_MAX:
                raise ValueError(f"Version {name} out of u16 range: {part}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}.{self.build}"


class PropertyType(Enum):
    """
    Wire tag of each property variant.

    INTEGER only appears in the newer file revision. Older files use
    DOUBLE for every numeric leaf and simply never contain tag 6.
    """

    NONE = 0
    BOOL = 1
    DOUBLE = 2
    STRING = 3
    LIST = 4
    DICTIONARY = 5
    INTEGER = 6


class PropertyValue(ABC):
    """
    Base class for the tagged union carried by a Property.

    Subclasses are the closed set of variants. Consumers dispatch on
    them with isinstance and raise TypeError for anything unknown.
    """

    type: ClassVar[PropertyType]


@dataclass
class NoneValue(PropertyValue):
    type: ClassVar[PropertyType] = PropertyType.NONE


@dataclass
class BoolValue(PropertyValue):
    type: ClassVar[PropertyType] = PropertyType.BOOL

    value: bool


@dataclass
class DoubleValue(PropertyValue):
    type: ClassVar[PropertyType] = PropertyType.DOUBLE

    value: float


@dataclass
class StringValue(PropertyValue):
    type: ClassVar[PropertyType] = PropertyType.STRING

    value: str


@dataclass
class ListValue(PropertyValue):
    """Ordered sequence of child properties."""

    type: ClassVar[PropertyType] = PropertyType.LIST

    items: List[Property] = field(default_factory=list)


@dataclass
class DictionaryValue(PropertyValue):
    """
    Ordered mapping from string key to child property.

    Insertion order is the wire order and must survive decode -> encode.
    """

    type: ClassVar[PropertyType] = PropertyType.DICTIONARY

    entries: Dict[str, Property] = field(default_factory=dict)


@dataclass
class IntegerValue(PropertyValue):
    """Signed 64-bit integer leaf (newer file revision only)."""

    type: ClassVar[PropertyType] = PropertyType.INTEGER

    value: int


@dataclass
class Property:
    """
    A single node of the property tree.

    Properties:
        value:
            One of the PropertyValue variants

        any_flag:
            Per-node flag whose meaning is opaque to us.
            Preserved verbatim; False when synthesized.
    """

    value: PropertyValue
    any_flag: bool = False

    def as_dictionary(self) -> Optional[Dict[str, Property]]:
        """Return the child mapping, or None if this is not a dictionary."""
        if isinstance(self.value, DictionaryValue):
            return self.value.entries
        return None

    def get(self, key: str) -> Optional[Property]:
        """
        Look up a child by key.

        Returns:
            Child property, or None if missing or this is not a dictionary
        """
        entries = self.as_dictionary()
        if entries is None:
            return None
        return entries.get(key)

    def as_number(self) -> Optional[float]:
        """Numeric leaf as float (Double or Integer), else None."""
        if isinstance(self.value, (DoubleValue, IntegerValue)):
            return float(self.value.value)
        return None


@dataclass
class Settings:
    """
    Root container: the file header version plus the root property.

    The root property is expected to be a dictionary holding the
    three setting sections, but that is only enforced by the
    projection layer. The codec accepts any root.
    """

    version: FactorioVersion
    properties: Property
