"""
Simple Settings Projection (raw property tree <-> editable view).

The raw tree stored by the game looks like:

    root (dictionary)
        startup (dictionary)
            <setting name> (dictionary)
                value: <bool | double | integer | string | color dictionary>
        runtime-global (dictionary)
        runtime-per-user (dictionary)

SimpleSettings flattens each setting down to its value, with a closed
set of SettingValue variants. The projection is strict: anything that
does not fit this shape is a StructuralError, never silently dropped.
"""

from __future__ import annotations

import logging
from abc import ABC
from dataclasses import dataclass, field
from typing import ClassVar, Dict

from modsettings.model import (
    BoolValue,
    DictionaryValue,
    DoubleValue,
    FactorioVersion,
    IntegerValue,
    NoneValue,
    Property,
    PropertyValue,
    Settings,
    StringValue,
)

logger = logging.getLogger(__name__)

STARTUP = "startup"
RUNTIME_GLOBAL = "runtime-global"
RUNTIME_PER_USER = "runtime-per-user"
SECTIONS = (STARTUP, RUNTIME_GLOBAL, RUNTIME_PER_USER)

_COLOR_CHANNELS = (("r", "red"), ("g", "green"), ("b", "blue"), ("a", "alpha"))


class StructuralError(Exception):
    """Raised when a property tree does not have the mod settings shape."""
    pass


class SettingValue(ABC):
    """
    Base class for the value of a single mod setting.

    ``type_name`` is the tag used in structured text.
    """

    type_name: ClassVar[str]


@dataclass
class NoneSetting(SettingValue):
    type_name: ClassVar[str] = "None"


@dataclass
class BoolSetting(SettingValue):
    type_name: ClassVar[str] = "Bool"

    value: bool


@dataclass
class NumberSetting(SettingValue):
    type_name: ClassVar[str] = "Number"

    value: float


@dataclass
class StringSetting(SettingValue):
    type_name: ClassVar[str] = "String"

    value: str


@dataclass
class ColorSetting(SettingValue):
    """RGBA color, each channel a double."""

    type_name: ClassVar[str] = "Color"

    r: float
    g: float
    b: float
    a: float


@dataclass
class IntegerSetting(SettingValue):
    """Integer setting (newer file revision only)."""

    type_name: ClassVar[str] = "Integer"

    value: int


@dataclass
class SimpleSettings:
    """
    Editable view of a settings file.

    Properties:
        factorio_version:
            Header version, carried through unchanged

        startup, runtime_global, runtime_per_user:
            Ordered mappings from setting name to SettingValue,
            in the same order as the source file
    """

    factorio_version: FactorioVersion
    startup: Dict[str, SettingValue] = field(default_factory=dict)
    runtime_global: Dict[str, SettingValue] = field(default_factory=dict)
    runtime_per_user: Dict[str, SettingValue] = field(default_factory=dict)

    def section(self, name: str) -> Dict[str, SettingValue]:
        """
        Retrieve a section mapping by its file name.

        Args:
            name: "startup", "runtime-global" or "runtime-per-user"

        Raises:
            KeyError: for any other name
        """
        if name == STARTUP:
            return self.startup
        if name == RUNTIME_GLOBAL:
            return self.runtime_global
        if name == RUNTIME_PER_USER:
            return self.runtime_per_user
        raise KeyError(name)


def _color_from_dictionary(where: str, color: Property) -> ColorSetting:
    channels = {}
    for key, label in _COLOR_CHANNELS:
        channel = color.get(key)
        if channel is None:
            raise StructuralError(
                f"{where}: mod setting value is dictionary - assuming color - "
                f"missing {key} ({label}) value"
            )
        number = channel.as_number()
        if number is None:
            raise StructuralError(
                f"{where}: mod setting value is dictionary - assuming color - "
                f"{key} ({label}) value is not number"
            )
        channels[key] = number
    return ColorSetting(**channels)


def setting_from_property(where: str, prop: Property) -> SettingValue:
    """
    Classify one setting node.

    Args:
        where: "<section>/<name>" used in error messages
        prop: The per-setting dictionary node

    Raises:
        StructuralError: if the node is not {"value": <supported leaf>}
    """
    if not isinstance(prop.value, DictionaryValue):
        raise StructuralError(f"{where}: mod setting should be a dictionary")
    inner = prop.get("value")
    if inner is None:
        raise StructuralError(f"{where}: mod setting dictionary missing value property")

    value = inner.value
    if isinstance(value, BoolValue):
        return BoolSetting(value.value)
    if isinstance(value, DoubleValue):
        return NumberSetting(value.value)
    if isinstance(value, IntegerValue):
        return IntegerSetting(value.value)
    if isinstance(value, StringValue):
        return StringSetting(value.value)
    if isinstance(value, DictionaryValue):
        return _color_from_dictionary(where, inner)
    raise StructuralError(f"{where}: invalid type for value parameter: {value.type.name}")


def _section_from_root(root: Property, name: str) -> Dict[str, SettingValue]:
    section = root.get(name)
    if section is None:
        raise StructuralError(f"Missing {name} settings")
    entries = section.as_dictionary()
    if entries is None:
        raise StructuralError(f"{name} settings is not a dictionary")
    return {key: setting_from_property(f"{name}/{key}", prop) for key, prop in entries.items()}


def to_simple(settings: Settings) -> SimpleSettings:
    """
    Project a raw settings tree onto the simple view.

    Raises:
        StructuralError: if any part of the tree has an unexpected shape
    """
    root = settings.properties
    if not isinstance(root.value, DictionaryValue):
        raise StructuralError("Main properties is not a dictionary")

    simple = SimpleSettings(
        factorio_version=settings.version,
        startup=_section_from_root(root, STARTUP),
        runtime_global=_section_from_root(root, RUNTIME_GLOBAL),
        runtime_per_user=_section_from_root(root, RUNTIME_PER_USER),
    )
    logger.debug(
        "Simplified settings: %d startup, %d runtime-global, %d runtime-per-user",
        len(simple.startup),
        len(simple.runtime_global),
        len(simple.runtime_per_user),
    )
    return simple


def _leaf(value: PropertyValue) -> Property:
    return Property(value=value, any_flag=False)


def value_from_setting(setting: SettingValue) -> PropertyValue:
    """Build the raw leaf (or color dictionary) for one setting value."""
    if isinstance(setting, NoneSetting):
        return NoneValue()
    if isinstance(setting, BoolSetting):
        return BoolValue(setting.value)
    if isinstance(setting, NumberSetting):
        return DoubleValue(setting.value)
    if isinstance(setting, IntegerSetting):
        return IntegerValue(setting.value)
    if isinstance(setting, StringSetting):
        return StringValue(setting.value)
    if isinstance(setting, ColorSetting):
        return DictionaryValue({
            "r": _leaf(DoubleValue(setting.r)),
            "g": _leaf(DoubleValue(setting.g)),
            "b": _leaf(DoubleValue(setting.b)),
            "a": _leaf(DoubleValue(setting.a)),
        })
    raise TypeError(f"Unsupported SettingValue type: {type(setting)}")


def _section_to_property(section: Dict[str, SettingValue]) -> Property:
    entries = {
        name: _leaf(DictionaryValue({"value": _leaf(value_from_setting(setting))}))
        for name, setting in section.items()
    }
    return _leaf(DictionaryValue(entries))


def from_simple(simple: SimpleSettings) -> Settings:
    """Build a raw settings tree from the simple view. Never fails for valid SettingValues."""
    root = DictionaryValue({name: _section_to_property(simple.section(name)) for name in SECTIONS})
    return Settings(version=simple.factorio_version, properties=_leaf(root))


__all__ = [
    "STARTUP",
    "RUNTIME_GLOBAL",
    "RUNTIME_PER_USER",
    "SECTIONS",
    "StructuralError",
    "SettingValue",
    "NoneSetting",
    "BoolSetting",
    "NumberSetting",
    "StringSetting",
    "ColorSetting",
    "IntegerSetting",
    "SimpleSettings",
    "setting_from_property",
    "value_from_setting",
    "to_simple",
    "from_simple",
]
