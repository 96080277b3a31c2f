"""
Serialization helpers for SimpleSettings.

Provides lossless JSON/TOML/YAML round-trip via an intermediate dict
representation:

    {
        "factorio_version": {"major": 1, "minor": 1, "patch": 82, "build": 4},
        "startup": {"<name>": {"type": "Bool", "value": true}, ...},
        "runtime-global": {...},
        "runtime-per-user": {...},
    }

Setting order is preserved by every encoding (no key sorting).
"""
from __future__ import annotations

import json
import tomllib
from typing import Any, Dict

import tomli_w
import yaml

from modsettings.model import FactorioVersion
from modsettings.simple import (
    SECTIONS,
    BoolSetting,
    ColorSetting,
    IntegerSetting,
    NoneSetting,
    NumberSetting,
    SettingValue,
    SimpleSettings,
    StringSetting,
)

_VERSION_FIELDS = ("major", "minor", "patch", "build")
_I64_MIN = -(2 ** 63)
_I64_MAX = 2 ** 63 - 1


class SerializationError(Exception):
    """Raised when structured text does not describe valid simple settings."""
    pass


def _number(where: str, raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise SerializationError(f"{where}: expected a number, got {raw!r}")
    try:
        return float(raw)
    except OverflowError:
        raise SerializationError(f"{where}: number out of float range") from None


def setting_to_dict(v: SettingValue) -> Dict[str, Any]:
    if isinstance(v, NoneSetting):
        return {"type": v.type_name}
    if isinstance(v, ColorSetting):
        return {"type": v.type_name, "value": {"r": v.r, "g": v.g, "b": v.b, "a": v.a}}
    if isinstance(v, (BoolSetting, NumberSetting, StringSetting, IntegerSetting)):
        return {"type": v.type_name, "value": v.value}
    raise TypeError(f"Unsupported SettingValue type: {type(v)}")


def setting_from_dict(where: str, d: Any) -> SettingValue:
    if not isinstance(d, dict):
        raise SerializationError(f"{where}: expected a table with type and value, got {d!r}")
    t = d.get("type")
    if t == NoneSetting.type_name:
        return NoneSetting()
    if "value" not in d:
        raise SerializationError(f"{where}: missing value for {t} setting")
    raw = d["value"]
    if t == BoolSetting.type_name:
        if not isinstance(raw, bool):
            raise SerializationError(f"{where}: expected a boolean, got {raw!r}")
        return BoolSetting(raw)
    if t == NumberSetting.type_name:
        return NumberSetting(_number(where, raw))
    if t == IntegerSetting.type_name:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise SerializationError(f"{where}: expected an integer, got {raw!r}")
        if not _I64_MIN <= raw <= _I64_MAX:
            raise SerializationError(f"{where}: integer {raw} does not fit in 64 bits")
        return IntegerSetting(raw)
    if t == StringSetting.type_name:
        if not isinstance(raw, str):
            raise SerializationError(f"{where}: expected a string, got {raw!r}")
        return StringSetting(raw)
    if t == ColorSetting.type_name:
        if not isinstance(raw, dict):
            raise SerializationError(f"{where}: expected a color table, got {raw!r}")
        missing = [c for c in "rgba" if c not in raw]
        if missing:
            raise SerializationError(f"{where}: color missing channel(s) {', '.join(missing)}")
        return ColorSetting(**{c: _number(f"{where}.{c}", raw[c]) for c in "rgba"})
    raise SerializationError(f"{where}: unknown setting type {t!r}")


def version_to_dict(v: FactorioVersion) -> Dict[str, int]:
    return {"major": v.major, "minor": v.minor, "patch": v.patch, "build": v.build}


def version_from_dict(d: Any) -> FactorioVersion:
    if not isinstance(d, dict):
        raise SerializationError(f"factorio_version: expected a table, got {d!r}")
    missing = [f for f in _VERSION_FIELDS if f not in d]
    if missing:
        raise SerializationError(f"factorio_version: missing {', '.join(missing)}")
    try:
        return FactorioVersion(**{f: d[f] for f in _VERSION_FIELDS})
    except ValueError as e:
        raise SerializationError(f"factorio_version: {e}") from e


def simple_to_dict(s: SimpleSettings) -> Dict[str, Any]:
    d: Dict[str, Any] = {"factorio_version": version_to_dict(s.factorio_version)}
    for name in SECTIONS:
        d[name] = {key: setting_to_dict(v) for key, v in s.section(name).items()}
    return d


def simple_from_dict(d: Any) -> SimpleSettings:
    if not isinstance(d, dict):
        raise SerializationError(f"Expected a top-level table, got {type(d).__name__}")
    if "factorio_version" not in d:
        raise SerializationError("Missing factorio_version")
    s = SimpleSettings(factorio_version=version_from_dict(d["factorio_version"]))
    for name in SECTIONS:
        section = d.get(name, {})
        if not isinstance(section, dict):
            raise SerializationError(f"{name}: expected a table, got {section!r}")
        target = s.section(name)
        for key, value in section.items():
            target[key] = setting_from_dict(f"{name}/{key}", value)
    return s


def simple_to_json(s: SimpleSettings) -> str:
    return json.dumps(simple_to_dict(s), indent=2) + "\n"


def simple_from_json(s: str) -> SimpleSettings:
    try:
        d = json.loads(s)
    except ValueError as e:
        raise SerializationError(f"Invalid JSON: {e}") from e
    return simple_from_dict(d)


def simple_to_toml(s: SimpleSettings) -> str:
    return tomli_w.dumps(simple_to_dict(s))


def simple_from_toml(s: str) -> SimpleSettings:
    try:
        d = tomllib.loads(s)
    except tomllib.TOMLDecodeError as e:
        raise SerializationError(f"Invalid TOML: {e}") from e
    return simple_from_dict(d)


def simple_to_yaml(s: SimpleSettings) -> str:
    return yaml.safe_dump(simple_to_dict(s), sort_keys=False)


def simple_from_yaml(s: str) -> SimpleSettings:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise SerializationError(f"Invalid YAML: {e}") from e
    return simple_from_dict(d)
