"""
Tests for the simple settings projection.

Tests verify that the projection:
    - Extracts the three sections in source order
    - Classifies each setting value
    - Rejects every structural deviation with a named error
    - Rebuilds a tree that the game would write byte for byte
"""

import pytest
from modsettings.codec import decode_bytes, encode_bytes
from modsettings.model import (
    BoolValue,
    DictionaryValue,
    DoubleValue,
    FactorioVersion,
    IntegerValue,
    ListValue,
    NoneValue,
    Property,
    Settings,
    StringValue,
)
from modsettings.simple import (
    BoolSetting,
    ColorSetting,
    IntegerSetting,
    NoneSetting,
    NumberSetting,
    SimpleSettings,
    StringSetting,
    StructuralError,
    from_simple,
    to_simple,
    value_from_setting,
)

VERSION = FactorioVersion(1, 1, 82, 4)


def entry(value) -> Property:
    return Property(DictionaryValue({"value": Property(value)}))


def tree(startup=None, runtime_global=None, runtime_per_user=None, omit=()) -> Settings:
    sections = {
        "startup": startup or {},
        "runtime-global": runtime_global or {},
        "runtime-per-user": runtime_per_user or {},
    }
    root = {
        name: Property(DictionaryValue(entries))
        for name, entries in sections.items()
        if name not in omit
    }
    return Settings(VERSION, Property(DictionaryValue(root)))


def color(**channels) -> DictionaryValue:
    return DictionaryValue({k: Property(DoubleValue(v)) for k, v in channels.items()})


class TestToSimple:
    def test_sample_file(self, sample_bytes):
        simple = to_simple(decode_bytes(sample_bytes))
        assert simple.factorio_version == VERSION
        assert simple.startup == {"my-string-setting": StringSetting("deadbeef")}
        assert simple.runtime_global == {}
        assert simple.runtime_per_user == {}

    def test_value_classification(self):
        settings = tree(startup={
            "flag": entry(BoolValue(True)),
            "ratio": entry(DoubleValue(0.75)),
            "count": entry(IntegerValue(12)),
            "label": entry(StringValue("iron")),
            "tint": entry(color(r=0.1, g=0.2, b=0.3, a=0.4)),
        })
        simple = to_simple(settings)
        assert simple.startup == {
            "flag": BoolSetting(True),
            "ratio": NumberSetting(0.75),
            "count": IntegerSetting(12),
            "label": StringSetting("iron"),
            "tint": ColorSetting(0.1, 0.2, 0.3, 0.4),
        }

    def test_color_channels_are_independent(self):
        """Each channel comes from its own key, not all from r."""
        settings = tree(runtime_per_user={"tint": entry(color(r=1.0, g=0.0, b=0.5, a=0.25))})
        tint = to_simple(settings).runtime_per_user["tint"]
        assert (tint.r, tint.g, tint.b, tint.a) == (1.0, 0.0, 0.5, 0.25)

    def test_color_channel_may_be_integer(self):
        value = DictionaryValue({
            "r": Property(IntegerValue(1)),
            "g": Property(IntegerValue(0)),
            "b": Property(DoubleValue(0.5)),
            "a": Property(IntegerValue(1)),
        })
        tint = to_simple(tree(startup={"tint": entry(value)})).startup["tint"]
        assert tint == ColorSetting(1.0, 0.0, 0.5, 1.0)

    def test_order_preserved(self):
        settings = tree(runtime_global={
            "zeta": entry(BoolValue(False)),
            "alpha": entry(BoolValue(True)),
            "mid": entry(DoubleValue(1.0)),
        })
        assert list(to_simple(settings).runtime_global) == ["zeta", "alpha", "mid"]


class TestToSimpleErrors:
    """Every deviation is a StructuralError naming what is wrong."""

    @pytest.mark.parametrize("section", ["startup", "runtime-global", "runtime-per-user"])
    def test_missing_section(self, section):
        with pytest.raises(StructuralError, match=f"Missing {section} settings"):
            to_simple(tree(omit=(section,)))

    def test_root_not_dictionary(self):
        with pytest.raises(StructuralError, match="Main properties"):
            to_simple(Settings(VERSION, Property(ListValue([]))))

    def test_section_not_dictionary(self):
        settings = tree()
        settings.properties.as_dictionary()["runtime-global"] = Property(StringValue("oops"))
        with pytest.raises(StructuralError, match="runtime-global settings is not a dictionary"):
            to_simple(settings)

    def test_setting_not_dictionary(self):
        settings = tree(startup={"bad": Property(BoolValue(True))})
        with pytest.raises(StructuralError, match="startup/bad: mod setting should be a dictionary"):
            to_simple(settings)

    def test_missing_value_property(self):
        settings = tree(startup={"bad": Property(DictionaryValue({"val": Property(BoolValue(True))}))})
        with pytest.raises(StructuralError, match="startup/bad: mod setting dictionary missing value property"):
            to_simple(settings)

    @pytest.mark.parametrize("value", [NoneValue(), ListValue([])])
    def test_unsupported_value_type(self, value):
        with pytest.raises(StructuralError, match="invalid type for value parameter"):
            to_simple(tree(startup={"bad": entry(value)}))

    @pytest.mark.parametrize("missing, label", [("r", "red"), ("g", "green"), ("b", "blue"), ("a", "alpha")])
    def test_color_missing_channel(self, missing, label):
        channels = {k: 1.0 for k in "rgba" if k != missing}
        with pytest.raises(StructuralError, match=rf"missing {missing} \({label}\) value"):
            to_simple(tree(startup={"tint": entry(color(**channels))}))

    def test_color_channel_not_number(self):
        value = color(r=1.0, b=1.0, a=1.0)
        value.entries["g"] = Property(StringValue("0.5"))
        with pytest.raises(StructuralError, match=r"g \(green\) value is not number"):
            to_simple(tree(startup={"tint": entry(value)}))


class TestFromSimple:
    def test_rebuilds_sample_file_byte_for_byte(self, sample_bytes):
        simple = SimpleSettings(
            factorio_version=VERSION,
            startup={"my-string-setting": StringSetting("deadbeef")},
        )
        assert encode_bytes(from_simple(simple)) == sample_bytes

    def test_structure(self):
        simple = SimpleSettings(
            factorio_version=FactorioVersion(2, 0, 28, 0),
            runtime_global={"tint": ColorSetting(0.1, 0.2, 0.3, 0.4), "nothing": NoneSetting()},
        )
        settings = from_simple(simple)
        assert settings.version == FactorioVersion(2, 0, 28, 0)
        root = settings.properties
        assert root.any_flag is False
        assert list(root.as_dictionary()) == ["startup", "runtime-global", "runtime-per-user"]

        tint = root.get("runtime-global").get("tint")
        assert tint.any_flag is False
        assert list(tint.as_dictionary()) == ["value"]
        channels = tint.get("value").as_dictionary()
        assert list(channels) == ["r", "g", "b", "a"]
        assert channels["g"].value == DoubleValue(0.2)

        assert root.get("runtime-global").get("nothing").get("value").value == NoneValue()

    def test_projection_roundtrip(self):
        simple = SimpleSettings(
            factorio_version=FactorioVersion(2, 0, 28, 0),
            startup={"b": BoolSetting(False), "n": NumberSetting(3.5)},
            runtime_global={"i": IntegerSetting(-9), "s": StringSetting("")},
            runtime_per_user={"c": ColorSetting(1.0, 0.5, 0.25, 0.0)},
        )
        assert to_simple(from_simple(simple)) == simple

    def test_projection_roundtrip_through_bytes(self):
        simple = SimpleSettings(
            factorio_version=VERSION,
            startup={"x": StringSetting("ünïcode"), "y": NumberSetting(-0.0)},
        )
        assert to_simple(decode_bytes(encode_bytes(from_simple(simple)))) == simple

    def test_no_aliasing(self):
        simple = SimpleSettings(factorio_version=VERSION, startup={"b": BoolSetting(True)})
        result = to_simple(from_simple(simple))
        result.startup["new"] = BoolSetting(False)
        assert "new" not in simple.startup


def test_section_lookup():
    simple = SimpleSettings(factorio_version=VERSION)
    assert simple.section("runtime-per-user") is simple.runtime_per_user
    with pytest.raises(KeyError):
        simple.section("runtime")


def test_value_from_setting_builds_raw_values():
    assert value_from_setting(NoneSetting()) == NoneValue()
    assert value_from_setting(IntegerSetting(5)) == IntegerValue(5)
    assert value_from_setting(NumberSetting(5.0)) == DoubleValue(5.0)
    tint = value_from_setting(ColorSetting(0.1, 0.2, 0.3, 0.4))
    assert isinstance(tint, DictionaryValue)
    assert [p.value for p in tint.entries.values()] == [
        DoubleValue(0.1), DoubleValue(0.2), DoubleValue(0.3), DoubleValue(0.4),
    ]
