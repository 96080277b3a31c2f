"""
Binary Property Tree Codec (bytes <-> Settings).

Wire layout, little-endian throughout:
    header      4 x u16      major, minor, patch, build
    reserved    u8           must be 0 ("false")
    root        Property

    Property    u8 tag, u8 any_flag, payload
        NONE        (nothing)
        BOOL        u8
        DOUBLE      f64
        STRING      see below
        LIST        u32 count, count x Property
        DICTIONARY  u32 count, count x (String key, Property)
        INTEGER     i64

    String      u8 empty flag; if not empty: optimized u32 length, UTF-8 bytes
    Optimized   u8 length (0-254), or 0xFF followed by a u32 length

Booleans decode loosely: only byte 1 is true, every other byte is false.
They always encode strictly as 0/1.

Strings always encode with the "not empty" flag, even when empty,
so decode -> encode reproduces the original bytes exactly.
"""

from __future__ import annotations

import io
import logging
import struct
from typing import Any, BinaryIO, Dict, List

from modsettings.model import (
    BoolValue,
    DictionaryValue,
    DoubleValue,
    FactorioVersion,
    IntegerValue,
    ListValue,
    NoneValue,
    Property,
    PropertyType,
    PropertyValue,
    Settings,
    StringValue,
)

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<4H")
_U8 = struct.Struct("<B")
_U32 = struct.Struct("<I")
_F64 = struct.Struct("<d")
_I64 = struct.Struct("<q")

_U32_MAX = 0xFFFFFFFF
_LONG_LENGTH_MARKER = 0xFF
# maximum list/dictionary nesting accepted by decode
MAX_DEPTH = 128


class FormatError(Exception):
    """Raised when a byte stream is not a valid property tree file."""
    pass


class InvalidHeaderByte(FormatError):
    """The reserved byte after the version header is not 0."""
    pass


class UnknownTypeTag(FormatError):
    """A property tag byte outside the known variant set."""
    pass


class TruncatedStream(FormatError):
    """The stream ended before a field was fully read."""
    pass


class InvalidUtf8(FormatError):
    """String bytes are not valid UTF-8."""
    pass


class NestingTooDeep(FormatError):
    """Lists or dictionaries nested deeper than MAX_DEPTH."""
    pass


def _loose_bool(byte: int) -> bool:
    return byte == 1


class _Reader:
    """Reads fixed-size fields from a binary stream, tracking the offset."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.offset = 0
        self.depth = 0

    def read_exact(self, size: int, what: str) -> bytes:
        data = self._stream.read(size)
        if data is None:
            data = b""
        if len(data) != size:
            raise TruncatedStream(
                f"Unexpected end of stream at offset {self.offset:#x} while {what}: "
                f"needed {size} bytes, got {len(data)}"
            )
        self.offset += size
        return data

    def unpack(self, fmt: struct.Struct, what: str) -> Any:
        return fmt.unpack(self.read_exact(fmt.size, what))[0]

    def enter(self) -> None:
        if self.depth >= MAX_DEPTH:
            raise NestingTooDeep(
                f"Properties nested deeper than {MAX_DEPTH} levels at offset {self.offset:#x}"
            )
        self.depth += 1

    def leave(self) -> None:
        self.depth -= 1


def _read_version(reader: _Reader) -> FactorioVersion:
    major, minor, patch, build = _HEADER.unpack(reader.read_exact(_HEADER.size, "reading version header"))
    return FactorioVersion(major, minor, patch, build)


def _read_optimized_u32(reader: _Reader, what: str) -> int:
    length = reader.unpack(_U8, what)
    if length == _LONG_LENGTH_MARKER:
        return reader.unpack(_U32, what)
    return length


def _read_string(reader: _Reader, what: str) -> str:
    empty = reader.unpack(_U8, f"reading empty flag of {what}")
    if _loose_bool(empty):
        return ""
    length = _read_optimized_u32(reader, f"reading length of {what}")
    start = reader.offset
    raw = reader.read_exact(length, f"reading {what} of length {length}")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUtf8(f"Invalid UTF-8 in {what} at offset {start:#x}: {e}") from e


def _read_list(reader: _Reader) -> List[Property]:
    count = reader.unpack(_U32, "reading list count")
    return [_read_property(reader) for _ in range(count)]


def _read_dictionary(reader: _Reader) -> Dict[str, Property]:
    count = reader.unpack(_U32, "reading dictionary count")
    entries: Dict[str, Property] = {}
    for _ in range(count):
        key = _read_string(reader, "dictionary key")
        entries[key] = _read_property(reader)
    return entries


def _read_property(reader: _Reader) -> Property:
    tag_offset = reader.offset
    tag = reader.unpack(_U8, "reading property type")
    any_flag = _loose_bool(reader.unpack(_U8, "reading property flag"))

    try:
        ptype = PropertyType(tag)
    except ValueError:
        raise UnknownTypeTag(f"Unknown property type {tag:#x} at offset {tag_offset:#x}") from None

    if ptype is PropertyType.NONE:
        value: PropertyValue = NoneValue()
    elif ptype is PropertyType.BOOL:
        value = BoolValue(_loose_bool(reader.unpack(_U8, "reading bool")))
    elif ptype is PropertyType.DOUBLE:
        value = DoubleValue(reader.unpack(_F64, "reading double"))
    elif ptype is PropertyType.STRING:
        value = StringValue(_read_string(reader, "string value"))
    elif ptype is PropertyType.LIST:
        reader.enter()
        value = ListValue(_read_list(reader))
        reader.leave()
    elif ptype is PropertyType.DICTIONARY:
        reader.enter()
        value = DictionaryValue(_read_dictionary(reader))
        reader.leave()
    else:
        value = IntegerValue(reader.unpack(_I64, "reading integer"))

    return Property(value=value, any_flag=any_flag)


def decode(stream: BinaryIO) -> Settings:
    """
    Decode a complete settings file from a binary stream.

    Trailing bytes after the root property are not read.

    Args:
        stream: Readable binary file-like object

    Returns:
        Settings with the header version and root property

    Raises:
        FormatError: (or a subclass) if the stream is not a valid file
    """
    reader = _Reader(stream)
    version = _read_version(reader)
    reserved = reader.unpack(_U8, "reading reserved header byte")
    if reserved != 0:
        raise InvalidHeaderByte(f"Byte at {_HEADER.size:#x} should be false (0), got {reserved:#x}")
    logger.debug("Decoding property tree for version %s", version)
    root = _read_property(reader)
    logger.debug("Decoded property tree, %d bytes consumed", reader.offset)
    return Settings(version=version, properties=root)


def decode_bytes(data: bytes) -> Settings:
    """Decode a settings file held fully in memory."""
    return decode(io.BytesIO(data))


def _write_optimized_u32(stream: BinaryIO, value: int) -> None:
    if value > _U32_MAX:
        raise ValueError(f"Length {value} does not fit in u32")
    if value < _LONG_LENGTH_MARKER:
        stream.write(_U8.pack(value))
    else:
        stream.write(_U8.pack(_LONG_LENGTH_MARKER))
        stream.write(_U32.pack(value))


def _write_string(stream: BinaryIO, s: str) -> None:
    raw = s.encode("utf-8")
    # always "not empty", even for ""
    stream.write(_U8.pack(0))
    _write_optimized_u32(stream, len(raw))
    stream.write(raw)


def _write_count(stream: BinaryIO, count: int) -> None:
    if count > _U32_MAX:
        raise ValueError(f"Count {count} does not fit in u32")
    stream.write(_U32.pack(count))


def _write_property(stream: BinaryIO, prop: Property) -> None:
    value = prop.value
    if not isinstance(value, PropertyValue):
        raise TypeError(f"Unsupported property value type: {type(value)}")

    stream.write(_U8.pack(value.type.value))
    stream.write(_U8.pack(1 if prop.any_flag else 0))

    if isinstance(value, NoneValue):
        return
    if isinstance(value, BoolValue):
        stream.write(_U8.pack(1 if value.value else 0))
    elif isinstance(value, DoubleValue):
        stream.write(_F64.pack(value.value))
    elif isinstance(value, StringValue):
        _write_string(stream, value.value)
    elif isinstance(value, ListValue):
        _write_count(stream, len(value.items))
        for item in value.items:
            _write_property(stream, item)
    elif isinstance(value, DictionaryValue):
        _write_count(stream, len(value.entries))
        for key, child in value.entries.items():
            _write_string(stream, key)
            _write_property(stream, child)
    elif isinstance(value, IntegerValue):
        stream.write(_I64.pack(value.value))
    else:
        raise TypeError(f"Unsupported property value type: {type(value)}")


def encode(settings: Settings, stream: BinaryIO) -> None:
    """
    Encode settings to a binary stream, mirroring decode field for field.

    Args:
        settings: Settings to write
        stream: Writable binary file-like object
    """
    v = settings.version
    stream.write(_HEADER.pack(v.major, v.minor, v.patch, v.build))
    stream.write(_U8.pack(0))
    _write_property(stream, settings.properties)


def encode_bytes(settings: Settings) -> bytes:
    """Encode settings fully in memory."""
    buf = io.BytesIO()
    encode(settings, buf)
    return buf.getvalue()


__all__ = [
    "FormatError",
    "InvalidHeaderByte",
    "UnknownTypeTag",
    "TruncatedStream",
    "InvalidUtf8",
    "NestingTooDeep",
    "MAX_DEPTH",
    "decode",
    "decode_bytes",
    "encode",
    "encode_bytes",
]
