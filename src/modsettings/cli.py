"""Factorio mod settings converter CLI.

Decodes ``mod-settings.dat`` into JSON/TOML/YAML, or encodes an edited
text file back into the binary format. Mode and format are inferred from
file extensions when not given explicitly.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Final, Optional

import typer

from modsettings import codec, serialization
from modsettings.codec import FormatError
from modsettings.serialization import SerializationError
from modsettings.simple import StructuralError, from_simple, to_simple

app = typer.Typer(help="Convert Factorio mod-settings.dat to and from structured text", add_completion=False)

logger: Final = logging.getLogger(__name__)

STDIO: Final = "-"


class Mode(Enum):
    DECODE = "decode"
    ENCODE = "encode"


class Format(Enum):
    TOML = "toml"
    JSON = "json"
    YAML = "yaml"


_MODE_NAMES: Final = {"decode": Mode.DECODE, "d": Mode.DECODE, "encode": Mode.ENCODE, "e": Mode.ENCODE}
_FORMAT_NAMES: Final = {
    "toml": Format.TOML,
    "t": Format.TOML,
    "json": Format.JSON,
    "j": Format.JSON,
    "yaml": Format.YAML,
    "y": Format.YAML,
}
_BINARY_SUFFIX: Final = ".dat"
_TEXT_SUFFIXES: Final = {".toml": Format.TOML, ".json": Format.JSON, ".yaml": Format.YAML, ".yml": Format.YAML}


class InferenceError(Exception):
    """Raised when mode or format cannot be worked out from the arguments."""
    pass


def _suffix(path: Optional[Path]) -> str:
    if path is None or str(path) == STDIO:
        return ""
    return path.suffix.lower()


def parse_mode(name: Optional[str]) -> Optional[Mode]:
    if name is None:
        return None
    try:
        return _MODE_NAMES[name.lower()]
    except KeyError:
        raise typer.BadParameter(f"unknown mode {name!r} (expected encode/e or decode/d)") from None


def parse_format(name: Optional[str]) -> Optional[Format]:
    if name is None:
        return None
    try:
        return _FORMAT_NAMES[name.lower()]
    except KeyError:
        raise typer.BadParameter(f"unknown format {name!r} (expected toml/t, json/j or yaml/y)") from None


def infer_mode(input: Path, output: Optional[Path]) -> Mode:
    """Infer the mode from the output extension, then the input extension."""
    out_suffix = _suffix(output)
    if out_suffix == _BINARY_SUFFIX:
        return Mode.ENCODE
    if out_suffix in _TEXT_SUFFIXES:
        return Mode.DECODE

    in_suffix = _suffix(input)
    if in_suffix == _BINARY_SUFFIX:
        return Mode.DECODE
    if in_suffix in _TEXT_SUFFIXES:
        return Mode.ENCODE
    raise InferenceError("Could not infer mode from input or output file names, use --mode")


def infer_format(mode: Mode, input: Path, output: Optional[Path]) -> Format:
    """Infer the text format from the text-side path (output when decoding, input when encoding)."""
    text_side = output if mode is Mode.DECODE else input
    fmt = _TEXT_SUFFIXES.get(_suffix(text_side))
    if fmt is None:
        raise InferenceError(f"Could not infer {mode.value} format from file name, use --format")
    return fmt


def decode_to_text(data: bytes, fmt: Format) -> str:
    """Binary settings -> structured text."""
    simple = to_simple(codec.decode_bytes(data))
    if fmt is Format.JSON:
        return serialization.simple_to_json(simple)
    if fmt is Format.TOML:
        return serialization.simple_to_toml(simple)
    return serialization.simple_to_yaml(simple)


def encode_from_text(text: str, fmt: Format) -> bytes:
    """Structured text -> binary settings."""
    if fmt is Format.JSON:
        simple = serialization.simple_from_json(text)
    elif fmt is Format.TOML:
        simple = serialization.simple_from_toml(text)
    else:
        simple = serialization.simple_from_yaml(text)
    return codec.encode_bytes(from_simple(simple))


def _read_input(input: Path) -> bytes:
    if str(input) == STDIO:
        return sys.stdin.buffer.read()
    return input.read_bytes()


def _write_output(output: Optional[Path], data: bytes) -> None:
    if output is None or str(output) == STDIO:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    output.write_bytes(data)


@app.command()
def convert(
    input: Path = typer.Argument(..., help='The input path to read settings from. Use "-" for stdin'),
    output: Optional[Path] = typer.Argument(None, help="The output file. Overwrites if present. Stdout if omitted"),
    mode_name: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="encode (e) or decode (d). Inferred from output, then input, file name if omitted",
    ),
    format_name: Optional[str] = typer.Option(
        None,
        "--format",
        "-f",
        help="toml (t), json (j) or yaml (y). Inferred from the text-side file name if omitted",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Decode mod-settings.dat to text, or encode text back to mod-settings.dat."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    selected_mode = parse_mode(mode_name)
    selected_format = parse_format(format_name)

    try:
        if selected_mode is None:
            selected_mode = infer_mode(input, output)
        if selected_format is None:
            selected_format = infer_format(selected_mode, input, output)
        logger.debug("Mode %s, format %s", selected_mode.value, selected_format.value)

        try:
            raw = _read_input(input)
        except OSError as e:
            raise OSError(f"Opening input {input}: {e}") from e

        if selected_mode is Mode.DECODE:
            result = decode_to_text(raw, selected_format).encode("utf-8")
        else:
            result = encode_from_text(raw.decode("utf-8"), selected_format)

        try:
            _write_output(output, result)
        except OSError as e:
            raise OSError(f"Writing output {output if output is not None else 'stdout'}: {e}") from e
    except (
        InferenceError,
        FormatError,
        StructuralError,
        SerializationError,
        UnicodeDecodeError,
        OSError,
    ) as exc:
        logger.debug("Conversion failed", exc_info=True)
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
