"""
Factorio Mod Settings Converter Package

Converts the binary ``mod-settings.dat`` property tree into editable
structured text (JSON, TOML, YAML) and back, losslessly.

LAYERS:
-------
    model           Raw recursive property tree (Property, Settings)
    codec           Byte-exact binary encoding of the tree
    simple          Flattened "simple settings" view used for editing
    serialization   Simple settings <-> structured text
    cli             Command-line converter

The codec and the model know nothing about structured text.
The serialization layer knows nothing about the binary format.
"""

__version__ = "0.1.0"
