"""Binary persistence for ternary layers."""

from trinet.storage.serialization import (
    FORMAT_VERSION,
    MAGIC,
    deserialize,
    load_layers,
    save_layers,
    serialize,
)

__all__ = ["MAGIC", "FORMAT_VERSION", "serialize", "deserialize", "save_layers", "load_layers"]
