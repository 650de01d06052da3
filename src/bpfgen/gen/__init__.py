"""Reading compiled BPF objects and emitting Go bindings for them."""

from .elf_spec import CollectionSpec, ObjectLoadError, load_collection_spec
from .go_output import GenerateArgs, generate
from .identifier import identifier

__all__ = [
    "CollectionSpec",
    "GenerateArgs",
    "ObjectLoadError",
    "generate",
    "identifier",
    "load_collection_spec",
]
