"""
bpfgen - compile C sources to BPF and generate Go bindings that embed them.

The package is organised like a small build system:
- build: targets, toolchain steps, depfile handling and orchestration
- gen: reading compiled objects and writing the Go binding
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
