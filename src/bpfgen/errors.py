"""Exception types shared across bpfgen.

Module-specific failures (compiler, linker, depfile parsing, ELF loading)
are defined next to the code that raises them and derive from BpfGenError,
so the CLI can report any of them with a single handler.
"""


class BpfGenError(Exception):
    """Base class for all errors raised by bpfgen."""
    pass


class ConfigurationError(BpfGenError):
    """Raised when flags, environment or identifiers are missing or invalid."""
    pass


class SourceNotFoundError(BpfGenError):
    """Raised when a declared source file does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"file {path} doesn't exist")
