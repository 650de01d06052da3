"""Conversion configuration.

ConvertConfig holds everything one bpfgen run needs: where the sources are,
which targets to build, which toolchain to use and where output goes. The
CLI builds it from flags and environment variables; library callers may
construct it directly. It is read-only for the whole run and shared by all
targets, which write disjoint output paths.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

from ..errors import ConfigurationError
from .targets import GoArches, Target

_GO_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_go_identifier(value: str) -> bool:
    return bool(_GO_IDENTIFIER.match(value))


@dataclass(frozen=True)
class ConvertConfig:
    """Configuration of a conversion run.

    Attributes:
        sources: Absolute paths of the C files to compile and link together
        output_dir: Directory generated .o, .go and .d files are written to
        package: Go package name of the generated file
        ident_stem: Go identifier used as stem of generated types and functions
        targets: Targets to build, with the GOARCHes each one serves
        cc: C compiler binary
        strip: Strip binary (resolved to a full path before compiling)
        disable_stripping: Keep DWARF in the objects
        cflags: Extra compiler flags
        output_stem: Alternative stem for file names, defaults to ident_stem
        output_suffix: Suffix of generated file names such as "_test"
        tags: Extra build constraint expression for generated files
        make_base: Directory to write Makefile dependencies relative to,
            or None to skip writing .d files
    """

    sources: Tuple[Path, ...]
    output_dir: Path
    package: str
    ident_stem: str
    targets: Mapping[Target, GoArches]
    cc: str = "clang"
    strip: str = "llvm-strip"
    disable_stripping: bool = False
    cflags: Tuple[str, ...] = field(default_factory=tuple)
    output_stem: str = ""
    output_suffix: str = ""
    tags: Optional[str] = None
    make_base: Optional[Path] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sources", tuple(Path(s) for s in self.sources))
        object.__setattr__(self, "cflags", tuple(self.cflags))

    @property
    def output_stem_or_default(self) -> str:
        """File name stem: output_stem, or the lowercased identifier."""
        return self.output_stem or self.ident_stem.lower()

    @property
    def dependency_tracking(self) -> bool:
        return self.make_base is not None

    def validate(self) -> None:
        """Check the configuration before anything is compiled.

        Raises:
            ConfigurationError: If a required value is missing or malformed
        """
        if not self.package:
            raise ConfigurationError(
                "missing package, you should either set the --go-package flag or the GOPACKAGE env"
            )
        if not is_go_identifier(self.package):
            raise ConfigurationError(f"package {self.package!r} is not a valid Go identifier")
        if not is_go_identifier(self.ident_stem):
            raise ConfigurationError(f"ident {self.ident_stem!r} is not a valid Go identifier")
        if not self.cc:
            raise ConfigurationError("no compiler specified")
        if not self.sources:
            raise ConfigurationError("no source files specified")
        if not self.targets:
            raise ConfigurationError("no targets specified")
        for flag in self.cflags:
            if flag.startswith("-M"):
                raise ConfigurationError(f"use --makebase instead of {flag!r}")
        for name, value in (("--output-stem", self.output_stem), ("--output-suffix", self.output_suffix)):
            if "/" in value or "\\" in value:
                raise ConfigurationError(f"{name} {value!r} must not contain path separation characters")
