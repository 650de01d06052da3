"""Compilation targets.

A Target is a clang BPF target (bpf, bpfel or bpfeb) optionally paired with
the Linux architecture name used for __TARGET_ARCH_ defines. Each Target
maps to the set of Go architectures (GOARCH values) whose generated binding
gets a build constraint for it.
"""

import platform
from dataclasses import dataclass
from typing import Dict, List, Optional, TextIO, Tuple

from rich.console import Console
from rich.table import Table

from ..errors import ConfigurationError


class InvalidTargetError(ConfigurationError):
    """Raised when a target id is neither a clang BPF target nor a known GOARCH."""

    def __init__(self, target_id: str):
        self.target_id = target_id
        super().__init__(f"{target_id!r}: not a valid target")


@dataclass(frozen=True)
class Target:
    """An instruction set and byte order pair to compile for."""

    clang: str
    linux: str = ""

    def suffix(self) -> str:
        """Suffix used in generated file names, e.g. "x86_bpfel"."""
        if self.linux:
            return f"{self.linux}_{self.clang}"
        return self.clang

    def obsolete_suffix(self) -> str:
        """Suffix of the old naming scheme, or "" if the target never had one.

        The old scheme put the clang target first ("bpfel_x86"), which the go
        toolchain reads as a GOOS/GOARCH file name constraint.
        """
        if not self.linux:
            return ""
        return f"{self.clang}_{self.linux}"

    def is_generic(self) -> bool:
        return not self.linux


class GoArches(tuple):
    """A sorted set of GOARCH values guarded by one build constraint."""

    def __new__(cls, arches=()):
        return super().__new__(cls, sorted(set(arches)))

    def constraint(self) -> Optional[str]:
        """Build constraint matching any of the arches, or None if empty."""
        if not self:
            return None
        return " || ".join(self)


TARGETS_BY_GOARCH: Dict[str, Target] = {
    "386": Target("bpfel", "x86"),
    "amd64": Target("bpfel", "x86"),
    "arm": Target("bpfel", "arm"),
    "arm64": Target("bpfel", "arm64"),
    "loong64": Target("bpfel", "loongarch"),
    "mips": Target("bpfeb", "mips"),
    "mipsle": Target("bpfel"),
    "mips64": Target("bpfeb"),
    "mips64le": Target("bpfel"),
    "ppc64": Target("bpfeb", "powerpc"),
    "ppc64le": Target("bpfel", "powerpc"),
    "riscv64": Target("bpfel", "riscv"),
    "s390x": Target("bpfeb", "s390"),
}

GENERIC_TARGETS = ("bpf", "bpfel", "bpfeb")

# platform.machine() values that differ from their GOARCH name
_MACHINE_TO_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "loongarch64": "loong64",
}


def native_goarch() -> str:
    """GOARCH of the machine bpfgen is running on."""
    machine = platform.machine().lower()
    return _MACHINE_TO_GOARCH.get(machine, machine)


def find_target(target_id: str) -> Tuple[Target, GoArches]:
    """Resolve a --target value into a Target and the GOARCHes it serves.

    Raises:
        InvalidTargetError: If the id is unknown, or names a GOARCH that has
            no arch specific target (e.g. mips64).
    """
    if target_id in GENERIC_TARGETS:
        goarches = GoArches(arch for arch, target in TARGETS_BY_GOARCH.items() if target.clang == target_id)
        return Target(target_id), goarches

    if target_id == "native":
        target_id = native_goarch()

    target = TARGETS_BY_GOARCH.get(target_id)
    if target is None or target.is_generic():
        raise InvalidTargetError(target_id)

    goarches = GoArches(arch for arch, other in TARGETS_BY_GOARCH.items() if other == target)
    return target, goarches


def parse_targets(value: str) -> Dict[Target, GoArches]:
    """Parse a comma separated --target value.

    Several ids may resolve to the same Target (amd64 and 386 both compile
    for x86); they collapse into one entry.
    """
    targets: Dict[Target, GoArches] = {}
    for target_id in value.split(","):
        target, goarches = find_target(target_id.strip())
        targets[target] = goarches

    if not targets:
        raise ConfigurationError("no targets specified")
    return targets


def and_constraints(*exprs: Optional[str]) -> Optional[str]:
    """Combine optional build constraint expressions with &&."""
    present = [expr for expr in exprs if expr]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return " && ".join(f"({expr})" if _is_compound(expr) else expr for expr in present)


def _is_compound(expr: str) -> bool:
    return "||" in expr or "&&" in expr


def supported_target_ids() -> List[str]:
    arches = sorted(arch for arch, target in TARGETS_BY_GOARCH.items() if not target.is_generic())
    return [*GENERIC_TARGETS, "native", *arches]


def print_targets(stream: TextIO) -> None:
    """Write the list of supported --target values to stream."""
    table = Table(title="Supported targets", show_edge=False, box=None)
    table.add_column("target")
    table.add_column("clang")
    table.add_column("GOARCH")

    for target_id in GENERIC_TARGETS:
        _, goarches = find_target(target_id)
        table.add_row(target_id, target_id, ", ".join(goarches))
    table.add_row("native", "", native_goarch())
    for target_id in supported_target_ids()[len(GENERIC_TARGETS) + 1:]:
        target = TARGETS_BY_GOARCH[target_id]
        table.add_row(target_id, target.clang, target_id)

    Console(file=stream, force_terminal=False, width=100).print(table)
