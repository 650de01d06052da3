"""BPF toolchain steps.

Compilation Process:
    1. clang compiles one C source for one Target into a relocatable object
    2. llvm-strip removes DWARF (BTF is kept) unless stripping is disabled
    3. bpftool links several such objects into one when there is more
       than one source

Each step is a single external command run to completion. Failures raise a
ToolchainError subclass carrying the tool's stderr; nothing is retried.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..errors import BpfGenError
from ..subprocess_utils import safe_run
from .targets import Target

logger = logging.getLogger(__name__)

# Tells users of target specific macros (PT_REGS_*, ...) to pick an arch target
BPF_TARGET_MISSING = (
    '"GCC error \\"The eBPF is using target specific macros, '
    'please provide -target that is not bpf, bpfel or bpfeb\\""'
)


class ToolchainError(BpfGenError):
    """Raised when an external toolchain binary fails."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        if stderr.strip():
            message = f"{message}\n{stderr.rstrip()}"
        super().__init__(message)


class CompileError(ToolchainError):
    """Raised when the C compiler exits with an error."""
    pass


class StripError(ToolchainError):
    """Raised when stripping DWARF from an object fails."""
    pass


class LinkError(ToolchainError):
    """Raised when linking objects together fails."""
    pass


class ToolNotFoundError(ToolchainError):
    """Raised when a toolchain binary cannot be found on PATH."""
    pass


@dataclass(frozen=True)
class CompileArgs:
    """Arguments for compile_object.

    Attributes:
        cc: C compiler binary (usually clang)
        strip: Strip binary, ignored when disable_stripping is set
        disable_stripping: Keep DWARF in the object
        flags: Extra compiler flags, placed before the fixed ones
        target: Target to compile for; Target("") compiles for plain bpf
        workdir: Directory the compiler runs in
        source: Absolute path of the C source
        dest: Path of the object to write
    """

    cc: str
    strip: str
    disable_stripping: bool
    flags: Sequence[str]
    target: Target
    workdir: Path
    source: Path
    dest: Path


@dataclass(frozen=True)
class LinkArgs:
    """Arguments for link_objects."""

    dest: Path
    sources: Sequence[Path] = field(default_factory=tuple)


def build_compile_command(args: CompileArgs) -> List[str]:
    """Assemble the compiler command line for args."""
    input_dir = os.path.dirname(os.fspath(args.source))
    rel_input_dir = os.path.relpath(input_dir, os.fspath(args.workdir))

    clang_target = args.target.clang or "bpf"

    cmd = [args.cc, *args.flags]
    if args.target.linux:
        cmd.append(f"-D__TARGET_ARCH_{args.target.linux}")
    cmd.extend([
        "-Wunused-command-line-argument",
        "-target", clang_target,
        "-c", os.fspath(args.source),
        "-o", os.fspath(args.dest),
        # Don't include the clang version
        "-fno-ident",
        # Don't leak the absolute source directory into debug info
        f"-fdebug-prefix-map={input_dir}={rel_input_dir}",
        "-fdebug-compilation-dir", ".",
        # BTF is generated from debug info
        "-g",
        f"-D__BPF_TARGET_MISSING={BPF_TARGET_MISSING}",
    ])
    return cmd


def compile_object(args: CompileArgs) -> None:
    """Compile args.source into args.dest and strip it.

    Raises:
        CompileError: If the compiler fails or cannot be executed
        StripError: If stripping fails or the strip binary cannot be executed
    """
    cmd = build_compile_command(args)
    try:
        result = safe_run(cmd, cwd=args.workdir)
    except OSError as e:
        raise CompileError(f"exec {args.cc}: {e}") from e
    if result.returncode != 0:
        raise CompileError(
            f"{args.cc} exited with status {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr or "",
        )

    if args.disable_stripping:
        return

    try:
        result = safe_run([args.strip, "-g", args.dest], cwd=args.workdir)
    except OSError as e:
        raise StripError(f"strip {args.dest}: exec {args.strip}: {e}") from e
    if result.returncode != 0:
        raise StripError(
            f"strip {args.dest}: {args.strip} exited with status {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr or "",
        )


def link_objects(args: LinkArgs, bpftool: str = "bpftool") -> None:
    """Link several BPF objects into args.dest.

    Raises:
        LinkError: If bpftool fails or cannot be executed
    """
    try:
        result = safe_run([bpftool, "gen", "object", args.dest, *args.sources])
    except OSError as e:
        raise LinkError(f"exec {bpftool}: {e}") from e
    if result.returncode != 0:
        raise LinkError(
            f"{bpftool} exited with status {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr or "",
        )


def default_strip(cc: str) -> str:
    """Pick an llvm-strip matching the compiler, e.g. clang-14 -> llvm-strip-14."""
    strip = "llvm-strip"
    if cc.startswith("clang"):
        strip += cc[len("clang"):]
    return strip


def resolve_tool(name: str) -> str:
    """Return the full path of executable name.

    Raises:
        ToolNotFoundError: If name is not an executable on PATH
    """
    path = shutil.which(name)
    if path is None:
        raise ToolNotFoundError(f'exec: "{name}": executable file not found in $PATH')
    return path
