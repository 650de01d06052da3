"""Make-compatible dependency information.

Compilers emit dependency listings ("depfiles") in Makefile rule syntax when
invoked with -MD. This module reads those listings into Dependency records,
merges the records of several compilation units that feed the same output,
and writes them back out with every path relative to a Makefile's directory.

Depfile format handled here:

    main.o: main.c \\
     common.h

    common.h:

Each rule is one logical line: a trailing backslash continues it on the
next physical line, and blank lines between rules are ignored. A rule with
nothing after the colon is a phony target (emitted by -MP) that has no
prerequisites.
"""

import io
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, TextIO, Tuple, Union

from ..errors import BpfGenError

logger = logging.getLogger(__name__)

StrPath = Union[str, "os.PathLike[str]"]

# Ends one line of a rule and indents the next prerequisite
_CONTINUATION = " \\\n "


class DependencyParseError(BpfGenError):
    """Raised when depfile text cannot be split into target and prerequisites."""

    def __init__(self, line: int, text: str):
        self.line = line
        self.text = text
        super().__init__(f"line {line}: invalid dependency entry without ':': {text!r}")


@dataclass(frozen=True)
class Dependency:
    """A build target and the files it depends on.

    Attributes:
        file: Absolute path of the target
        prerequisites: Absolute paths of its prerequisites, in compiler order.
            Duplicates are kept. An empty tuple means the target has no
            tracked prerequisites.
    """

    file: str
    prerequisites: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "prerequisites", tuple(self.prerequisites))


def _absolute(base_dir: str, path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.normpath(os.path.join(base_dir, path))


def _split_entries(text: str) -> Iterable[Tuple[int, str]]:
    """Yield (first line number, entry text) for each rule.

    A rule is one logical line: physical lines ending in a backslash are
    joined with the next one. Blank lines between rules are skipped.
    """
    parts: List[str] = []
    start = 0
    for number, line in enumerate(text.splitlines(), start=1):
        if not parts:
            start = number
        if line.endswith("\\"):
            parts.append(line[:-1])
            continue
        parts.append(line)
        entry = " ".join(parts)
        parts = []
        if entry.strip():
            yield start, entry

    if parts and " ".join(parts).strip():
        yield start, " ".join(parts)


def parse_dependencies(base_dir: StrPath, source: Union[str, TextIO]) -> List[Dependency]:
    """Parse depfile text into Dependency records.

    Relative target and prerequisite paths are resolved against base_dir,
    which should be the directory the compiler was invoked in. Absolute
    paths (system headers, usually) are kept as they are.

    Args:
        base_dir: Directory that relative paths are relative to
        source: Depfile contents, as a string or a readable text stream

    Returns:
        One Dependency per entry, in file order

    Raises:
        DependencyParseError: If an entry has no ':' separator
    """
    text = source if isinstance(source, str) else source.read()
    base = os.fspath(base_dir)

    deps: List[Dependency] = []
    for line, entry in _split_entries(text):
        target, sep, rest = entry.partition(":")
        target = target.strip()
        if not sep or not target:
            raise DependencyParseError(line, entry)

        prerequisites = [_absolute(base, token) for token in rest.split()]
        deps.append(Dependency(_absolute(base, target), prerequisites))

    logger.debug("Parsed %d dependency entries relative to %s", len(deps), base)
    return deps


def merge_dependencies(*dep_lists: Sequence[Dependency]) -> List[Dependency]:
    """Merge records from several compilation units by target file.

    Records for the same file are combined into one whose prerequisites are
    the concatenation of all contributors, in argument order. Duplicates
    across units are preserved. Each distinct file appears once, at the
    position of its first occurrence.
    """
    merged: Dict[str, List[str]] = {}
    for deps in dep_lists:
        for dep in deps:
            merged.setdefault(dep.file, []).extend(dep.prerequisites)

    return [Dependency(file, prerequisites) for file, prerequisites in merged.items()]


def adjust_dependencies(out: TextIO, base_dir: StrPath, deps: Iterable[Dependency]) -> None:
    """Write deps as Makefile rules with every path relative to base_dir.

    Paths outside base_dir get "../" prefixes. The output is byte stable:
    the same records always produce the same text.

    Raises:
        ValueError: If a path cannot be made relative to base_dir (e.g. it
            lives on another drive)
    """
    base = os.fspath(base_dir)
    for dep in deps:
        target = os.path.relpath(dep.file, base)
        if not dep.prerequisites:
            out.write(f"{target}:\n\n")
            continue

        prerequisites = [os.path.relpath(path, base) for path in dep.prerequisites]
        out.write(f"{target}:{_CONTINUATION}{_CONTINUATION.join(prerequisites)}\n\n")


def format_dependencies(base_dir: StrPath, deps: Iterable[Dependency]) -> str:
    """Return the text adjust_dependencies() would write."""
    buf = io.StringIO()
    adjust_dependencies(buf, base_dir, deps)
    return buf.getvalue()
