"""
Build system components for bpfgen.

This module provides:
- Target resolution (clang target + GOARCH constraints)
- Compilation and linking through the external BPF toolchain
- Make-compatible dependency tracking (.d files)
- Per-target conversion orchestration
"""

from .build_context import ConvertConfig
from .makedep import Dependency, DependencyParseError, adjust_dependencies, merge_dependencies, parse_dependencies
from .orchestrator import ConversionError, Orchestrator, convert_all
from .targets import GoArches, InvalidTargetError, Target, find_target, parse_targets

__all__ = [
    "ConversionError",
    "ConvertConfig",
    "Dependency",
    "DependencyParseError",
    "GoArches",
    "InvalidTargetError",
    "Orchestrator",
    "Target",
    "adjust_dependencies",
    "convert_all",
    "find_target",
    "merge_dependencies",
    "parse_dependencies",
    "parse_targets",
]
