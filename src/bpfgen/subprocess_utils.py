"""Subprocess utilities for running external toolchain binaries.

All compiler, strip and linker invocations go through safe_run() so that
they share the same process hygiene and the same failure reporting.
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional, Sequence, Union

logger = logging.getLogger(__name__)

StrPath = Union[str, Path]


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: Sequence[StrPath], cwd: Optional[StrPath] = None, **kwargs: Any) -> subprocess.CompletedProcess:
    """Run a toolchain command to completion.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows
    - stdin=DEVNULL, so a compiler never blocks waiting for terminal input
    - captured, text-decoded stdout/stderr unless the caller overrides them

    The command is never retried and never raises on a non-zero exit;
    callers inspect returncode and raise their own error type.

    Args:
        cmd: Command and arguments
        cwd: Working directory for the command
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL
    if "stdout" not in kwargs and "capture_output" not in kwargs:
        kwargs["capture_output"] = True
    kwargs.setdefault("text", True)

    args = [str(arg) for arg in cmd]
    logger.debug("Running %s (cwd=%s)", " ".join(args), cwd)
    return subprocess.run(args, cwd=str(cwd) if cwd is not None else None, **kwargs)
