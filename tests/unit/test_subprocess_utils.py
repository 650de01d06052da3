"""Tests for subprocess_utils module."""

import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from bpfgen.subprocess_utils import get_subprocess_creation_flags, safe_run


@pytest.mark.skipif(sys.platform != "win32", reason="CREATE_NO_WINDOW only exists on Windows")
def test_get_subprocess_creation_flags_windows():
    """Test that Windows returns CREATE_NO_WINDOW flag."""
    assert get_subprocess_creation_flags() == subprocess.CREATE_NO_WINDOW


def test_get_subprocess_creation_flags_linux():
    """Test that Linux returns 0."""
    with patch("sys.platform", "linux"):
        assert get_subprocess_creation_flags() == 0


@patch("subprocess.run")
def test_safe_run_no_flags_on_linux(mock_run):
    """Test that safe_run doesn't apply flags on Linux."""
    with patch("sys.platform", "linux"):
        safe_run(["clang", "--version"])

    mock_run.assert_called_once()
    call_kwargs = mock_run.call_args[1]
    assert "creationflags" not in call_kwargs


@patch("subprocess.run")
def test_safe_run_defaults(mock_run):
    """Test that stdin is closed and output captured as text."""
    safe_run(["clang", "--version"])

    call_kwargs = mock_run.call_args[1]
    assert call_kwargs["stdin"] == subprocess.DEVNULL
    assert call_kwargs["capture_output"] is True
    assert call_kwargs["text"] is True
    assert call_kwargs["cwd"] is None


@patch("subprocess.run")
def test_safe_run_stringifies_arguments(mock_run):
    """Test that Path arguments and cwd are passed as strings."""
    safe_run(["llvm-strip", "-g", Path("/out/prog.o")], cwd=Path("/work"))

    assert mock_run.call_args[0][0] == ["llvm-strip", "-g", "/out/prog.o"]
    assert mock_run.call_args[1]["cwd"] == "/work"


@patch("subprocess.run")
def test_safe_run_respects_explicit_stdout(mock_run):
    """Test that an explicit stdout disables automatic capture."""
    safe_run(["bpftool", "version"], stdout=subprocess.DEVNULL)

    call_kwargs = mock_run.call_args[1]
    assert "capture_output" not in call_kwargs
    assert call_kwargs["stdout"] == subprocess.DEVNULL


@patch("subprocess.run")
def test_safe_run_returns_result(mock_run):
    """Test that the CompletedProcess is passed through unchanged."""
    expected = subprocess.CompletedProcess(["clang"], 1, "", "error")
    mock_run.return_value = expected

    assert safe_run(["clang"]) is expected
