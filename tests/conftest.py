"""Pytest configuration and fixtures for bpfgen tests."""

import sys

import pytest

from bpfgen import output


@pytest.fixture(autouse=True)
def _quiet_output():
    """Keep console output quiet and restore the output module after each test."""
    output.set_verbose(False)
    yield
    output.set_verbose(False)
    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__
    output.set_output_stream(sys.stdout)
