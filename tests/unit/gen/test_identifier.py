"""Tests for Go identifier conversion."""

import pytest

from bpfgen.gen.identifier import identifier


@pytest.mark.parametrize(
    "name, expected",
    [
        ("foo", "Foo"),
        ("foo_bar", "FooBar"),
        ("foo_bar_baz", "FooBarBaz"),
        ("xdp_prog", "XdpProg"),
        (".rodata", "Rodata"),
        (".data.custom", "DataCustom"),
        ("func1", "Func1"),
        ("FooBar", "FooBar"),
        ("map__name", "MapName"),
        ("1st_map", "X1stMap"),
    ],
)
def test_identifier(name, expected):
    assert identifier(name) == expected


def test_identifier_of_separators_only():
    assert identifier("._.") == ""
