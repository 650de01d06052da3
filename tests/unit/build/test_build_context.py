"""Tests for ConvertConfig defaults and validation."""

from pathlib import Path

import pytest

from bpfgen.build.build_context import ConvertConfig, is_go_identifier
from bpfgen.build.targets import parse_targets
from bpfgen.errors import ConfigurationError


def _config(**overrides) -> ConvertConfig:
    values = dict(
        sources=[Path("/src/prog.c")],
        output_dir=Path("/src"),
        package="pkg",
        ident_stem="Prog",
        targets=parse_targets("bpfel"),
    )
    values.update(overrides)
    return ConvertConfig(**values)


def test_is_go_identifier():
    assert is_go_identifier("foo")
    assert is_go_identifier("_foo1")
    assert not is_go_identifier("1foo")
    assert not is_go_identifier("foo-bar")
    assert not is_go_identifier("")


class TestConvertConfig:
    """Test derived values."""

    def test_sources_are_tuple_of_paths(self):
        config = _config(sources=["/src/a.c", "/src/b.c"])
        assert config.sources == (Path("/src/a.c"), Path("/src/b.c"))

    def test_output_stem_defaults_to_lowercased_ident(self):
        assert _config().output_stem_or_default == "prog"

    def test_output_stem_override(self):
        assert _config(output_stem="Custom").output_stem_or_default == "Custom"

    def test_dependency_tracking_follows_make_base(self):
        assert not _config().dependency_tracking
        assert _config(make_base=Path("/src")).dependency_tracking

    def test_is_immutable(self):
        config = _config()
        with pytest.raises(AttributeError):
            config.package = "other"  # type: ignore[misc]


class TestValidate:
    """Test configuration validation."""

    def test_valid(self):
        _config().validate()

    def test_missing_package(self):
        with pytest.raises(ConfigurationError, match="GOPACKAGE"):
            _config(package="").validate()

    def test_invalid_package(self):
        with pytest.raises(ConfigurationError, match="package"):
            _config(package="my-pkg").validate()

    def test_invalid_ident(self):
        with pytest.raises(ConfigurationError, match="ident"):
            _config(ident_stem="1prog").validate()

    def test_empty_compiler(self):
        with pytest.raises(ConfigurationError, match="compiler"):
            _config(cc="").validate()

    def test_no_sources(self):
        with pytest.raises(ConfigurationError, match="source"):
            _config(sources=[]).validate()

    def test_no_targets(self):
        with pytest.raises(ConfigurationError, match="targets"):
            _config(targets={}).validate()

    @pytest.mark.parametrize("flag", ["-MD", "-MF/tmp/x", "-MMD"])
    def test_dependency_flags_rejected(self, flag):
        with pytest.raises(ConfigurationError, match="--makebase"):
            _config(cflags=["-O2", flag]).validate()

    @pytest.mark.parametrize("field_name", ["output_stem", "output_suffix"])
    @pytest.mark.parametrize("value", ["a/b", "a\\b"])
    def test_path_separators_rejected(self, field_name, value):
        with pytest.raises(ConfigurationError, match="path separation"):
            _config(**{field_name: value}).validate()
