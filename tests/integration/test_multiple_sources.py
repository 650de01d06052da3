"""End to end conversion of several sources with the real BPF toolchain.

Needs clang and bpftool on PATH; skipped otherwise.
"""

import shutil

import pytest

from bpfgen.build.build_context import ConvertConfig
from bpfgen.build.orchestrator import convert_all
from bpfgen.build.targets import parse_targets
from bpfgen.gen.elf_spec import load_collection_spec

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        shutil.which("clang") is None or shutil.which("bpftool") is None,
        reason="clang and bpftool are required",
    ),
]

COMMON_H = """\
#define SEC(name) __attribute__((section(name), used))
"""

FUNC1_C = """\
#include "common.h"

char __license[] SEC("license") = "Dual MIT/GPL";

SEC("socket") int prog_one(void *ctx) { return 0; }
"""

FUNC2_C = """\
#include "common.h"

SEC("xdp") int prog_two(void *ctx) { return 2; }
"""


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Two C files sharing a header, and an empty output directory."""
    base = tmp_path.resolve()
    src = base / "src"
    src.mkdir()
    (src / "common.h").write_text(COMMON_H)
    (src / "func1.c").write_text(FUNC1_C)
    (src / "func2.c").write_text(FUNC2_C)
    (base / "out").mkdir()
    monkeypatch.chdir(base)
    return base


def _config(base):
    return ConvertConfig(
        sources=[base / "src" / "func1.c", base / "src" / "func2.c"],
        output_dir=base / "out",
        package="bar",
        ident_stem="Bar",
        targets=parse_targets("bpfel"),
        disable_stripping=True,
        cflags=["-O2"],
        make_base=base,
    )


class TestMultipleSources:
    """Test that linked sources keep everything each of them defines."""

    def test_linked_object_has_programs_of_all_sources(self, project):
        convert_all(_config(project))

        spec = load_collection_spec(project / "out" / "bar_bpfel.o")
        assert spec.programs == ["prog_one", "prog_two"]

    def test_binding_exposes_all_programs(self, project):
        convert_all(_config(project))

        go_src = (project / "out" / "bar_bpfel.go").read_text()
        assert 'ProgOne *ebpf.ProgramSpec `ebpf:"prog_one"`' in go_src
        assert 'ProgTwo *ebpf.ProgramSpec `ebpf:"prog_two"`' in go_src

    def test_dependency_file_lists_all_sources(self, project):
        convert_all(_config(project))

        dep_text = (project / "out" / "bar_bpfel.go.d").read_text()
        assert dep_text.startswith("out/bar_bpfel.go: \\\n")
        assert " src/func1.c \\\n" in dep_text
        assert " src/func2.c \\\n" in dep_text
        assert dep_text.count(" src/common.h") == 2
        assert "\nsrc/common.h:\n" in dep_text

    def test_temporary_objects_are_removed(self, project):
        convert_all(_config(project))

        assert sorted(p.name for p in (project / "out").iterdir()) == [
            "bar_bpfel.go",
            "bar_bpfel.go.d",
            "bar_bpfel.o",
        ]
