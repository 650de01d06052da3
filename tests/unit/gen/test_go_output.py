"""Tests for Go binding generation."""

import io

from bpfgen.gen.go_output import GenerateArgs, generate, render


def _args(**overrides) -> GenerateArgs:
    values = dict(
        package="bar",
        stem="bar",
        object_file="bar_x86_bpfel.o",
        constraints="386 || amd64",
        maps=["events", "my_hash"],
        variables=["counter"],
        programs=["xdp_prog"],
    )
    values.update(overrides)
    return GenerateArgs(**values)


class TestRender:
    """Test the generated Go source."""

    def test_header_and_constraints(self):
        lines = render(_args()).splitlines()

        assert lines[0] == "// Code generated by bpfgen; DO NOT EDIT."
        assert lines[1] == "//go:build 386 || amd64"
        assert lines[2] == ""
        assert lines[3] == "package bar"

    def test_no_constraints(self):
        lines = render(_args(constraints=None)).splitlines()

        assert lines[1] == ""
        assert not any(line.startswith("//go:build") for line in lines)

    def test_embeds_object(self):
        src = render(_args())

        assert "//go:embed bar_x86_bpfel.o\nvar _BarBytes []byte\n" in src
        assert src.endswith("var _BarBytes []byte\n")

    def test_load_functions(self):
        src = render(_args())

        assert "func loadBar() (*ebpf.CollectionSpec, error) {" in src
        assert "func loadBarObjects(obj interface{}, opts *ebpf.CollectionOptions) error {" in src

    def test_spec_fields_are_aligned(self):
        src = render(_args())

        assert "type barMapSpecs struct {\n" in src
        assert '\tEvents *ebpf.MapSpec `ebpf:"events"`\n' in src
        assert '\tMyHash *ebpf.MapSpec `ebpf:"my_hash"`\n' in src
        assert '\tXdpProg *ebpf.ProgramSpec `ebpf:"xdp_prog"`\n' in src
        assert '\tCounter *ebpf.VariableSpec `ebpf:"counter"`\n' in src

    def test_alignment_pads_shorter_names(self):
        src = render(_args(maps=["a", "long_name"]))

        assert '\tA        *ebpf.MapSpec `ebpf:"a"`\n' in src
        assert '\tLongName *ebpf.MapSpec `ebpf:"long_name"`\n' in src

    def test_close_methods(self):
        src = render(_args())

        assert "func (m *barMaps) Close() error {\n\treturn _BarClose(\n\t\tm.Events,\n\t\tm.MyHash,\n\t)\n}" in src
        assert "func (p *barPrograms) Close() error {\n\treturn _BarClose(\n\t\tp.XdpProg,\n\t)\n}" in src
        assert "func _BarClose(closers ...io.Closer) error {" in src

    def test_empty_collections(self):
        src = render(_args(maps=[], variables=[], programs=[]))

        assert "type barMapSpecs struct {\n}" in src
        assert "type barPrograms struct {\n}" in src
        assert "func (m *barMaps) Close() error {\n\treturn _BarClose()\n}" in src
        assert "func (p *barPrograms) Close() error {\n\treturn _BarClose()\n}" in src

    def test_names_are_sorted(self):
        src = render(_args(programs=["zeta", "alpha"]))
        assert src.index("Alpha *ebpf.ProgramSpec") < src.index("Zeta  *ebpf.ProgramSpec")

    def test_exported_stem(self):
        src = render(_args(stem="Bar"))

        assert "func loadBar()" in src
        assert "type BarObjects struct {" in src


def test_generate_writes_render_output():
    out = io.StringIO()
    generate(_args(), out)
    assert out.getvalue() == render(_args())
