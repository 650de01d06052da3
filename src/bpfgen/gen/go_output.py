"""Go binding generation.

Writes a Go source file that embeds a compiled BPF object and declares
typed accessors for its programs, maps and variables, for use with the
github.com/cilium/ebpf library. Output is already gofmt formatted.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TextIO, Tuple

from .identifier import identifier

EBPF_MODULE = "github.com/cilium/ebpf"


@dataclass(frozen=True)
class GenerateArgs:
    """Arguments for generate.

    Attributes:
        package: Go package name
        stem: Go identifier used as stem of all generated names
        object_file: File name of the object to embed, relative to the Go file
        constraints: Build constraint expression, or None
        maps: Map names
        variables: Global variable names
        programs: Program names
    """

    package: str
    stem: str
    object_file: str
    constraints: Optional[str] = None
    maps: Sequence[str] = field(default_factory=list)
    variables: Sequence[str] = field(default_factory=list)
    programs: Sequence[str] = field(default_factory=list)


class _Names:
    """Names of the generated declarations for one stem."""

    def __init__(self, stem: str):
        upper = stem[:1].upper() + stem[1:]
        self.load = f"load{upper}"
        self.load_objects = f"load{upper}Objects"
        self.specs = f"{stem}Specs"
        self.program_specs = f"{stem}ProgramSpecs"
        self.map_specs = f"{stem}MapSpecs"
        self.variable_specs = f"{stem}VariableSpecs"
        self.objects = f"{stem}Objects"
        self.maps = f"{stem}Maps"
        self.variables = f"{stem}Variables"
        self.programs = f"{stem}Programs"
        self.close_helper = f"_{upper}Close"
        self.bytes = f"_{upper}Bytes"


def _fields(names: Sequence[str], go_type: str) -> List[Tuple[str, str, str]]:
    return [(identifier(name), go_type, f'`ebpf:"{name}"`') for name in sorted(names)]


def _struct(name: str, rows: Sequence[Tuple[str, ...]]) -> List[str]:
    """Render a struct with gofmt column alignment."""
    lines = [f"type {name} struct {{"]
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]) - 1)] if rows else []
    for row in rows:
        cells = [cell.ljust(width) for cell, width in zip(row, widths)] + [row[-1]]
        lines.append("\t" + " ".join(cells).rstrip())
    lines.append("}")
    return lines


def _close_method(receiver: str, type_name: str, helper: str, members: Sequence[str]) -> List[str]:
    lines = [f"func ({receiver} *{type_name}) Close() error {{"]
    if not members:
        lines.extend([f"\treturn {helper}()", "}"])
        return lines

    lines.append(f"\treturn {helper}(")
    lines.extend(f"\t\t{member}," for member in members)
    lines.extend(["\t)", "}"])
    return lines


def render(args: GenerateArgs) -> str:
    """Return the Go source for args."""
    n = _Names(args.stem)
    programs = _fields(args.programs, "*ebpf.ProgramSpec")
    maps = _fields(args.maps, "*ebpf.MapSpec")
    variables = _fields(args.variables, "*ebpf.VariableSpec")

    lines = ["// Code generated by bpfgen; DO NOT EDIT."]
    if args.constraints:
        lines.append(f"//go:build {args.constraints}")
    lines.extend([
        "",
        f"package {args.package}",
        "",
        "import (",
        '\t"bytes"',
        '\t_ "embed"',
        '\t"fmt"',
        '\t"io"',
        "",
        f'\t"{EBPF_MODULE}"',
        ")",
        "",
        f"// {n.load} returns the embedded CollectionSpec for {args.stem}.",
        f"func {n.load}() (*ebpf.CollectionSpec, error) {{",
        f"\treader := bytes.NewReader({n.bytes})",
        "\tspec, err := ebpf.LoadCollectionSpecFromReader(reader)",
        "\tif err != nil {",
        f'\t\treturn nil, fmt.Errorf("can\'t load {args.stem}: %w", err)',
        "\t}",
        "",
        "\treturn spec, err",
        "}",
        "",
        f"// {n.load_objects} loads {args.stem} and converts it into a struct.",
        "//",
        "// The following types are suitable as obj argument:",
        "//",
        f"//\t*{n.objects}",
        f"//\t*{n.programs}",
        f"//\t*{n.maps}",
        "//",
        "// See ebpf.CollectionSpec.LoadAndAssign documentation for details.",
        f"func {n.load_objects}(obj interface{{}}, opts *ebpf.CollectionOptions) error {{",
        f"\tspec, err := {n.load}()",
        "\tif err != nil {",
        "\t\treturn err",
        "\t}",
        "",
        "\treturn spec.LoadAndAssign(obj, opts)",
        "}",
        "",
        f"// {n.specs} contains maps and programs before they are loaded into the kernel.",
        "//",
        "// It can be passed ebpf.CollectionSpec.Assign.",
    ])
    lines.extend(_struct(n.specs, [(n.program_specs,), (n.map_specs,), (n.variable_specs,)]))
    lines.extend([
        "",
        f"// {n.program_specs} contains programs before they are loaded into the kernel.",
        "//",
        "// It can be passed ebpf.CollectionSpec.Assign.",
    ])
    lines.extend(_struct(n.program_specs, programs))
    lines.extend([
        "",
        f"// {n.map_specs} contains maps before they are loaded into the kernel.",
        "//",
        "// It can be passed ebpf.CollectionSpec.Assign.",
    ])
    lines.extend(_struct(n.map_specs, maps))
    lines.extend([
        "",
        f"// {n.variable_specs} contains global variables before they are loaded into the kernel.",
        "//",
        "// It can be passed ebpf.CollectionSpec.Assign.",
    ])
    lines.extend(_struct(n.variable_specs, variables))
    lines.extend([
        "",
        f"// {n.objects} contains all objects after they have been loaded into the kernel.",
        "//",
        f"// It can be passed to {n.load_objects} or ebpf.CollectionSpec.LoadAndAssign.",
    ])
    lines.extend(_struct(n.objects, [(n.programs,), (n.maps,), (n.variables,)]))
    lines.append("")
    lines.extend(_close_method("o", n.objects, n.close_helper, [f"&o.{n.programs}", f"&o.{n.maps}"]))
    lines.extend([
        "",
        f"// {n.maps} contains all maps after they have been loaded into the kernel.",
        "//",
        f"// It can be passed to {n.load_objects} or ebpf.CollectionSpec.LoadAndAssign.",
    ])
    lines.extend(_struct(n.maps, _fields(args.maps, "*ebpf.Map")))
    lines.append("")
    lines.extend(_close_method("m", n.maps, n.close_helper, [f"m.{name}" for name, _, _ in maps]))
    lines.extend([
        "",
        f"// {n.variables} contains all global variables after they have been loaded into the kernel.",
        "//",
        f"// It can be passed to {n.load_objects} or ebpf.CollectionSpec.LoadAndAssign.",
    ])
    lines.extend(_struct(n.variables, _fields(args.variables, "*ebpf.Variable")))
    lines.extend([
        "",
        f"// {n.programs} contains all programs after they have been loaded into the kernel.",
        "//",
        f"// It can be passed to {n.load_objects} or ebpf.CollectionSpec.LoadAndAssign.",
    ])
    lines.extend(_struct(n.programs, _fields(args.programs, "*ebpf.Program")))
    lines.append("")
    lines.extend(_close_method("p", n.programs, n.close_helper, [f"p.{name}" for name, _, _ in programs]))
    lines.extend([
        "",
        f"func {n.close_helper}(closers ...io.Closer) error {{",
        "\tfor _, closer := range closers {",
        "\t\tif err := closer.Close(); err != nil {",
        "\t\t\treturn err",
        "\t\t}",
        "\t}",
        "\treturn nil",
        "}",
        "",
        "// Do not access this directly.",
        "//",
        f"//go:embed {args.object_file}",
        f"var {n.bytes} []byte",
    ])
    return "\n".join(lines) + "\n"


def generate(args: GenerateArgs, out: TextIO) -> None:
    """Write the Go binding for args to out."""
    out.write(render(args))
