"""
Command-line interface for bpfgen.

Usage: bpfgen [options] <ident> <source files...> [-- <C flags>]

ident is used as the stem of all generated Go types and functions, and must
be a valid Go identifier. The source files are compiled with the configured
compiler (usually clang) and linked together into a single BPF object per
target. Meant to be invoked from a go:generate directive:

    //go:generate bpfgen --target amd64,arm64 --makebase .. prog prog.c -- -I../headers
"""

import argparse
import os
import shlex
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, TextIO, Tuple

from . import __version__
from .build.build_context import ConvertConfig
from .build.orchestrator import Orchestrator
from .build.targets import InvalidTargetError, parse_targets, print_targets
from .build.toolchain import default_strip
from .errors import BpfGenError, ConfigurationError
from .output import init_timer, is_verbose, log_error, log_header, set_output_stream, set_verbose

GOPACKAGE_ENV = "GOPACKAGE"

DESCRIPTION = """\
Compile C source files to BPF and generate Go bindings that embed the result.

Options passed after a '--' argument go to the compiler verbatim. Flags
given via --cflags are shell-split, so --cflags 'foo "bar baz"' passes the
two arguments "foo" and "bar baz"; they come before the flags after '--'.

The Go package defaults to $GOPACKAGE, which go generate sets. Generated
files are written to the current directory unless --output-dir is given.
"""


def get_env(environ: Mapping[str, str], key: str, default: str) -> str:
    return environ.get(key, default)


def get_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    """Read a boolean environment variable, accepting the usual spellings."""
    value = environ.get(key)
    if value is None:
        return default
    if value in ("1", "t", "T", "true", "TRUE", "True"):
        return True
    if value in ("0", "f", "F", "false", "FALSE", "False"):
        return False
    return default


def split_cflags_from_args(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split argv at the first '--' into (arguments, C flags)."""
    argv = list(argv)
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    """Create the argument parser, with defaults taken from environ."""
    parser = argparse.ArgumentParser(
        prog="bpfgen",
        description=DESCRIPTION,
        usage="%(prog)s [options] <ident> <source files...> [-- <C flags>]",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help and the supported targets")
    parser.add_argument("--version", action="version", version=f"bpfgen {__version__}")
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=get_bool(environ, "V", False),
        help="Enable verbose logging ($V)",
    )
    parser.add_argument(
        "--cc",
        default=get_env(environ, "BPF2GO_CC", "clang"),
        help="Binary used to compile C to BPF ($BPF2GO_CC)",
    )
    parser.add_argument(
        "--strip",
        default=get_env(environ, "BPF2GO_STRIP", ""),
        help="Binary used to strip DWARF from compiled BPF ($BPF2GO_STRIP)",
    )
    parser.add_argument("--no-strip", action="store_true", help="Disable stripping of DWARF")
    parser.add_argument(
        "--cflags",
        default=get_env(environ, "BPF2GO_CFLAGS", ""),
        help="Flags passed to the compiler, may contain quoted arguments ($BPF2GO_CFLAGS)",
    )
    parser.add_argument("--tags", default="", help="Build constraint expression to include in generated files")
    parser.add_argument("--target", default="bpfel,bpfeb", help="Clang target(s) to compile for (comma separated)")
    parser.add_argument(
        "--makebase",
        default=get_env(environ, "BPF2GO_MAKEBASE", ""),
        metavar="DIRECTORY",
        help="Write make compatible depinfo files relative to DIRECTORY ($BPF2GO_MAKEBASE)",
    )
    parser.add_argument(
        "--output-stem",
        default="",
        help="Alternative stem for names of generated files (defaults to ident)",
    )
    parser.add_argument(
        "--output-suffix",
        default="_test" if get_env(environ, "GOFILE", "").endswith("_test.go") else "",
        help="Suffix in generated file names such as _test (default based on $GOFILE)",
    )
    parser.add_argument(
        "--output-dir",
        default="",
        help="Target directory of generated files (defaults to current directory)",
    )
    parser.add_argument(
        "--go-package",
        default="",
        help=f"Package for output go file (default as ENV {GOPACKAGE_ENV})",
    )
    parser.add_argument("args", nargs="*", metavar="ident source", help="Go identifier, then C source files")
    return parser


def parse_args(
    argv: Sequence[str],
    environ: Optional[Mapping[str, str]] = None,
    stdout: Optional[TextIO] = None,
) -> Optional[ConvertConfig]:
    """Turn command line arguments into a ConvertConfig.

    Returns:
        The configuration, or None if help was requested (and printed)

    Raises:
        ConfigurationError: If the arguments are incomplete or invalid
    """
    environ = os.environ if environ is None else environ
    stdout = sys.stdout if stdout is None else stdout

    argv, cflags = split_cflags_from_args(argv)
    parser = build_parser(environ)
    parsed = parser.parse_args(argv)

    if parsed.help:
        parser.print_help(stdout)
        stdout.write("\n")
        print_targets(stdout)
        return None

    output_dir = parsed.output_dir or os.getcwd()
    package = parsed.go_package or environ.get(GOPACKAGE_ENV, "")
    if not package:
        raise ConfigurationError(
            f"missing package, you should either set the --go-package flag or the {GOPACKAGE_ENV} env"
        )

    if not parsed.cc:
        raise ConfigurationError("no compiler specified")

    if parsed.cflags:
        try:
            split_cflags = shlex.split(parsed.cflags)
        except ValueError as e:
            raise ConfigurationError(f"invalid --cflags {parsed.cflags!r}: {e}") from e
        # Command line arguments take precedence over --cflags
        cflags = split_cflags + cflags

    if len(parsed.args) < 2:
        raise ConfigurationError("expected at least two arguments")

    ident_stem, *sources = parsed.args

    try:
        targets = parse_targets(parsed.target)
    except InvalidTargetError:
        print_targets(stdout)
        stdout.write("\n")
        raise

    make_base = Path(os.path.abspath(parsed.makebase)) if parsed.makebase else None

    config = ConvertConfig(
        sources=tuple(Path(os.path.abspath(source)) for source in sources),
        output_dir=Path(output_dir),
        package=package,
        ident_stem=ident_stem,
        targets=targets,
        cc=parsed.cc,
        strip=parsed.strip or default_strip(parsed.cc),
        disable_stripping=parsed.no_strip,
        cflags=tuple(cflags),
        output_stem=parsed.output_stem,
        output_suffix=parsed.output_suffix,
        tags=parsed.tags or None,
        make_base=make_base,
    )
    config.validate()
    set_verbose(parsed.verbose)
    return config


def run(argv: Sequence[str], stdout: Optional[TextIO] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """Run bpfgen and return the process exit status."""
    stdout = sys.stdout if stdout is None else stdout
    init_timer(stdout)

    try:
        config = parse_args(argv, environ=environ, stdout=stdout)
        if config is None:
            return 0

        if is_verbose():
            log_header("bpfgen", __version__)
        Orchestrator(config).convert_all()
    except (BpfGenError, OSError) as e:
        set_output_stream(sys.stderr)
        log_error(str(e))
        return 1
    except KeyboardInterrupt:
        set_output_stream(sys.stderr)
        log_error("interrupted")
        return 130

    return 0


def main() -> None:
    """bpfgen - compile C to BPF and generate Go bindings."""
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
