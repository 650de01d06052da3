"""
Conversion orchestration.

Turns the configured C sources into, per target:

    <stem>_<target suffix><output suffix>.o     compiled (and linked) object
    <stem>_<target suffix><output suffix>.go    Go binding embedding it
    <stem>_<target suffix><output suffix>.go.d  make dependencies (--makebase)

Phases of one target conversion:
    1. Remove files left over from the obsolete naming scheme
    2. Compile every source into a temporary object, collecting depfiles
    3. Link the temporary objects into the final object (or rename the only one)
    4. Read program, map and variable names from the object
    5. Write the Go binding
    6. Merge, rebase and write the dependency file

Targets are converted one after the other and the first failure stops the
run. Each target writes its own set of paths, so conversions share nothing
but the read-only ConvertConfig.
"""

import contextlib
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from ..errors import BpfGenError, SourceNotFoundError
from ..gen.elf_spec import load_collection_spec
from ..gen.go_output import GenerateArgs, generate
from ..output import TimedLogger, log_artifact
from .build_context import ConvertConfig
from .makedep import Dependency, DependencyParseError, adjust_dependencies, merge_dependencies, parse_dependencies
from .targets import GoArches, Target, and_constraints
from .toolchain import CompileArgs, LinkArgs, LinkError, ToolchainError, compile_object, link_objects, resolve_tool

# Module-level logger
logger = logging.getLogger(__name__)


class ConversionError(BpfGenError):
    """Raised when a step of a target conversion fails.

    The message names the failing step and file; the underlying error is
    chained as __cause__.
    """
    pass


class Orchestrator:
    """
    Drives compilation, linking and code generation for all targets.

    Example usage:
        config = ConvertConfig(
            sources=(Path("/src/prog.c"),),
            output_dir=Path("/src/pkg"),
            package="pkg",
            ident_stem="prog",
            targets=parse_targets("bpfel,bpfeb"),
            make_base=Path("/src"),
        )
        Orchestrator(config).convert_all()
    """

    def __init__(self, config: ConvertConfig):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration of this run, shared by all targets
        """
        self.config = config
        self.strip = config.strip

    def _debug(self, action: str, path: Path) -> None:
        logger.debug("%s: %s", action, path)
        log_artifact(action, path)

    def convert_all(self) -> None:
        """Convert every configured target, stopping at the first failure.

        Raises:
            ConfigurationError: If the configuration is invalid
            SourceNotFoundError: If a source file doesn't exist
            ToolNotFoundError: If stripping is enabled and the strip binary
                can't be found
            BpfGenError: If any target conversion fails
        """
        self.config.validate()

        for source in self.config.sources:
            if not source.exists():
                raise SourceNotFoundError(source)

        if not self.config.disable_stripping:
            self.strip = resolve_tool(self.config.strip)

        total = len(self.config.targets)
        for phase, (target, goarches) in enumerate(self.config.targets.items(), start=1):
            with TimedLogger(f"Converting target {target.suffix()}", phase=(phase, total), verbose_only=True):
                self.convert(target, goarches)

    def compile_one(
        self,
        target: Target,
        cwd: Path,
        source: Path,
        obj_file: Path,
        output_stem: str,
    ) -> Tuple[Path, List[Dependency]]:
        """Compile a single source file.

        The object is compiled to obj_file and then moved to a temporary
        name unique to (output_stem, source file name, target), so several
        sources of one target don't overwrite each other before linking.

        Args:
            target: Target to compile for
            cwd: Directory the compiler runs in; relative depfile paths are
                relative to it
            source: Absolute path of the C source
            obj_file: Final object path of this target
            output_stem: Stem of the generated file names

        Returns:
            Tuple of (temporary object path, parsed dependencies). The
            dependency list is empty unless dependency tracking is enabled.

        Raises:
            ConversionError: If compiling or parsing dependencies fails
        """
        cflags = list(self.config.cflags)

        with contextlib.ExitStack() as cleanup:
            dep_file: Optional[Path] = None
            if self.config.dependency_tracking:
                fd, dep_name = tempfile.mkstemp(prefix="bpfgen")
                os.close(fd)
                dep_file = Path(dep_name)
                cleanup.callback(_remove_if_exists, dep_file)

                cflags.extend([
                    # Output dependency information
                    "-MD",
                    # Phony targets keep a deleted header from breaking the build
                    "-MP",
                    f"-MF{dep_file}",
                ])

            try:
                compile_object(CompileArgs(
                    cc=self.config.cc,
                    strip=self.strip,
                    disable_stripping=self.config.disable_stripping,
                    flags=cflags,
                    target=target,
                    workdir=cwd,
                    source=source,
                    dest=obj_file,
                ))
            except ToolchainError as e:
                raise ConversionError(f"compile {source}: {e}") from e

            tmp_obj_file = obj_file.parent / f"{output_stem}_{source.name}_{target.suffix()}.o"
            os.replace(obj_file, tmp_obj_file)

            deps: List[Dependency] = []
            if dep_file is not None:
                try:
                    deps = parse_dependencies(cwd, dep_file.read_text())
                except DependencyParseError as e:
                    _remove_if_exists(tmp_obj_file)
                    raise ConversionError(f"parse dependencies for {source}: {e}") from e

        return tmp_obj_file, deps

    def convert(self, target: Target, goarches: GoArches) -> None:
        """Convert all sources for one target.

        Args:
            target: Target to compile for
            goarches: GOARCHes the generated binding is constrained to

        Raises:
            ConversionError: If any step fails. The Go binding is removed if
                it was already created; other files are left as they are.
        """
        config = self.config
        output_stem = config.output_stem_or_default
        stem = f"{output_stem}_{target.suffix()}{config.output_suffix}"

        out_dir = Path(os.path.abspath(config.output_dir))
        obj_file = out_dir / f"{stem}.o"
        go_file = out_dir / f"{stem}.go"
        cwd = Path.cwd()

        constraints = and_constraints(goarches.constraint(), config.tags)

        try:
            self.remove_old_output_files(output_stem, target)
        except OSError as e:
            raise ConversionError(f"remove obsolete output: {e}") from e

        all_deps: List[Dependency] = []
        tmp_obj_files: List[Path] = []
        try:
            for source in config.sources:
                tmp_obj_file, deps = self.compile_one(target, cwd, source, obj_file, output_stem)
                tmp_obj_files.append(tmp_obj_file)

                if deps:
                    # The first entry is the object built from source; what
                    # downstream builds need to know is that the Go file
                    # depends on its prerequisites.
                    deps[0] = replace(deps[0], file=str(go_file))
                    all_deps.extend(deps)

            if len(tmp_obj_files) > 1:
                try:
                    link_objects(LinkArgs(dest=obj_file, sources=tmp_obj_files))
                except LinkError as e:
                    raise ConversionError(f"link object files: {e}") from e
            else:
                os.replace(tmp_obj_files[0], obj_file)
        except Exception:
            for tmp_obj_file in tmp_obj_files:
                with contextlib.suppress(OSError):
                    tmp_obj_file.unlink()
            raise

        for tmp_obj_file in tmp_obj_files:
            _remove_if_exists(tmp_obj_file)

        if config.disable_stripping:
            self._debug("Compiled object", obj_file)
        else:
            self._debug("Compiled and stripped object", obj_file)

        spec = load_collection_spec(obj_file)
        # .rodata, .data, .bss and friends are not exposed as maps
        maps = [name for name in spec.maps if not name.startswith(".")]

        with open(go_file, "w", encoding="utf-8") as go_output:
            try:
                generate(GenerateArgs(
                    package=config.package,
                    stem=config.ident_stem,
                    object_file=obj_file.name,
                    constraints=constraints,
                    maps=maps,
                    variables=spec.variables,
                    programs=spec.programs,
                ), go_output)
                self._debug("Generated binding", go_file)

                if config.make_base is not None:
                    self._write_dependencies(Path(f"{go_file}.d"), config.make_base, all_deps)
            except Exception:
                go_output.close()
                _remove_if_exists(go_file)
                raise

    def _write_dependencies(self, dep_file: Path, make_base: Path, deps: List[Dependency]) -> None:
        final_deps = merge_dependencies(deps) if deps else []
        try:
            with open(dep_file, "w", encoding="utf-8") as dep_output:
                adjust_dependencies(dep_output, make_base, final_deps)
        except OSError as e:
            raise ConversionError(f"write make dependencies: {e}") from e
        except ValueError as e:
            raise ConversionError(f"can't adjust dependency information: {e}") from e

        self._debug("Wrote dependency", dep_file)

    def remove_old_output_files(self, output_stem: str, target: Target) -> None:
        """Remove output files generated by an old naming scheme.

        In the old scheme some Linux targets were interpreted as build
        constraints by the go toolchain. Files that don't exist are skipped.
        """
        suffix = target.obsolete_suffix()
        if not suffix:
            return

        stem = f"{output_stem}_{suffix}"
        for ext in (".o", ".go"):
            filename = Path(self.config.output_dir) / f"{stem}{ext}"
            try:
                filename.unlink()
            except FileNotFoundError:
                continue

            self._debug("Removed obsolete output file", filename)


def convert_all(config: ConvertConfig) -> None:
    """Convert all targets of config. See Orchestrator.convert_all."""
    Orchestrator(config).convert_all()


def _remove_if_exists(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
