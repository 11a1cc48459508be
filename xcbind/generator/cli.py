"""Command-line interface for xcbind code generation."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from xcbind.generator import rust
from xcbind.generator.features import modules_for_features
from xcbind.generator.modules import ModuleSet, load_modules
from xcbind.generator.parser import GenerationError
from xcbind.generator.sizes import LayoutCalculator
from xcbind.generator.types import StructType, UnionType

err_console = Console(stderr=True)


def _fail(message: str) -> NoReturn:
    err_console.print(f"[bold red]error:[/bold red] {escape(message)}", soft_wrap=True)
    sys.exit(1)


def _write_output(path: str, text: str) -> None:
    """Write ``text`` to ``path`` so that readers never see a partial file."""
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".xcbind-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        os.unlink(tmp_path)
        raise


def _load(names: list[str], xml_dir: str) -> ModuleSet:
    try:
        return load_modules(names, xml_dir)
    except GenerationError as e:
        _fail(str(e))


@click.group()
def cli() -> None:
    """XCB protocol to Rust FFI declaration generator."""


@cli.command()
@click.argument("module_names", nargs=-1)
@click.option(
    "--xml-dir",
    "-x",
    envvar="XCBIND_XML_DIR",
    required=True,
    help="Directory holding the protocol descriptions (<module>.xml)",
)
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--feature",
    "-f",
    "features",
    multiple=True,
    help="Enable the module behind a crate feature (repeatable)",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Report progress on stderr")
def gen(
    module_names: tuple[str, ...],
    xml_dir: str,
    output_file: str,
    features: tuple[str, ...],
    verbose: bool,
) -> None:
    """Generate Rust declarations for protocol modules.

    The core protocol and every module imported by a selected module are
    always generated.
    """
    try:
        names = modules_for_features(features)
    except ValueError as e:
        _fail(str(e))
    names.extend(n for n in module_names if n not in names)

    modules = _load(names, xml_dir)
    if verbose:
        for module in modules:
            err_console.print(
                f"Parsed [cyan]{module.name}[/cyan]: {len(module.types)} types, "
                f"{len(module.requests)} requests, {len(module.events)} events, "
                f"{len(module.errors)} errors",
                soft_wrap=True,
            )

    try:
        generated_file = rust.render(modules)
    except GenerationError as e:
        _fail(str(e))

    try:
        _write_output(output_file, generated_file)
    except OSError as e:
        _fail(f"cannot write {output_file}: {e.strerror}")

    if verbose:
        err_console.print(f"Wrote {escape(output_file)}", soft_wrap=True)


@cli.command()
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--generated",
    default="xcb.rs",
    help="File name of the generated declarations inside OUT_DIR",
)
def runtime(output_file: str, generated: str) -> None:
    """Generate the crate root the generated declarations rely on."""
    try:
        _write_output(output_file, rust.runtime(generated))
    except OSError as e:
        _fail(f"cannot write {output_file}: {e.strerror}")


@cli.command()
@click.argument("module_names", nargs=-1, required=True)
@click.option("--xml-dir", "-x", envvar="XCBIND_XML_DIR", required=True, help="XML directory")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(module_names: tuple[str, ...], xml_dir: str, output_json: bool) -> None:
    """Display parsed modules and the layout of their structs."""
    modules = _load(list(module_names), xml_dir)

    if output_json:
        _output_json(modules)
    else:
        try:
            _output_plain(modules)
        except GenerationError as e:
            _fail(str(e))


def _output_json(modules: ModuleSet) -> None:
    """Output parsed modules as JSON."""
    data = {module.name: module.to_dict(encode_json=True) for module in modules}
    print(json.dumps(data, indent=2))


def _output_plain(modules: ModuleSet) -> None:
    """Output module info using rich text formatting."""
    console = Console()
    layout = LayoutCalculator(modules)

    console.print("[bold cyan]Modules[/bold cyan]")
    module_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    module_table.add_column("Name", style="white")
    module_table.add_column("Extension", style="green")
    module_table.add_column("Version", style="dim")
    module_table.add_column("Types", justify="right")
    module_table.add_column("Requests", justify="right")
    module_table.add_column("Events", justify="right")
    module_table.add_column("Errors", justify="right")

    for module in modules:
        if module.major_version is not None:
            version = f"{module.major_version}.{module.minor_version or 0}"
        else:
            version = ""
        module_table.add_row(
            module.name,
            module.extension_name or "",
            version,
            str(len(module.types)),
            str(len(module.requests)),
            str(len(module.events)),
            str(len(module.errors)),
        )

    console.print(module_table)
    console.print()

    # Fixed-layout sizes of structs and unions
    console.print("[bold cyan]Structs[/bold cyan]")
    struct_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    struct_table.add_column("Name", style="white")
    struct_table.add_column("Size", style="yellow", justify="right")
    struct_table.add_column("Align", style="dim", justify="right")

    for module in modules:
        for key in sorted(module.types):
            proto_type = module.types[key]
            if not isinstance(proto_type, (StructType, UnionType)):
                continue
            size = layout.calc_type(module.name, proto_type.name)
            struct_table.add_row(
                escape(modules.canonical(module.name, proto_type.name)),
                f"{size.size} bytes",
                str(size.align),
            )

    console.print(struct_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
