"""
Command-line interface for the SFC compiler.
"""

import json
import logging
import platform
import sys
import time
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from . import __version__
from .core.compiler import SFCCompiler
from .core.config import CompilerConfig
from .core.diagnostics import Diagnostic
from .core.exceptions import SFCCompilationError, SFCConfigurationError, SFCError
from .core.models import CompileOptions, CompileResult


def setup_safe_console() -> Console:
    """Console that degrades gracefully on legacy Windows terminals."""
    if platform.system() == "Windows":
        return Console(legacy_windows=True, safe_box=True, highlight=False)
    return Console(highlight=False)


console = setup_safe_console()

SYMBOLS = {"ok": "[OK]", "fail": "[FAIL]", "warn": "[WARN]", "info": "[INFO]", "bullet": "*"}


def safe_print(message: str, style: Optional[str] = None) -> None:
    """Print through rich, falling back to plain text on encoding errors."""
    try:
        console.print(message, style=style, soft_wrap=True)
    except UnicodeEncodeError:
        click.echo(str(message))


def _location(source: bytes, offset: int) -> str:
    """1-based line:column of a byte offset."""
    before = source[:offset]
    line = before.count(b"\n") + 1
    column = len(before) - (before.rfind(b"\n") + 1) + 1
    return f"{line}:{column}"


def print_diagnostics(path: Path, source: str, diagnostics: List[Diagnostic]) -> None:
    data = source.encode("utf-8")
    for diagnostic in diagnostics:
        where = escape(f"{path}:{_location(data, diagnostic.lo)}")
        message = escape(diagnostic.message)
        if diagnostic.is_error:
            safe_print(f"[red]{SYMBOLS['fail']} {where} {message}[/red]")
        else:
            safe_print(f"[yellow]{SYMBOLS['warn']} {where} {message}[/yellow]")


def print_bindings(result: CompileResult) -> None:
    if result.setup_bindings is None or not len(result.setup_bindings):
        safe_print(f"[blue]{SYMBOLS['info']} No script bindings[/blue]")
        return

    table = Table(title="Binding Table", show_header=True)
    table.add_column("Identifier", style="cyan")
    table.add_column("Category", style="green")
    table.add_column("Prop Key", style="yellow")

    aliases = result.setup_bindings.props_aliases
    for name, entry in result.setup_bindings.items():
        table.add_row(name, entry.category.value, aliases.get(name, ""))
    console.print(table)


def print_styles(result: CompileResult) -> None:
    if not result.styles:
        safe_print(f"[blue]{SYMBOLS['info']} No style blocks[/blue]")
        return

    for index, style in enumerate(result.styles):
        flags = [style.lang]
        if style.is_scoped:
            flags.append("scoped")
        if style.is_module:
            flags.append("module")
        if style.is_compiled:
            flags.append("compiled")
        safe_print(f"[blue]Style {index + 1} ({', '.join(flags)})[/blue]")
        console.print(style.code, markup=False, soft_wrap=True)


def compile_component(
    component_path: Path,
    output_path: Optional[Path],
    compiler: SFCCompiler,
    options: CompileOptions,
    show_bindings: bool,
    show_styles: bool,
    verbose: bool,
) -> bool:
    """Compile one component file and report the outcome. Returns success."""
    start_time = time.time()

    try:
        source = component_path.read_text(encoding="utf-8")
        result = compiler.compile_sync(source, options)
    except OSError as e:
        safe_print(f"[red]Cannot read {component_path}: {e}[/red]")
        return False
    except SFCCompilationError as e:
        safe_print(f"[red]Compilation Error: {e.get_context_message()}[/red]")
        return False
    except SFCError as e:
        safe_print(f"[red]SFC Error: {e.message}[/red]")
        if verbose:
            safe_print(f"[red]Details: {e.details}[/red]")
        return False

    print_diagnostics(component_path, source, list(result.errors))

    if result.has_errors:
        summary = result.get_summary()
        safe_print(
            f"[red]{SYMBOLS['fail']} {component_path} failed with "
            f"{summary['errors_count']} error(s)[/red]"
        )
    else:
        elapsed = time.time() - start_time
        safe_print(f"[green]{SYMBOLS['ok']} Compiled {component_path} ({elapsed:.2f}s)[/green]")

    if show_bindings:
        print_bindings(result)
    if show_styles:
        print_styles(result)

    if result.code:
        if output_path:
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_text(result.code, encoding="utf-8")
            except OSError as e:
                safe_print(f"[red]Cannot write {output_path}: {e}[/red]")
                return False
            safe_print(f"[blue]Output written to: {output_path}[/blue]")
        else:
            console.print(result.code, markup=False, highlight=False, soft_wrap=True)

    return not result.has_errors


class ComponentChangeHandler(FileSystemEventHandler):
    """Recompiles the component whenever its file changes in watch mode."""

    def __init__(self, component_path: Path, recompile):
        self.component_path = component_path.resolve()
        self.recompile = recompile

    def on_modified(self, event):
        if event.is_directory:
            return

        if Path(event.src_path).resolve() == self.component_path:
            safe_print(f"[yellow]File changed: {self.component_path}[/yellow]")
            self.recompile()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.command()
@click.argument("component_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output file (default: stdout)")
@click.option("--id", "scope_id", default="", help="Scope id used for scoped styles and CSS variables")
@click.option("--gen-default-as", help="Emit `const NAME = {...}` instead of a default export")
@click.option(
    "--props-destructure",
    type=click.Choice(["on", "off", "error"], case_sensitive=False),
    default="on",
    show_default=True,
    help="How destructuring defineProps() is treated",
)
@click.option("--production", is_flag=True, help="Use the production configuration")
@click.option("--bindings", is_flag=True, help="Print the Binding Table")
@click.option("--styles", is_flag=True, help="Print the extracted style blocks")
@click.option("-w", "--watch", is_flag=True, help="Watch the component file for changes")
@click.option("--verbose", is_flag=True, help="Show debug logging from every stage")
@click.version_option(version=__version__)
def main(
    component_file: Path,
    output: Optional[Path],
    scope_id: str,
    gen_default_as: Optional[str],
    props_destructure: str,
    production: bool,
    bindings: bool,
    styles: bool,
    watch: bool,
    verbose: bool,
) -> None:
    """
    SFC Compiler - compile a Vue single-file component into a JavaScript module.

    COMPONENT_FILE: Path to the .vue file to compile.
    """
    _configure_logging(verbose)

    config = CompilerConfig.for_production() if production else CompilerConfig.from_environment()
    if verbose:
        for warning in config.validate():
            safe_print(f"[yellow]{SYMBOLS['warn']} Config Warning: {warning}[/yellow]")

    try:
        options = CompileOptions(
            id=scope_id,
            filename=str(component_file),
            gen_default_as=gen_default_as,
            props_destructure=props_destructure.lower(),
            output_setup_bindings=bindings,
        )
    except SFCConfigurationError as e:
        raise click.BadParameter(e.get_help_message())

    compiler = SFCCompiler(config)

    def recompile() -> bool:
        return compile_component(component_file, output, compiler, options, bindings, styles, verbose)

    success = recompile()

    if not watch:
        if not success:
            sys.exit(1)
        return

    safe_print(f"\n[blue]Watching {component_file} for changes... (Press Ctrl+C to stop)[/blue]")

    observer = Observer()
    observer.schedule(ComponentChangeHandler(component_file, recompile), str(component_file.parent), recursive=False)
    observer.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        safe_print(f"\n[yellow]{SYMBOLS['warn']} Stopping watch mode...[/yellow]")
        observer.stop()
    observer.join()


@click.command()
@click.option("--production", is_flag=True, help="Show the production configuration")
@click.option("--export-config", type=click.Path(path_type=Path), help="Export the configuration as JSON")
def show_config(production: bool, export_config: Optional[Path]) -> None:
    """Show the effective compiler configuration and its warnings."""
    try:
        config = CompilerConfig.for_production() if production else CompilerConfig.from_environment()
    except SFCConfigurationError as e:
        safe_print(f"[red]Configuration Error: {e.get_help_message()}[/red]")
        sys.exit(1)

    warnings = config.validate()
    if warnings:
        safe_print(f"[yellow]{SYMBOLS['warn']} Configuration Warnings:[/yellow]")
        for warning in warnings:
            safe_print(f"  {SYMBOLS['bullet']} {warning}")
    else:
        safe_print(f"[green]{SYMBOLS['ok']} Compiler configuration is valid[/green]")

    table = Table(title="Compiler Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Production", str(config.is_production))
    table.add_row("SSR (reserved)", str(config.ssr))
    table.add_row("Source Maps (reserved)", str(config.source_map))
    table.add_row("Hoist Static", str(config.hoists_static))
    table.add_row("Keep Comments", str(config.keep_comments))
    table.add_row("Condense Whitespace", str(config.template.condense_whitespace))
    table.add_row("Trim Styles", str(config.style.trim))
    table.add_row("Max Source Size", f"{config.max_source_size // 1024} KB")
    console.print(table)

    if export_config:
        with open(export_config, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
        safe_print(f"[green]{SYMBOLS['ok']} Configuration exported to: {export_config}[/green]")


if __name__ == "__main__":
    main()
