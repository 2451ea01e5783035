"""
Converts the doc comments of a Nim file to Markdown.
Prints the Markdown to stdout, or writes it to a file with `-o`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from .config import ConfigError, apply_overrides, build_config
from .filesystem import (
    collect_file_stat,
    enforce_file_size,
    get_max_file_size,
    get_max_line_length,
    normalize_filepath,
    write_markdown,
)
from .generator import generate_markdown
from .parser import SourceFileError, parse_file

__all__ = ["cli"]


def _strip_colon(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    # Accepts the `-o:README.md` spelling
    if value is not None and value.startswith(":"):
        value = value[1:]
    if value == "":
        raise click.BadParameter("an output path is required")
    return value


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option()
@click.option(
    "-o", "--output", callback=_strip_colon, help="Write the Markdown to this file (also -o:PATH)"
)
@click.option("-ow", "--overwrite", is_flag=True, help="Overwrite the output file if it exists")
@click.option(
    "-g",
    "-global",
    "--onlyglobals",
    "only_globals",
    is_flag=True,
    help="Only include exported (*) elements",
)
@click.option(
    "--headings/--no-headings", "include_headings", default=None, help="Heading per element"
)
@click.option(
    "--imports/--no-imports", "include_imports", default=None, help="Imports and Includes sections"
)
@click.option(
    "--types/--no-types", "include_types", default=None, help="Types umbrella and kind headings"
)
@click.option(
    "--line-numbers/--no-line-numbers",
    "include_line_numbers",
    default=None,
    help="Source line under each element",
)
@click.option("--consts/--no-consts", "include_consts", default=None, help="const sections")
@click.option("--lets/--no-lets", "include_lets", default=None, help="let sections")
@click.option("--vars/--no-vars", "include_vars", default=None, help="var sections")
@click.option(
    "--examples/--no-examples", "include_examples", default=None, help="runnableExamples blocks"
)
@click.option("-v", "--verbose", is_flag=True, help="Log parsing details to stderr")
@click.argument("filepath", type=click.Path(dir_okay=False))
def cli(
    filepath: str,
    output: str | None = None,
    overwrite: bool = False,
    only_globals: bool = False,
    include_headings: bool | None = None,
    include_imports: bool | None = None,
    include_types: bool | None = None,
    include_line_numbers: bool | None = None,
    include_consts: bool | None = None,
    include_lets: bool | None = None,
    include_vars: bool | None = None,
    include_examples: bool | None = None,
    verbose: bool = False,
):
    """
    Convert the doc comments of a Nim file to Markdown.

    Args:
        filepath: Path to the Nim file to process.
        output: File to write the Markdown to instead of stdout.
        overwrite: Replace `output` when it already exists.
        only_globals: Only include exported (`*`) declarations.
        include_headings: Toggle the heading before each declaration.
        include_imports: Toggle the Imports and Includes sections.
        include_types: Toggle the Types umbrella heading and the per-kind headings.
        include_line_numbers: Toggle the source line under each declaration.
        include_consts: Toggle declarations from const sections.
        include_lets: Toggle declarations from let sections.
        include_vars: Toggle declarations from var sections.
        include_examples: Toggle captured runnableExamples blocks.
        verbose: Log parsing details to stderr.

    Returns:
        None.

    Raises:
        click.BadParameter: If the path is invalid or the configuration
            contains unsupported values.
        click.ClickException: If reading fails, limits are exceeded, or the
            output file exists without `-ow`.

    Examples:
        nimtomd -o:README.md -ow -g src/nimtomd.nim
    """
    if verbose:
        _setup_logging()

    try:
        source = normalize_filepath(filepath)
    except ValueError as error:
        raise click.BadParameter(str(error), param_hint="'FILEPATH'") from error

    try:
        config = build_config(
            source.parent,
            only_public=True if only_globals else None,
            include_headings=include_headings,
            include_imports_section=include_imports,
            include_types_section=include_types,
            include_line_numbers=include_line_numbers,
            include_const_section=include_consts,
            include_let_section=include_lets,
            include_var_section=include_vars,
            include_examples=include_examples,
        )
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error

    try:
        max_file_size = get_max_file_size(default=config.max_file_size)
        max_line_length = get_max_line_length(default=config.max_line_length)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    try:
        enforce_file_size(collect_file_stat(source), max_file_size, source)
    except IOError as error:
        raise click.ClickException(str(error)) from error

    config = apply_overrides(config, max_line_length=max_line_length)
    try:
        buffers = parse_file(source, config)
    except SourceFileError as error:
        raise click.ClickException(str(error)) from error

    document = generate_markdown(buffers, config)
    if document.is_empty:
        click.secho("WARNING: ", fg="yellow", err=True, nl=False)
        click.echo(f"No documentation found in {source}", err=True)

    # Writes to file
    if output is not None:
        target = Path(output).expanduser()
        try:
            write_markdown(target, document.as_lines(), overwrite=overwrite)
        except IOError as error:
            raise click.ClickException(str(error)) from error
        click.secho(f"Markdown written to {target}", fg="green", err=True)
    # Prints to stdout
    elif not document.is_empty:
        click.echo(document.as_string())


if __name__ == "__main__":
    cli()
